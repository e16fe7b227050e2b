"""Validation and sanitization of poll questions and options.

Pure functions, no I/O.  Each validator trims its input, checks rules
in a fixed order, and returns the first violated rule's message.  Only
input that passed every rule is sanitized.
"""

from __future__ import annotations

import html
from dataclasses import dataclass
from html.parser import HTMLParser

QUESTION_MIN_LENGTH = 5
QUESTION_MAX_LENGTH = 200
OPTION_MAX_LENGTH = 100
MIN_OPTIONS = 2

# Elements whose text content is dropped along with the tags.
_RAW_TEXT_ELEMENTS = frozenset(
    {"script", "style", "iframe", "noscript", "noembed", "object", "template"}
)


@dataclass(frozen=True, slots=True)
class ValidationResult:
    """Outcome of validating one form field."""

    is_valid: bool
    error: str | None = None
    value: str | list[str] | None = None

    @classmethod
    def ok(cls, value: str | list[str]) -> ValidationResult:
        return cls(is_valid=True, value=value)

    @classmethod
    def fail(cls, error: str) -> ValidationResult:
        return cls(is_valid=False, error=error)


class _TextExtractor(HTMLParser):
    """Collect character data, skipping tags and raw-text element bodies."""

    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self._parts: list[str] = []
        self._skip_depth = 0

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        if tag in _RAW_TEXT_ELEMENTS:
            self._skip_depth += 1

    def handle_endtag(self, tag: str) -> None:
        if tag in _RAW_TEXT_ELEMENTS and self._skip_depth:
            self._skip_depth -= 1

    def handle_data(self, data: str) -> None:
        if not self._skip_depth:
            self._parts.append(data)

    def text(self) -> str:
        return "".join(self._parts)


def sanitize_text(value: str) -> str:
    """Strip all markup from *value*, leaving plain text.

    Character references are decoded and the text is re-escaped
    (``&``, ``<``, ``>``), so the result can never form a tag and
    ``sanitize_text(sanitize_text(x)) == sanitize_text(x)``.
    """
    parser = _TextExtractor()
    parser.feed(value)
    parser.close()
    return html.escape(parser.text(), quote=False)


def validate_question(raw: str | None) -> ValidationResult:
    """Validate and sanitize a poll question."""
    question = (raw or "").strip()

    if not question:
        return ValidationResult.fail("Poll question cannot be empty")
    if len(question) < QUESTION_MIN_LENGTH:
        return ValidationResult.fail(
            f"Poll question must be at least {QUESTION_MIN_LENGTH} characters long"
        )
    if len(question) > QUESTION_MAX_LENGTH:
        return ValidationResult.fail(
            f"Poll question cannot exceed {QUESTION_MAX_LENGTH} characters"
        )

    return ValidationResult.ok(sanitize_text(question))


def validate_options(raw: list[str] | None) -> ValidationResult:
    """Validate and sanitize a list of poll options.

    Blank entries are dropped after trimming.  Uniqueness is an exact,
    case-sensitive comparison of the trimmed text.
    """
    options = [opt.strip() for opt in (raw or []) if isinstance(opt, str)]
    options = [opt for opt in options if opt]

    if len(options) < MIN_OPTIONS:
        return ValidationResult.fail(
            f"Poll must have at least {MIN_OPTIONS} non-empty options"
        )
    if len(set(options)) != len(options):
        return ValidationResult.fail("Poll options must be unique")
    if any(len(opt) > OPTION_MAX_LENGTH for opt in options):
        return ValidationResult.fail(
            f"Poll options cannot exceed {OPTION_MAX_LENGTH} characters"
        )

    return ValidationResult.ok([sanitize_text(opt) for opt in options])
