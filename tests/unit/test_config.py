"""Tests for configuration loading, env resolution and the startup check."""

from __future__ import annotations

import pytest

from pollster.config.loader import StartupCheck, _deep_merge, check_startup, load_config
from pollster.config.schema import (
    APIConfig,
    BackendConfig,
    PollsterConfig,
    SessionConfig,
)
from pollster.core.errors import ConfigError


@pytest.fixture
def isolated(tmp_path, monkeypatch):
    """No config files, no backend env vars."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.delenv("POLLSTER_CONFIG", raising=False)
    monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
    monkeypatch.delenv("POLLSTER_BACKEND_URL", raising=False)
    monkeypatch.delenv("POLLSTER_BACKEND_ANON_KEY", raising=False)
    return tmp_path


# ─── Schema Defaults ──────────────────────────────────────────


class TestSchemaDefaults:
    def test_all_defaults(self):
        cfg = PollsterConfig()
        assert cfg.backend.url is None
        assert cfg.backend.url_env == "POLLSTER_BACKEND_URL"
        assert cfg.backend.anon_key_env == "POLLSTER_BACKEND_ANON_KEY"
        assert cfg.logging.level == "INFO"
        assert "postgresql" in cfg.database.url

    def test_session_defaults(self):
        cfg = SessionConfig()
        assert cfg.cookie_prefix == "pollster"
        assert cfg.secure is True
        assert cfg.max_age_days == 7

    def test_api_defaults(self):
        cfg = APIConfig()
        assert cfg.admin_prefix == "/admin"
        assert cfg.login_path == "/login"
        assert cfg.unauthorized_path == "/unauthorized"


# ─── Deep Merge ───────────────────────────────────────────────


class TestDeepMerge:
    def test_nested_merge(self):
        base = {"api": {"host": "a", "port": 1}}
        result = _deep_merge(base, {"api": {"port": 2}})
        assert result == {"api": {"host": "a", "port": 2}}
        assert base == {"api": {"host": "a", "port": 1}}

    def test_override_replaces_non_dict(self):
        assert _deep_merge({"a": [1]}, {"a": [2]}) == {"a": [2]}


# ─── load_config ──────────────────────────────────────────────


class TestLoadConfig:
    def test_defaults_when_no_files(self, isolated):
        cfg = load_config()
        assert cfg.api.port == 8080
        assert cfg.backend.url is None

    def test_load_from_explicit_path(self, isolated):
        toml_file = isolated / "test.toml"
        toml_file.write_text("[api]\nport = 9000\n\n[session]\nsecure = false\n")
        cfg = load_config(path=toml_file)
        assert cfg.api.port == 9000
        assert cfg.session.secure is False
        assert cfg.api.host == "127.0.0.1"  # default preserved

    def test_project_file_discovered(self, isolated):
        (isolated / "pollster.toml").write_text('[api]\nhost = "0.0.0.0"\n')
        assert load_config().api.host == "0.0.0.0"

    def test_user_file_discovered(self, isolated, monkeypatch):
        xdg = isolated / "xdg"
        (xdg / "pollster").mkdir(parents=True)
        (xdg / "pollster" / "config.toml").write_text("[api]\nport = 7000\n")
        monkeypatch.setenv("XDG_CONFIG_HOME", str(xdg))
        assert load_config().api.port == 7000

    def test_env_path_beats_project_file(self, isolated, monkeypatch):
        (isolated / "pollster.toml").write_text("[api]\nport = 1111\n")
        env_file = isolated / "env.toml"
        env_file.write_text("[api]\nport = 2222\n")
        monkeypatch.setenv("POLLSTER_CONFIG", str(env_file))
        assert load_config().api.port == 2222

    def test_env_path_missing_raises(self, isolated, monkeypatch):
        monkeypatch.setenv("POLLSTER_CONFIG", str(isolated / "nope.toml"))
        with pytest.raises(ConfigError, match="non-existent"):
            load_config()

    def test_explicit_path_not_found_raises(self, isolated):
        with pytest.raises(ConfigError, match="not found"):
            load_config(path=isolated / "nonexistent.toml")

    def test_invalid_toml_raises(self, isolated):
        bad = isolated / "bad.toml"
        bad.write_text("[invalid\n")
        with pytest.raises(ConfigError, match="Invalid TOML"):
            load_config(path=bad)

    def test_invalid_value_raises(self, isolated):
        with pytest.raises(ConfigError, match="validation failed"):
            load_config(overrides={"api": {"port": "not-a-port"}})

    def test_overrides_beat_file(self, isolated):
        toml_file = isolated / "test.toml"
        toml_file.write_text("[api]\nport = 5000\n")
        cfg = load_config(path=toml_file, overrides={"api": {"port": 6000}})
        assert cfg.api.port == 6000


# ─── Environment Variables ────────────────────────────────────


class TestBackendEnv:
    def test_resolved_from_env(self, isolated, monkeypatch):
        monkeypatch.setenv("POLLSTER_BACKEND_URL", "https://x.example.co")
        monkeypatch.setenv("POLLSTER_BACKEND_ANON_KEY", "anon")
        cfg = load_config()
        assert cfg.backend.url == "https://x.example.co"
        assert cfg.backend.anon_key == "anon"

    def test_explicit_value_wins(self, isolated, monkeypatch):
        monkeypatch.setenv("POLLSTER_BACKEND_URL", "https://env.example.co")
        cfg = load_config(overrides={"backend": {"url": "https://file.example.co"}})
        assert cfg.backend.url == "https://file.example.co"

    def test_custom_env_var_name(self, isolated, monkeypatch):
        monkeypatch.setenv("MY_KEY", "secret")
        cfg = load_config(overrides={"backend": {"anon_key_env": "MY_KEY"}})
        assert cfg.backend.anon_key == "secret"


# ─── check_startup ────────────────────────────────────────────


class TestCheckStartup:
    def test_ok(self):
        cfg = PollsterConfig(backend=BackendConfig(url="https://x", anon_key="k"))
        check = check_startup(cfg)
        assert check.ok
        assert check.describe() == "configuration ok"

    def test_reports_env_var_names(self):
        check = check_startup(PollsterConfig())
        assert not check.ok
        assert check.missing == ["POLLSTER_BACKEND_URL", "POLLSTER_BACKEND_ANON_KEY"]
        assert "POLLSTER_BACKEND_URL" in check.describe()

    def test_falls_back_to_config_key(self):
        cfg = PollsterConfig(
            backend=BackendConfig(url="https://x", anon_key_env=None)
        )
        assert check_startup(cfg).missing == ["backend.anon_key"]

    def test_is_typed_result(self):
        assert isinstance(check_startup(PollsterConfig()), StartupCheck)
