"""pollster - polls with role-based access over a hosted backend."""

__version__ = "0.3.0"
