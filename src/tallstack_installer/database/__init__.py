"""Database connectivity checks."""

from .probe import DatabaseProbe, DatabaseSettings, ProbeResult, normalize_error

__all__ = ["DatabaseProbe", "DatabaseSettings", "ProbeResult", "normalize_error"]
