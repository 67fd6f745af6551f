"""Core application utilities and infrastructure."""
from .clock import ensure_utc, utcnow
from .config import Settings, get_settings

__all__ = [
    "Settings",
    "get_settings",
    "ensure_utc",
    "utcnow",
]
