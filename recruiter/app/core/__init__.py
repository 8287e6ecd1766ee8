"""Core utilities for the generation service."""

from recruiter.app.core.config import Settings, settings
from recruiter.app.core.logging import get_logger, setup_logging

__all__ = [
    "Settings",
    "settings",
    "get_logger",
    "setup_logging",
]
