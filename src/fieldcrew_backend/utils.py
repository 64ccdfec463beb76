"""
Utility functions shared by the persistence and configuration layers.

This module provides helper functions for:
- Ensuring directory creation for the database file
- Producing UTC timestamps in the format stored alongside every row
- Parsing boolean-ish strings coming from the environment
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any

TRUTHY_VALUES = {"1", "true", "yes", "on"}


def ensure_directory(path: Path) -> Path:
    """
    Create a directory if it doesn't exist, including parent directories.

    This is a safe idempotent operation that won't fail if the directory
    already exists.

    Args:
        path: The directory path to create

    Returns:
        The same path object for chaining

    Raises:
        OSError: If directory creation fails due to permissions or other I/O errors
    """
    path.mkdir(parents=True, exist_ok=True)
    return path


def utcnow_iso() -> str:
    """
    Current UTC time as an ISO-8601 string with microsecond precision.

    Example:
        >>> utcnow_iso()
        "2024-05-01T12:30:00.123456+00:00"
    """
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")


def as_bool(value: Any, default: bool = False) -> bool:
    """
    Interpret a config or environment value as a boolean.

    Args:
        value: A bool, None, or a string such as "true", "0", "off"
        default: Returned when value is None

    Example:
        >>> as_bool("Yes")
        True
        >>> as_bool(None, default=True)
        True
    """
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in TRUTHY_VALUES
