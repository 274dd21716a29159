"""Runtime version metadata for the Matrix dispatch runtime.

This module is import-safe and exposes version identifiers for the HTTP
client (User-Agent) and the operator CLI without side effects on import.
"""

from __future__ import annotations

PROJECT_NAME = "matrix-dispatch"
VERSION = "0.3.0"
BUILD = "2026.10"

__all__ = [
    "PROJECT_NAME",
    "VERSION",
    "BUILD",
    "as_dict",
    "as_string",
    "user_agent",
]


def as_dict() -> dict[str, str]:
    """Return version metadata as a dictionary."""

    return {
        "project": PROJECT_NAME,
        "version": VERSION,
        "build": BUILD,
    }


def as_string() -> str:
    """Return a concise version string."""

    return f"{PROJECT_NAME} {VERSION} (Build {BUILD})"


def user_agent() -> str:
    return f"{PROJECT_NAME}/{VERSION}"
