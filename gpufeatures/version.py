"""Version information for the package's commands."""

from __future__ import annotations

VERSION = "unknown"
GIT_COMMIT = ""


def get_version_parts() -> list[str]:
    """Return the components that make up the version description."""
    parts = [VERSION]
    if GIT_COMMIT:
        parts.append("commit: " + GIT_COMMIT)
    return parts


def get_version_string(*args: str) -> str:
    """Return the version description, followed by any extra lines."""
    return "\n".join([*get_version_parts(), *args])