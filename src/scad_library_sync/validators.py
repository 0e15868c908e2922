"""
Input validation functions for scad_library_sync.

Provides validation for profile identifiers and remote-relative paths
so that nothing listed by a remote source can be written outside the
profile directory it belongs to.
"""

import re

_PROFILE_ID_PATTERN = re.compile(r"^[a-z][a-z0-9_-]*$")


# ---------------------------------------------------------------------------
# Error message formatting helpers
# ---------------------------------------------------------------------------


def format_validation_error(field_name: str, reason: str) -> str:
    """
    Generate consistent error message for validation failures.

    Args:
        field_name: Human-readable field name (e.g., "Profile id")
        reason: Description of validation failure (e.g., "cannot be empty")

    Returns:
        Formatted error message string
    """
    return f"{field_name} {reason}"


def validate_profile_id(profile_id: str) -> tuple[bool, str]:
    """
    Validate a profile identifier.

    Profile ids become directory names under the workspace root and
    prefixes of every manifest path, so they are restricted to lowercase
    letters, digits, ``_`` and ``-``, starting with a letter.

    Returns:
        Tuple of (is_valid, error_message).
        Returns (True, "") if valid, (False, reason) if invalid.
    """
    if not profile_id or not profile_id.strip():
        return (
            False,
            format_validation_error("Profile id", "cannot be empty"),
        )

    if not _PROFILE_ID_PATTERN.match(profile_id):
        return (
            False,
            format_validation_error(
                "Profile id",
                f"'{profile_id}' must match {_PROFILE_ID_PATTERN.pattern}",
            ),
        )

    return (True, "")


def validate_relative_path(rel_path: str) -> tuple[bool, str]:
    """
    Validate a remote-relative file path before it touches disk.

    Args:
        rel_path: Path relative to a profile directory, using ``/``.

    Returns:
        Tuple of (is_valid, error_message).
        Returns (True, "") if valid, (False, reason) if invalid.

    Validation rules:
        - Cannot be empty or whitespace-only
        - Cannot be absolute (leading '/' or a drive letter)
        - Cannot contain backslashes
        - Cannot contain '..' or '.' segments (path traversal protection)
        - Cannot have empty path segments (e.g., 'lib//foo.scad')
    """
    if not rel_path or not rel_path.strip():
        return (
            False,
            format_validation_error("Path", "cannot be empty"),
        )

    if rel_path.startswith("/") or re.match(r"^[A-Za-z]:", rel_path):
        return (
            False,
            format_validation_error("Path", f"'{rel_path}' must be relative"),
        )

    if "\\" in rel_path:
        return (
            False,
            format_validation_error(
                "Path", f"'{rel_path}' cannot contain backslashes"
            ),
        )

    segments = rel_path.split("/")
    if any(seg in ("..", ".") for seg in segments):
        return (
            False,
            format_validation_error("Path", "cannot contain '..'"),
        )

    if any(seg == "" for seg in segments):
        return (
            False,
            format_validation_error(
                "Path", "cannot have empty path segments"
            ),
        )

    return (True, "")
