"""Participant names as they appear in tagged chat turns."""

from __future__ import annotations

import re
import unicodedata
from typing import Final

__all__ = ["sanitize_name", "is_valid_name"]

MAX_NAME_LENGTH: Final = 100
_VALID_NAME = re.compile(r"^[a-zA-Z0-9_-]+$")
_INVALID_CHARACTERS = re.compile(r"[^a-zA-Z0-9_-]+")


def sanitize_name(participant_name: str) -> str:
    """
    Reduce a display name to ``[a-zA-Z0-9_-]``.

    Spaces become underscores, accents are stripped via NFD decomposition,
    anything else outside the allowed set is removed. The result is capped at
    100 characters and trimmed of leading/trailing underscores.
    """
    if participant_name is None:
        raise ValueError("participant_name must not be None")

    normalized = unicodedata.normalize("NFD", participant_name.replace(" ", "_"))
    safe_name = _INVALID_CHARACTERS.sub("", normalized)[:MAX_NAME_LENGTH]
    return safe_name.strip("_")


def is_valid_name(name: str) -> bool:
    return bool(name) and _VALID_NAME.match(name) is not None
