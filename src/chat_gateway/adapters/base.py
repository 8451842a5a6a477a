"""Pieces shared by the request adapters."""

from __future__ import annotations

import base64
import logging
from typing import Final

from chat_gateway.types.chat import ImageContent

REFUSAL_TEXT: Final = "[Refusal]"
TRUNCATED_TEXT: Final = "[Response truncated due to max tokens]"
FILTERED_TEXT: Final = "[Response filtered by content policy]"


def empty_response_text(backend: str) -> str:
    return f"Keine Antwort von {backend} erhalten."


def data_uri(image: ImageContent) -> str:
    encoded = base64.b64encode(image.data).decode("ascii")
    return f"data:{image.mime_type};base64,{encoded}"


def image_marker(image: ImageContent, backend: str, logger: logging.Logger) -> str:
    """Visible stand-in for an image the backend cannot receive."""
    logger.warning(
        "%s model does not accept images; replacing %s image (%d bytes) with a marker",
        backend,
        image.mime_type,
        len(image.data),
    )
    return f"[Bild entfernt: {image.mime_type}]"
