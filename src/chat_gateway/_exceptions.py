"""
Gateway error taxonomy.

Tool errors are recovered inside the tool-calling loop and fed back to the
model as text. Backend errors are translated into a short, user-presentable
message once, at the top of ``call``, while the original exception is kept for
full tracebacks.
"""

from __future__ import annotations

import logging
from typing import Final, Optional, Type

import anthropic
import openai

__all__: tuple[str, ...] = (
    "GatewayError",
    "ToolError",
    "ToolNotFoundError",
    "MissingRequiredParameterError",
    "InvalidArgumentsError",
    "ToolExecutionError",
    "BackendCallError",
    "classify_error",
)


class GatewayError(RuntimeError):
    """Base class for everything the gateway raises on its own."""


class ToolError(GatewayError):
    """A tool call could not produce a result."""

    def __init__(self, tool_name: str, message: str) -> None:
        super().__init__(message)
        self.tool_name = tool_name


class ToolNotFoundError(ToolError):
    def __init__(self, tool_name: str) -> None:
        super().__init__(tool_name, f"Could not find tool with name {tool_name}")


class MissingRequiredParameterError(ToolError):
    def __init__(self, tool_name: str, parameter: str) -> None:
        super().__init__(
            tool_name, f"Required parameter '{parameter}' not provided for tool {tool_name}"
        )
        self.parameter = parameter


class InvalidArgumentsError(ToolError):
    """Arguments are not a JSON object or do not match the declared types."""


class ToolExecutionError(ToolError):
    """The tool itself failed; wraps whatever it raised."""

    def __init__(self, tool_name: str, message: str) -> None:
        super().__init__(tool_name, f"Error executing function {tool_name}: {message}")


class BackendCallError(GatewayError):
    """Talking to the LLM backend failed.

    Attributes:
        original_exc: The underlying SDK or transport exception.
        user_message: German text that can be posted in the chat as is.
    """

    original_exc: Optional[Exception]

    def __init__(
        self,
        message: str,
        original_exc: Optional[Exception] = None,
        *,
        user_message: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.original_exc = original_exc
        self.user_message = user_message or message
        if original_exc is not None:
            self.__cause__ = original_exc


RATE_LIMIT_ERRORS: Final[tuple[Type[Exception], ...]] = (
    openai.RateLimitError,
    anthropic.RateLimitError,
)

CONN_ERRORS: Final[tuple[Type[Exception], ...]] = (
    openai.APIConnectionError,
    anthropic.APIConnectionError,
    TimeoutError,
    ConnectionError,
)

STATUS_ERRORS: Final[tuple[Type[Exception], ...]] = (
    openai.APIStatusError,
    anthropic.APIStatusError,
)

API_ERRORS: Final[tuple[Type[Exception], ...]] = (
    openai.APIError,
    anthropic.APIError,
)


def classify_error(
    exc: Exception,
    backend: str,
    logger: Optional[logging.Logger] = None,
) -> BackendCallError:
    """Wrap an exception raised while talking to *backend* in a BackendCallError."""
    log = logger or logging.getLogger("chat_gateway.exceptions")

    if isinstance(exc, BackendCallError):
        log.error("%s reported an error: %s", backend, exc)
        return exc

    if isinstance(exc, RATE_LIMIT_ERRORS):
        detail = "Anfragelimit überschritten, bitte später erneut versuchen"
    elif isinstance(exc, CONN_ERRORS):
        detail = "Verbindung fehlgeschlagen"
    elif isinstance(exc, STATUS_ERRORS):
        detail = f"Status {exc.status_code}: {exc.message}"
    elif isinstance(exc, API_ERRORS):
        detail = f"API-Fehler: {exc.message}"
    else:
        detail = f"{exc.__class__.__name__}: {exc}"

    log.error("Error while calling %s: %s", backend, exc, exc_info=exc)
    return BackendCallError(
        f"{backend} call failed: {exc}",
        exc,
        user_message=f"Fehler bei der Kommunikation mit {backend}: {detail}",
    )
