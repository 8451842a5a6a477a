from __future__ import annotations

import logging
from typing import Iterable, Optional

from chat_gateway.functions import (
    LocalFunction,
    LocalFunctionParameter,
    ToolHandler,
    unique_names,
)

__all__ = ["ToolHub"]


class ToolHub:
    """
    Owns the LocalFunctions of an application.

    Capability modules register their tools at startup, either one by one with
    :meth:`register_tool` or as an object carrying ``@local_function`` methods
    with :meth:`register_provider`. The gateway only reads :attr:`functions`.
    """

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self.logger = logger or logging.getLogger(__name__)
        self._functions: tuple[LocalFunction, ...] = ()
        self._providers: tuple[object, ...] = ()

    @property
    def functions(self) -> tuple[LocalFunction, ...]:
        return self._functions

    @property
    def providers(self) -> tuple[object, ...]:
        return self._providers

    def register_tool(
        self,
        name: str,
        description: str,
        parameters: Optional[Iterable[LocalFunctionParameter]],
        handler: ToolHandler,
        *,
        timeout: Optional[float] = None,
    ) -> LocalFunction:
        function = LocalFunction(name, description, parameters, handler, timeout=timeout)
        self._add([function])
        self.logger.info("Registered tool: %s", name)
        return function

    def register_provider(self, provider: object) -> list[LocalFunction]:
        functions = LocalFunction.from_object(provider)
        self._add(functions)
        self._providers = self._providers + (provider,)
        self.logger.info(
            "Registered tool provider: %s (%s)",
            type(provider).__name__,
            ", ".join(f.name for f in functions) or "no tools",
        )
        return functions

    def get(self, name: str) -> Optional[LocalFunction]:
        for function in self._functions:
            if function.name == name:
                return function
        return None

    def _add(self, functions: list[LocalFunction]) -> None:
        combined = self._functions + tuple(functions)
        unique_names(combined)
        self._functions = combined

    def __len__(self) -> int:
        return len(self._functions)
