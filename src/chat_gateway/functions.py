"""
Local functions: the tools a model may ask the gateway to run.

A LocalFunction is a name, a description, typed parameters and a handler.
They are built either explicitly (``ToolHub.register_tool``) or by reflecting
over methods decorated with :func:`local_function`.
"""

from __future__ import annotations

import asyncio
import inspect
import json
import logging
import time
import types
import typing
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Iterable, Mapping, Optional, Sequence, Union

from chat_gateway._exceptions import (
    InvalidArgumentsError,
    MissingRequiredParameterError,
    ToolExecutionError,
)

__all__ = [
    "LocalFunction",
    "LocalFunctionParameter",
    "LocalFunctionParameterType",
    "local_function",
]

logger = logging.getLogger(__name__)

ToolHandler = Callable[..., Union[str, Awaitable[str]]]

_MARKER = "__local_function__"


class LocalFunctionParameterType(Enum):
    STRING = "string"
    BOOL = "boolean"
    INT = "integer"
    DOUBLE = "number"

    @classmethod
    def from_annotation(cls, annotation: Any) -> "LocalFunctionParameterType":
        """Map ``str``/``bool``/``int``/``float`` (optionally Optional/Annotated) to a type."""
        if typing.get_origin(annotation) is typing.Annotated:
            annotation = typing.get_args(annotation)[0]
        if typing.get_origin(annotation) in (Union, types.UnionType):
            args = [a for a in typing.get_args(annotation) if a is not type(None)]
            if len(args) == 1:
                annotation = args[0]
        try:
            return _ANNOTATIONS[annotation]
        except (KeyError, TypeError):
            raise TypeError(
                f"Unsupported parameter type: {annotation!r}. "
                "Only str, bool, int and float are supported."
            ) from None

    def coerce(self, value: Any) -> Any:
        """Return *value* as this type or raise ValueError."""
        if self is LocalFunctionParameterType.STRING:
            if isinstance(value, str):
                return value
        elif self is LocalFunctionParameterType.BOOL:
            if isinstance(value, bool):
                return value
        elif self is LocalFunctionParameterType.INT:
            if isinstance(value, int) and not isinstance(value, bool):
                return value
            if isinstance(value, float) and value.is_integer():
                return int(value)
        elif self is LocalFunctionParameterType.DOUBLE:
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                return float(value)
        raise ValueError(f"expected {self.value}, got {type(value).__name__}")


_ANNOTATIONS = {
    str: LocalFunctionParameterType.STRING,
    bool: LocalFunctionParameterType.BOOL,
    int: LocalFunctionParameterType.INT,
    float: LocalFunctionParameterType.DOUBLE,
}


@dataclass(frozen=True, slots=True)
class LocalFunctionParameter:
    name: str
    description: str
    type: LocalFunctionParameterType = LocalFunctionParameterType.STRING
    is_required: bool = True
    default: Any = None


class LocalFunction:
    """An immutable, invocable tool definition."""

    def __init__(
        self,
        name: str,
        description: str,
        parameters: Optional[Iterable[LocalFunctionParameter]],
        handler: ToolHandler,
        *,
        timeout: Optional[float] = None,
    ) -> None:
        if not name:
            raise ValueError("name must not be empty")
        if description is None:
            raise ValueError("description must not be None")
        if handler is None:
            raise ValueError("handler must not be None")
        self._name = name
        self._description = description
        self._parameters: tuple[LocalFunctionParameter, ...] = tuple(parameters or ())
        self._handler = handler
        self._timeout = timeout

    @property
    def name(self) -> str:
        return self._name

    @property
    def description(self) -> str:
        return self._description

    @property
    def parameters(self) -> tuple[LocalFunctionParameter, ...]:
        return self._parameters

    @property
    def timeout(self) -> Optional[float]:
        return self._timeout

    def __repr__(self) -> str:
        params = ", ".join(p.name for p in self._parameters)
        return f"LocalFunction({self._name}({params}))"

    def json_schema(self) -> dict[str, Any]:
        """JSON schema of the arguments object."""
        return {
            "type": "object",
            "properties": {
                p.name: {"type": p.type.value, "description": p.description}
                for p in self._parameters
            },
            "required": [p.name for p in self._parameters if p.is_required],
        }

    def bind_arguments(self, arguments: str | Mapping[str, Any] | None) -> dict[str, Any]:
        """Turn raw JSON arguments into keyword arguments for the handler."""
        if isinstance(arguments, str):
            try:
                arguments = json.loads(arguments) if arguments.strip() else {}
            except json.JSONDecodeError as exc:
                raise InvalidArgumentsError(
                    self._name, f"Arguments for {self._name} are not valid JSON: {exc}"
                ) from exc
        if not isinstance(arguments, Mapping):
            raise InvalidArgumentsError(
                self._name, "Parameters must be provided as a JSON object"
            )

        kwargs: dict[str, Any] = {}
        for parameter in self._parameters:
            value = arguments.get(parameter.name)
            if value is None:
                if parameter.is_required:
                    raise MissingRequiredParameterError(self._name, parameter.name)
                kwargs[parameter.name] = parameter.default
                continue
            try:
                kwargs[parameter.name] = parameter.type.coerce(value)
            except ValueError as exc:
                raise InvalidArgumentsError(
                    self._name, f"Invalid value for parameter '{parameter.name}': {exc}"
                ) from exc

        extra = set(arguments) - {p.name for p in self._parameters}
        if extra:
            logger.warning("Ignoring extra parameters %s for tool '%s'", sorted(extra), self._name)
        return kwargs

    async def execute(self, arguments: str | Mapping[str, Any] | None) -> str:
        """
        Bind *arguments* and run the handler.

        Raises:
            InvalidArgumentsError: arguments are not a JSON object or have wrong types.
            MissingRequiredParameterError: a required parameter is absent.
            ToolExecutionError: the handler failed, timed out or returned nothing.
        """
        kwargs = self.bind_arguments(arguments)
        logger.info("Calling tool: %s with parameters: %s", self._name, kwargs)

        started = time.perf_counter()
        try:
            async with asyncio.timeout(self._timeout):
                result = await self._invoke(kwargs)
        except TimeoutError as exc:
            reason = f"timed out after {self._timeout}s" if self._timeout else "timed out"
            raise ToolExecutionError(self._name, reason) from exc
        except Exception as exc:
            raise ToolExecutionError(self._name, str(exc) or exc.__class__.__name__) from exc

        logger.info(
            "Tool '%s' executed in %.3f seconds.", self._name, time.perf_counter() - started
        )
        if result is None:
            raise ToolExecutionError(self._name, "no result returned")
        return result if isinstance(result, str) else str(result)

    async def _invoke(self, kwargs: dict[str, Any]) -> Any:
        if inspect.iscoroutinefunction(self._handler):
            return await self._handler(**kwargs)
        result = await asyncio.to_thread(self._handler, **kwargs)
        if inspect.isawaitable(result):
            result = await result
        return result

    # --- reflection --------------------------------------------------------
    @classmethod
    def from_method(cls, method: Callable[..., Any]) -> "LocalFunction":
        """Build a LocalFunction from a bound method decorated with ``local_function``."""
        spec: Optional[_FunctionSpec] = getattr(method, _MARKER, None)
        if spec is None:
            raise ValueError(f"{method!r} is not decorated with @local_function")

        hints = typing.get_type_hints(method, include_extras=True)
        parameters = []
        for param in inspect.signature(method).parameters.values():
            if param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD):
                raise TypeError(f"{spec.name}: *args/**kwargs cannot be exposed as tool parameters")
            annotation = hints.get(param.name, str)
            parameters.append(
                LocalFunctionParameter(
                    name=param.name,
                    description=_annotated_description(annotation) or f"Parameter {param.name}",
                    type=LocalFunctionParameterType.from_annotation(annotation),
                    is_required=param.default is inspect.Parameter.empty,
                    default=None if param.default is inspect.Parameter.empty else param.default,
                )
            )

        description = spec.description or _first_doc_line(method) or f"Function {spec.name}"
        return cls(spec.name, description, parameters, method, timeout=spec.timeout)

    @classmethod
    def from_object(cls, instance: object) -> list["LocalFunction"]:
        """All ``local_function`` methods of *instance*, ordered by attribute name."""
        if instance is None:
            raise ValueError("instance must not be None")
        functions = []
        for attr_name, member in inspect.getmembers(type(instance), inspect.isfunction):
            if hasattr(member, _MARKER):
                functions.append(cls.from_method(getattr(instance, attr_name)))
        return functions


@dataclass(frozen=True, slots=True)
class _FunctionSpec:
    name: str
    description: Optional[str]
    timeout: Optional[float]


def local_function(
    name: str,
    *,
    description: Optional[str] = None,
    timeout: Optional[float] = None,
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """
    Mark a method as a tool.

    Parameter descriptions come from ``Annotated[str, "description"]``; the
    function description defaults to the first docstring line. Parameters with
    a default value are optional.

    Example::

        class WeatherPlugin:
            @local_function("get_current_weather")
            async def current_weather(
                self, location: Annotated[str, "Ort oder Postleitzahl"]
            ) -> str:
                \"\"\"Aktuelles Wetter für einen Ort.\"\"\"
    """

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        setattr(func, _MARKER, _FunctionSpec(name, description, timeout))
        return func

    return decorator


def _annotated_description(annotation: Any) -> Optional[str]:
    if typing.get_origin(annotation) is typing.Annotated:
        for extra in typing.get_args(annotation)[1:]:
            if isinstance(extra, str):
                return extra
    return None


def _first_doc_line(func: Callable[..., Any]) -> Optional[str]:
    doc = inspect.getdoc(func)
    return doc.strip().splitlines()[0] if doc else None


def unique_names(functions: Sequence[LocalFunction]) -> None:
    """Raise ValueError if two functions share a name."""
    seen: set[str] = set()
    for function in functions:
        if function.name in seen:
            raise ValueError(f"Duplicate tool name: {function.name}")
        seen.add(function.name)
