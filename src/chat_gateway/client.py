"""
Chat clients: one uniform ``call`` over several LLM backends.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, ClassVar, Final, Optional, Self, Sequence

from anthropic import AsyncAnthropic
from openai import AsyncOpenAI

from chat_gateway._exceptions import classify_error
from chat_gateway.adapters import (
    AnthropicRequestAdapter,
    OpenAIRequestAdapter,
    OpenAIResponsesAdapter,
)
from chat_gateway.functions import unique_names
from chat_gateway.loop import LoopLimits, RequestAdapter, run_tool_loop
from chat_gateway.providers import DISPLAY_NAMES, Provider, get_api_key
from chat_gateway.ratelimit import LeakyBucketRateLimiter
from chat_gateway.types.chat import (
    ChatParameters,
    ImageContent,
    Message,
    PreparedChatParameters,
    Role,
    TextContent,
)

IMAGES_NOT_SUPPORTED_TEXT: Final = "Dieses Modell kann keine Bilder beschreiben."


class BaseChatClient(ABC):
    """
    Abstract base class for the backend clients.

    A client owns one SDK client, one rate limiter and the loop ceilings. It is
    safe to share between concurrent conversations: every ``call`` works on its
    own copies of the history and the request template.
    """

    provider: ClassVar[Provider]
    supports_images: ClassVar[bool] = True
    _sdk_client_type: ClassVar[type]

    def __init__(
        self,
        model: str,
        *,
        logger: Optional[logging.Logger] = None,
        name: Optional[str] = None,
        rate_limiter: Optional[LeakyBucketRateLimiter] = None,
        limits: Optional[LoopLimits] = None,
    ) -> None:
        self.model = model
        self.logger = logger or logging.getLogger(__name__)
        self.name = name or self.__class__.__name__
        self.rate_limiter = rate_limiter or LeakyBucketRateLimiter()
        self.limits = limits or LoopLimits()

    @classmethod
    def from_client(
        cls,
        model: str,
        client: Any,
        *,
        logger: Optional[logging.Logger] = None,
        name: Optional[str] = None,
        rate_limiter: Optional[LeakyBucketRateLimiter] = None,
        limits: Optional[LoopLimits] = None,
    ) -> Self:
        """
        Build a chat client around an already-configured SDK client.
        """
        if not isinstance(client, cls._sdk_client_type):
            raise TypeError(
                f"{cls.__name__}.from_client expects {cls._sdk_client_type.__name__}; "
                f"got {type(client).__name__}"
            )

        self = cls.__new__(cls)  # bypass __init__
        BaseChatClient.__init__(
            self, model, logger=logger, name=name, rate_limiter=rate_limiter, limits=limits
        )
        self._client = client
        self._adapter = self._make_adapter()
        return self

    @abstractmethod
    def _make_adapter(self) -> RequestAdapter:
        ...

    @abstractmethod
    async def _send(self, request: dict[str, Any]) -> Any:
        """Perform one round-trip with fully built request keyword arguments."""
        ...

    @property
    def adapter(self) -> RequestAdapter:
        return self._adapter

    @property
    def backend(self) -> str:
        """Human-readable backend name used in log lines and error texts."""
        return DISPLAY_NAMES[self.provider]

    # --- public API --------------------------------------------------------
    def prepare_parameters(self, parameters: ChatParameters) -> PreparedChatParameters:
        """
        Compile *parameters* into this backend's request template.

        The result is immutable and independent of later changes to
        *parameters*; prepare once per tool set and reuse it across calls.
        """
        if parameters is None:
            raise ValueError("parameters must not be None")
        snapshot = parameters.snapshot()
        unique_names(snapshot.available_local_functions)
        return PreparedChatParameters(
            provider=self.provider,
            original=snapshot,
            request=self._adapter.prepare(snapshot),
        )

    async def call(
        self,
        system_prompt: Optional[str],
        history: Sequence[Message],
        prepared: PreparedChatParameters,
        *,
        timeout: Optional[float] = None,
    ) -> Optional[str]:
        """
        Run one chat turn, including any tool calls the model asks for.

        Returns:
            The answer text, ``None`` when the rate limiter denied the call, or
            a German error text when the backend failed.

        Raises:
            ValueError: *history* is None or *prepared* belongs to another backend.
            TypeError: *prepared* is not a PreparedChatParameters.
            TimeoutError: *timeout* elapsed before the turn completed.
        """
        if history is None:
            raise ValueError("history must not be None")
        if not isinstance(prepared, PreparedChatParameters):
            raise TypeError(
                f"prepared must be PreparedChatParameters; got {type(prepared).__name__}"
            )
        if prepared.provider != self.provider:
            raise ValueError(
                f"Parameters were prepared for {prepared.provider}, not for {self.provider}"
            )

        if not self.rate_limiter.try_admit():
            self._log("Rate limit exceeded, call dropped", logging.WARNING)
            return None

        async with asyncio.timeout(timeout):
            return await self._call(system_prompt, list(history), prepared)

    async def describe_image(
        self,
        prompt: str,
        image: bytes,
        mime_type: str,
        *,
        timeout: Optional[float] = None,
    ) -> Optional[str]:
        """Ask the model to describe a single image. No tools are offered."""
        if not self.supports_images:
            self._log(f"Model {self.model} cannot describe images", logging.WARNING)
            return IMAGES_NOT_SUPPORTED_TEXT

        message = Message(Role.USER, [TextContent(prompt), ImageContent(image, mime_type)])
        prepared = self.prepare_parameters(ChatParameters())
        return await self.call(None, [message], prepared, timeout=timeout)

    async def _call(
        self,
        system_prompt: Optional[str],
        history: list[Message],
        prepared: PreparedChatParameters,
    ) -> str:
        template = prepared.request_kwargs()

        async def send(items: list[Any]) -> Any:
            request = self._adapter.build_request(template, system_prompt, items)
            self._log(
                f"Sending request to {self.backend} model {self.model} ({len(items)} items)",
                logging.DEBUG,
            )
            return await self._send(request)

        try:
            messages = self._adapter.build_messages(
                system_prompt, history, prepared.original.prefill
            )
            return await run_tool_loop(
                send,
                self._adapter,
                messages,
                prepared,
                limits=self.limits,
                logger=self.logger,
            )
        except Exception as exc:
            return classify_error(exc, self.backend, self.logger).user_message

    def _log(self, message: str, level: int = logging.INFO) -> None:
        self.logger.log(level, f"[{self.name}] {message}")

    # --- lifecycle ---------------------------------------------------------
    async def aclose(self) -> None:
        """
        Close the underlying SDK client. Safe to call multiple times.
        """
        client = getattr(self, "_client", None)
        close = getattr(client, "close", None)
        if close:
            await close()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()


class _OpenAISDKClient(BaseChatClient):
    """Clients backed by ``AsyncOpenAI``."""

    _sdk_client_type = AsyncOpenAI
    default_base_url: ClassVar[Optional[str]] = None

    def __init__(
        self,
        model: str,
        *,
        api_key: str,
        timeout: float = 60.0,
        max_retries: int = 2,
        base_url: Optional[str] = None,
        logger: Optional[logging.Logger] = None,
        name: Optional[str] = None,
        rate_limiter: Optional[LeakyBucketRateLimiter] = None,
        limits: Optional[LoopLimits] = None,
    ) -> None:
        super().__init__(
            model, logger=logger, name=name, rate_limiter=rate_limiter, limits=limits
        )
        self._client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url or self.default_base_url,
            timeout=timeout,
            max_retries=max_retries,
        )
        self._adapter = self._make_adapter()


class OpenAIChatClient(_OpenAISDKClient):
    """OpenAI through the Responses API."""

    provider = Provider.OPENAI

    def _make_adapter(self) -> RequestAdapter:
        return OpenAIResponsesAdapter(self.backend, logger=self.logger)

    async def _send(self, request: dict[str, Any]) -> Any:
        return await self._client.responses.create(model=self.model, **request)


class OpenAICompletionsChatClient(_OpenAISDKClient):
    """OpenAI through the Chat Completions API."""

    provider = Provider.OPENAI_CHAT
    max_tokens_param: ClassVar[str] = "max_completion_tokens"

    def _make_adapter(self) -> RequestAdapter:
        return OpenAIRequestAdapter(
            self.backend,
            supports_images=self.supports_images,
            max_tokens_param=self.max_tokens_param,
            logger=self.logger,
        )

    async def _send(self, request: dict[str, Any]) -> Any:
        return await self._client.chat.completions.create(model=self.model, **request)


class GeminiChatClient(OpenAICompletionsChatClient):
    """Gemini via the OpenAI-compatible endpoint."""

    provider = Provider.GEMINI
    default_base_url = "https://generativelanguage.googleapis.com/v1beta/openai/"
    max_tokens_param = "max_tokens"


class MoonshotChatClient(OpenAICompletionsChatClient):
    """Moonshot (Kimi) via the OpenAI-compatible endpoint. Text only."""

    provider = Provider.MOONSHOT
    supports_images = False
    default_base_url = "https://api.moonshot.ai/v1"
    max_tokens_param = "max_tokens"


class AnthropicChatClient(BaseChatClient):
    """Anthropic through the Messages API."""

    provider = Provider.ANTHROPIC
    _sdk_client_type = AsyncAnthropic

    def __init__(
        self,
        model: str,
        *,
        api_key: str,
        timeout: float = 60.0,
        max_retries: int = 2,
        base_url: Optional[str] = None,
        logger: Optional[logging.Logger] = None,
        name: Optional[str] = None,
        rate_limiter: Optional[LeakyBucketRateLimiter] = None,
        limits: Optional[LoopLimits] = None,
    ) -> None:
        super().__init__(
            model, logger=logger, name=name, rate_limiter=rate_limiter, limits=limits
        )
        self._client = AsyncAnthropic(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
            max_retries=max_retries,
        )
        self._adapter = self._make_adapter()

    def _make_adapter(self) -> RequestAdapter:
        return AnthropicRequestAdapter(self.backend, logger=self.logger)

    async def _send(self, request: dict[str, Any]) -> Any:
        return await self._client.messages.create(model=self.model, **request)


# Factory for creating chat clients

_CLIENT_REGISTRY: dict[Provider, type[BaseChatClient]] = {
    Provider.OPENAI: OpenAIChatClient,
    Provider.OPENAI_CHAT: OpenAICompletionsChatClient,
    Provider.ANTHROPIC: AnthropicChatClient,
    Provider.GEMINI: GeminiChatClient,
    Provider.MOONSHOT: MoonshotChatClient,
}


def create_client(
    provider: Provider,
    model: str,
    *,
    api_key: str | None = None,
    client: AsyncOpenAI | AsyncAnthropic | None = None,
    logger: logging.Logger | None = None,
    rate_limiter: LeakyBucketRateLimiter | None = None,
    limits: LoopLimits | None = None,
    **provider_kwargs: Any,
) -> BaseChatClient:
    """
    Factory for creating any supported chat client.

    Args:
        provider: Which backend to use.
        model: Model identifier (e.g. "gpt-4.1-mini", "claude-sonnet-4-0").
        api_key: Overrides automatic lookup; if omitted, pulled from env.
        client: Optional pre-configured SDK client to use.
            - For Provider.ANTHROPIC: an AsyncAnthropic instance
            - For every other provider: an AsyncOpenAI instance, already
              pointed at the provider's base URL
        logger: Optional custom logger.
        rate_limiter: Shared admission gate; a fresh default bucket otherwise.
        limits: Tool loop ceilings.
        **provider_kwargs: Passed to the client constructor (timeout,
            max_retries, base_url, name). With *client* only ``name`` is
            accepted; anything else raises TypeError.
    """
    try:
        client_cls = _CLIENT_REGISTRY[Provider(provider)]
    except (KeyError, ValueError) as exc:
        raise ValueError(f"Unsupported provider: {provider}") from exc

    if client is not None:  # use caller-supplied client verbatim
        unused = sorted(set(provider_kwargs) - {"name"})
        if unused:
            raise TypeError(
                f"{', '.join(unused)} cannot be applied to a caller-supplied client; "
                "configure the SDK client instead"
            )
        return client_cls.from_client(
            model,
            client,
            logger=logger,
            rate_limiter=rate_limiter,
            limits=limits,
            name=provider_kwargs.get("name"),
        )

    key = api_key or get_api_key(client_cls.provider)
    return client_cls(
        model,
        api_key=key,
        logger=logger,
        rate_limiter=rate_limiter,
        limits=limits,
        **provider_kwargs,
    )
