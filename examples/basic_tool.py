from __future__ import annotations

import argparse
import asyncio
import logging
from typing import Annotated

from chat_gateway import (
    ChatParameters,
    Message,
    Provider,
    Role,
    ToolHub,
    create_client,
    local_function,
)

logger = logging.getLogger(__name__)
logging.basicConfig(level=logging.INFO)


class WeatherPlugin:
    @local_function("get_current_weather")
    async def current_weather(
        self, location: Annotated[str, "City or zip code, e.g. Dielheim"]
    ) -> str:
        """Get the current weather in a given location."""
        # imagine we call a real weather API here
        return f"{location}: 15 °C, mostly cloudy"


async def weather_turn(provider: Provider, model: str) -> None:
    """Ask about the weather and let the gateway run the tool loop."""
    hub = ToolHub()
    hub.register_provider(WeatherPlugin())

    async with create_client(provider, model) as llm:
        prepared = llm.prepare_parameters(
            ChatParameters(available_local_functions=list(hub.functions))
        )
        history = [Message.from_text(Role.USER, "What's the weather in Dielheim?")]
        answer = await llm.call("You are a weather bot.", history, prepared)
        logger.info("%s says: %s", provider.value.capitalize(), answer)


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    parser.add_argument(
        "--provider",
        choices=[p.value for p in Provider],
        default=Provider.ANTHROPIC.value,
    )
    parser.add_argument(
        "--model",
        default="claude-3-5-haiku-20241022",  # "gpt-4.1-nano", "gemini-2.0-flash-lite", "kimi-k2-0711-preview"
    )
    args = parser.parse_args()

    asyncio.run(weather_turn(Provider(args.provider), args.model))
