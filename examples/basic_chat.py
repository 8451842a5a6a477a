import asyncio

from openai import AsyncOpenAI
from chat_gateway import ChatParameters, Message, Provider, Role, create_client, get_api_key


async def chat_example_default_client():
    clients = {
        "OpenAI": create_client(Provider.OPENAI, "gpt-4.1-mini"),
        "Anthropic": create_client(Provider.ANTHROPIC, "claude-3-5-haiku-20241022"),
        "Gemini": create_client(Provider.GEMINI, "gemini-2.0-flash-lite"),
    }
    history = [Message.from_participant("sikk", "Wie heißt du?")]

    for label, llm in clients.items():
        async with llm:
            prepared = llm.prepare_parameters(ChatParameters(max_tokens=1000, temperature=0.7))
            answer = await llm.call("Du bist ein hilfreicher Assistent.", history, prepared)
            print(f"{label}: {answer}")


async def chat_example_pass_client():
    moonshot_client = AsyncOpenAI(
        api_key=get_api_key(Provider.MOONSHOT),
        base_url="https://api.moonshot.ai/v1",
        max_retries=3,
        timeout=10,
    )
    llm = create_client(Provider.MOONSHOT, "kimi-k2-0711-preview", client=moonshot_client)

    async with llm:
        prepared = llm.prepare_parameters(ChatParameters(prefill="Kurz gesagt:"))
        history = [Message.from_text(Role.USER, "Was ist ein Leaky Bucket?")]
        print("Moonshot: ", await llm.call(None, history, prepared, timeout=30))


if __name__ == "__main__":
    asyncio.run(chat_example_default_client())
    asyncio.run(chat_example_pass_client())
