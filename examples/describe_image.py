"""
Describe a local image file.

Execute with: OPENAI_API_KEY=sk-... python examples/describe_image.py photo.jpg
"""
import asyncio
import logging
import mimetypes
import sys
from pathlib import Path

from chat_gateway import Provider, create_client

logging.basicConfig(level=logging.INFO)


async def main(path: Path) -> None:
    mime_type = mimetypes.guess_type(path.name)[0] or "image/jpeg"
    async with create_client(Provider.OPENAI, "gpt-4.1-mini") as llm:
        text = await llm.describe_image(
            "Beschreibe das Bild in zwei Sätzen.", path.read_bytes(), mime_type
        )
        print(text)


if __name__ == "__main__":
    asyncio.run(main(Path(sys.argv[1])))
