import asyncio

import aiohttp

from .base import Generator
from .errors import GenerationFailure
from .logging_config import logger

DEFAULT_OLLAMA_URL = "http://ollama:11434"


async def ollama_chat(base_url: str, model: str, messages: list, timeout_sec: float = 120) -> str:
    """
    One non-streamed chat completion from Ollama.
    Returns the assistant message content.
    """
    async with aiohttp.ClientSession() as session:
        async with session.post(
            f"{base_url}/api/chat",
            json={"model": model, "messages": messages, "stream": False},
            timeout=aiohttp.ClientTimeout(total=timeout_sec),
        ) as resp:
            resp.raise_for_status()
            data = await resp.json()
    message = data.get("message") or {}
    return message.get("content") or ""


class OllamaGenerator(Generator):
    """Generator backed by a local Ollama server."""

    def __init__(self, model: str, base_url: str = DEFAULT_OLLAMA_URL, timeout_sec: float = 120):
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout_sec = timeout_sec

    def complete(self, system_text: str, user_text: str) -> str:
        messages = [
            {"role": "system", "content": system_text},
            {"role": "user", "content": user_text},
        ]
        logger.info("Sent request to Ollama model", model=self.model, context_length=len(user_text))
        try:
            # Request handlers run in worker threads, so there is no running loop here
            return asyncio.run(ollama_chat(self.base_url, self.model, messages, self.timeout_sec))
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise GenerationFailure(f"Ollama request failed: {e}", {"model": self.model}) from e
