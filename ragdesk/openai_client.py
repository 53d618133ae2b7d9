from functools import lru_cache
from typing import Optional

from openai import OpenAI

from .base import Generator
from .errors import ConfigurationError, GenerationFailure
from .logging_config import logger


@lru_cache(maxsize=4)
def get_client(api_key: Optional[str]) -> OpenAI:
    """Shared OpenAI client per API key (server-side only)."""
    if not api_key:
        raise ConfigurationError("OPENAI_API_KEY is not set. Put it in env or .env (server-side only).")
    return OpenAI(api_key=api_key)


class OpenAIGenerator(Generator):
    """Single-shot chat completion against the OpenAI API."""

    def __init__(self, api_key: Optional[str], model: str = "gpt-4o-mini", temperature: float = 0.2):
        self.api_key = api_key
        self.model = model
        self.temperature = temperature

    def complete(self, system_text: str, user_text: str) -> str:
        logger.info("Sent request to OpenAI API", model=self.model, context_length=len(user_text))
        response = get_client(self.api_key).chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system_text},
                {"role": "user", "content": user_text},
            ],
            temperature=self.temperature,
        )
        if not response.choices:
            raise GenerationFailure("Empty response from OpenAI", {"model": self.model})
        return response.choices[0].message.content or ""
