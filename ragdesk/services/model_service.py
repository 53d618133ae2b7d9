"""
Model service for LLM provider management.
Resolves "provider:model" strings to Generator instances.
"""
import threading
from typing import Dict, List, Optional, Tuple

from ..base import Generator
from ..logging_config import logger
from ..ollama_client import OllamaGenerator
from ..openai_client import OpenAIGenerator


class ModelRegistry:
    """Available generation models and a cache of their Generator instances."""

    def __init__(
        self,
        openai_api_key: Optional[str] = None,
        openai_model: str = "gpt-4o-mini",
        ollama_url: str = "http://ollama:11434",
        ollama_models: Optional[List[str]] = None,
    ):
        self.openai_api_key = openai_api_key
        self.default_openai_model = openai_model
        self.ollama_url = ollama_url
        self.available: Dict[str, List[str]] = {
            "openai": [openai_model],
            "ollama": list(ollama_models or ["qwen2.5:7b"]),
        }
        self._generators: Dict[Tuple[str, str], Generator] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings) -> "ModelRegistry":
        return cls(
            openai_api_key=settings.openai_api_key,
            openai_model=settings.openai_model,
            ollama_url=settings.ollama_url,
            ollama_models=settings.ollama_models,
        )

    def get_available_models(self) -> Dict[str, List[str]]:
        """All available models grouped by provider."""
        return {provider: list(models) for provider, models in self.available.items()}

    def resolve_model(self, model_string: Optional[str] = None) -> Tuple[str, str]:
        """
        Resolve a model string to provider and model name.

        Args:
            model_string: Format "provider:model_name" (e.g., "openai:gpt-4o-mini")
                         or None for default

        Returns:
            Tuple of (provider, model_name)

        Examples:
            >>> registry.resolve_model("ollama:qwen2.5:7b")
            ("ollama", "qwen2.5:7b")

            >>> registry.resolve_model(None)
            ("openai", "gpt-4o-mini")
        """
        if not model_string:
            return "openai", self.default_openai_model

        provider, _, model_name = model_string.partition(":")
        if self.validate_model(provider, model_name):
            return provider, model_name

        logger.warning("Unrecognized model string, using default", model=model_string)
        return "openai", self.default_openai_model

    def validate_model(self, provider: str, model_name: str) -> bool:
        return provider in self.available and model_name in self.available[provider]

    def generator_for(self, model_string: Optional[str] = None) -> Generator:
        provider, model_name = self.resolve_model(model_string)
        key = (provider, model_name)
        with self._lock:
            generator = self._generators.get(key)
            if generator is None:
                if provider == "ollama":
                    generator = OllamaGenerator(model_name, base_url=self.ollama_url)
                else:
                    generator = OpenAIGenerator(self.openai_api_key, model=model_name)
                self._generators[key] = generator
        return generator
