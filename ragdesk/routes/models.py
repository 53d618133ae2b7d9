"""
Model-related API routes.
Handles listing the LLM models a chat request can choose from.
"""
from fastapi import APIRouter, Depends

from ..container import Container
from ..dependencies import get_container
from ..schemas import ModelCatalog

router = APIRouter(prefix="/api", tags=["models"])


@router.get("/models", response_model=ModelCatalog)
def list_available_models(container: Container = Depends(get_container)) -> ModelCatalog:
    """
    Models grouped by provider, plus the default for requests without 'model'.

    Example response:
    {
        "models": {"openai": ["gpt-4o-mini"], "ollama": ["qwen2.5:7b"]},
        "default": "openai:gpt-4o-mini"
    }
    """
    provider, model_name = container.models.resolve_model(None)
    return ModelCatalog(models=container.models.get_available_models(), default=f"{provider}:{model_name}")
