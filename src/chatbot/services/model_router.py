"""Resolve logical model ids to concrete chat model clients.

The provider does not hold any per-request state: it is built once from the
:class:`~src.chatbot.config.AppConfig` and shared by reference. Every provider
is reached through the OpenAI-compatible ``ChatOpenAI`` client.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Optional

from langchain_openai import ChatOpenAI

from ..config import AppConfig
from .llm import LanguageModel


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProviderSelection:
    """Returned details about the provider that should handle a model id."""

    model_id: str
    name: str
    model: str
    api_key_env: Optional[str]
    base_url: Optional[str]
    requires_api_key: bool = True
    temperature: Optional[float] = 0.2


class ModelProvider:
    PROVIDER_CONFIG: Dict[str, Dict[str, Optional[str] | bool]] = {
        "openai": {
            "api_key_env": "OPENAI_API_KEY",
            "base_url_env": "OPENAI_BASE_URL",
            "default_base_url": "https://api.openai.com/v1",
        },
        "xai": {
            "api_key_env": "XAI_API_KEY",
            "base_url_env": "XAI_BASE_URL",
            "default_base_url": "https://api.x.ai/v1",
        },
        "local": {
            "api_key_env": "LOCAL_API_KEY",
            "base_url_env": "LOCAL_BASE_URL",
            "default_base_url": "http://127.0.0.1:11434/v1",
            "requires_api_key": False,
        },
    }

    def __init__(self, config: AppConfig) -> None:
        self._config = config
        self._env = config.env

    def provider_available(self, provider: str) -> bool:
        cfg = self.PROVIDER_CONFIG.get(provider)
        if not cfg:
            return False
        if not cfg.get("requires_api_key", True):
            return True
        api_key_env = cfg.get("api_key_env")
        return bool(api_key_env and self._env.get(str(api_key_env)))

    def resolve(self, model_id: str) -> ProviderSelection:
        spec = self._config.models.get(model_id)
        if spec is None:
            raise KeyError(f"Unknown model id: {model_id}")
        cfg = self.PROVIDER_CONFIG.get(spec.provider)
        if cfg is None:
            raise KeyError(f"Unknown provider: {spec.provider}")
        base_url_env = cfg.get("base_url_env")
        base_url = self._env.get(str(base_url_env)) if base_url_env else None
        return ProviderSelection(
            model_id=model_id,
            name=spec.provider,
            model=spec.model,
            api_key_env=cfg.get("api_key_env"),  # type: ignore[arg-type]
            base_url=base_url or cfg.get("default_base_url"),  # type: ignore[arg-type]
            requires_api_key=bool(cfg.get("requires_api_key", True)),
            temperature=spec.temperature,
        )

    def language_model(self, model_id: str) -> LanguageModel:
        selection = self.resolve(model_id)
        api_key = self._env.get(selection.api_key_env) if selection.api_key_env else None
        if selection.requires_api_key and not api_key:
            raise RuntimeError("LLM not configured")

        logger.info(
            "Using LLM provider name=%s model=%s base_url=%s for %s",
            selection.name,
            selection.model,
            selection.base_url,
            model_id,
        )
        client = ChatOpenAI(
            api_key=api_key or "not-needed",
            base_url=selection.base_url,
            model=selection.model,
            temperature=selection.temperature,
        )
        return LanguageModel(client, model_id=model_id, provider=selection.name)
