from __future__ import annotations

"""Process-wide configuration, read once from the environment.

The resulting :class:`AppConfig` is frozen and handed to every request through
the application context; nothing below keeps mutable module state.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
import os
from typing import Mapping, Optional


@dataclass(frozen=True)
class ModelSpec:
    """Concrete provider/model behind a logical model id."""

    provider: str
    model: str
    temperature: Optional[float] = 0.2


# logical id -> (override env var, default model, temperature)
# Reasoning models reject a temperature parameter.
MODEL_DEFAULTS: Mapping[str, tuple[str, str, Optional[float]]] = MappingProxyType(
    {
        "chat-model": ("CHATBOT_CHAT_MODEL", "gpt-4o-mini", 0.2),
        "chat-model-reasoning": ("CHATBOT_REASONING_MODEL", "o4-mini", None),
        "title-model": ("CHATBOT_TITLE_MODEL", "gpt-4o-mini", 0.2),
        "artifact-model": ("CHATBOT_ARTIFACT_MODEL", "gpt-4o-mini", 0.2),
    }
)

DEFAULT_MAX_STEPS = 5


def _env_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None:
        return default
    try:
        value = int(raw)
        return value if value > 0 else default
    except ValueError:
        return default


def _parse_model(raw: str, default_provider: str) -> tuple[str, str]:
    """Accept ``model`` or ``provider:model``."""
    value = raw.strip()
    if ":" in value:
        provider, _, model = value.partition(":")
        if provider in ("openai", "xai", "local") and model:
            return provider, model
    return default_provider, value


@dataclass(frozen=True)
class AppConfig:
    models: Mapping[str, ModelSpec]
    default_provider: str = "openai"
    max_steps: int = DEFAULT_MAX_STEPS
    redis_url: Optional[str] = None
    guest_max_messages: int = 20
    regular_max_messages: int = 100
    env: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    @staticmethod
    def from_env(env: Optional[Mapping[str, str]] = None) -> "AppConfig":
        source = dict(env if env is not None else os.environ)
        default_provider = (source.get("CHATBOT_MODEL_PROVIDER") or "openai").strip().lower()
        models = {}
        for model_id, (env_name, default_model, temperature) in MODEL_DEFAULTS.items():
            provider, model = _parse_model(source.get(env_name) or default_model, default_provider)
            models[model_id] = ModelSpec(provider=provider, model=model, temperature=temperature)
        return AppConfig(
            models=MappingProxyType(models),
            default_provider=default_provider,
            max_steps=_env_int(source, "CHATBOT_MAX_STEPS", DEFAULT_MAX_STEPS),
            redis_url=source.get("REDIS_URL") or None,
            guest_max_messages=_env_int(source, "CHATBOT_GUEST_MAX_MESSAGES", 20),
            regular_max_messages=_env_int(source, "CHATBOT_REGULAR_MAX_MESSAGES", 100),
            env=MappingProxyType(source),
        )
