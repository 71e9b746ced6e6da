from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

from ..config import AppConfig


@dataclass(frozen=True)
class Entitlements:
    max_messages_per_day: int
    available_chat_model_ids: Tuple[str, ...]


def entitlements_for(user_type: str, config: AppConfig) -> Entitlements:
    models = ("chat-model", "chat-model-reasoning")
    if user_type == "guest":
        return Entitlements(max_messages_per_day=config.guest_max_messages, available_chat_model_ids=models)
    return Entitlements(max_messages_per_day=config.regular_max_messages, available_chat_model_ids=models)
