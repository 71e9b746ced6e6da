from __future__ import annotations

import json
import logging

from ..domain.chat_models import UserMessage
from .model_router import ModelProvider
from .prompts import TITLE_PROMPT


logger = logging.getLogger(__name__)

MAX_TITLE_CHARS = 80
DEFAULT_TITLE = "New chat"


def _fallback_title(message: UserMessage) -> str:
    text = " ".join(message.text().split())
    return text[:MAX_TITLE_CHARS] or DEFAULT_TITLE


def _clean(raw: str) -> str:
    title = " ".join(raw.split()).strip().strip("\"'").replace(":", "")
    return title[:MAX_TITLE_CHARS]


async def generate_title_from_user_message(provider: ModelProvider, message: UserMessage) -> str:
    prompt = json.dumps(message.model_dump(mode="json", by_alias=True), ensure_ascii=False)
    try:
        model = provider.language_model("title-model")
        title = _clean(await model.complete(TITLE_PROMPT, prompt))
    except Exception as exc:
        logger.warning("title_generation_failed; using message text. %s", str(exc))
        return _fallback_title(message)
    return title or _fallback_title(message)
