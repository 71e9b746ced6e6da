"""Artifact chat backend.

Importing the package configures logging for both trees it logs on: the named
event loggers under ``chatbot`` and the module loggers under this package.
"""

import logging
import os
from typing import Mapping, Optional


LOG_FORMAT = "[CHATBOT][%(levelname)s] %(name)s: %(message)s"
HANDLER_NAME = "chatbot-stream"
_LOGGER_ROOTS = ("chatbot", __name__)


def _level(raw: Optional[str], default: int) -> int:
    if not raw:
        return default
    value = getattr(logging, raw.strip().upper(), None)
    return value if isinstance(value, int) else default


def configure_logging(env: Optional[Mapping[str, str]] = None) -> None:
    """Attach one stream handler per logger root and apply the env levels.

    ``CHATBOT_LOG_LEVEL`` sets both roots; ``CHATBOT_LLM_LOG_LEVEL`` overrides
    ``chatbot.llm`` only. Safe to call again: handlers are not duplicated.
    """
    source = env if env is not None else os.environ
    level = _level(source.get("CHATBOT_LOG_LEVEL"), logging.INFO)
    for name in _LOGGER_ROOTS:
        logger = logging.getLogger(name)
        if not any(h.get_name() == HANDLER_NAME for h in logger.handlers):
            handler = logging.StreamHandler()
            handler.set_name(HANDLER_NAME)
            handler.setFormatter(logging.Formatter(LOG_FORMAT))
            logger.addHandler(handler)
        logger.setLevel(level)
    logging.getLogger("chatbot.llm").setLevel(_level(source.get("CHATBOT_LLM_LOG_LEVEL"), level))


configure_logging()
