from __future__ import annotations

"""Process-wide collaborators, built once and attached to ``app.state``."""

from dataclasses import dataclass
import logging
from typing import Mapping, Optional

from fastapi import Request

from .artifacts import ArtifactCoordinator, DocumentHandlerRegistry, build_registry
from .config import AppConfig
from .infrastructure.chat_store import ChatStore, InMemoryChatStore
from .infrastructure.doc_store import DocumentStore, InMemoryDocumentStore
from .infrastructure.stream_context import ResumableStreamContext, build_stream_context
from .security.auth import JwtConfig
from .services.model_router import ModelProvider


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AppContext:
    config: AppConfig
    jwt: JwtConfig
    provider: ModelProvider
    registry: DocumentHandlerRegistry
    coordinator: ArtifactCoordinator
    chats: ChatStore
    documents: DocumentStore
    stream_context: Optional[ResumableStreamContext] = None


def build_context(
    env: Optional[Mapping[str, str]] = None,
    *,
    provider: Optional[ModelProvider] = None,
    chats: Optional[ChatStore] = None,
    documents: Optional[DocumentStore] = None,
    stream_context: Optional[ResumableStreamContext] = None,
) -> AppContext:
    config = AppConfig.from_env(env)
    provider = provider or ModelProvider(config)
    registry = build_registry(provider)
    if stream_context is None:
        stream_context = build_stream_context(config.redis_url)
    logger.info("app_context_built", extra={"kinds": registry.kinds, "resumable": stream_context is not None})
    return AppContext(
        config=config,
        jwt=JwtConfig.from_env(config.env),
        provider=provider,
        registry=registry,
        coordinator=ArtifactCoordinator(registry),
        chats=chats or InMemoryChatStore(),
        documents=documents or InMemoryDocumentStore(),
        stream_context=stream_context,
    )


def get_context(request: Request) -> AppContext:
    return request.app.state.context
