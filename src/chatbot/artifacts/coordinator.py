from __future__ import annotations

"""Runs one document create/update through the handler registered for its kind.

The coordinator keeps no state between calls. Handlers stream parts through
the writer they are given and return the final content; the coordinator only
hands that final string back once the handler has finished, and turns any
failure into :class:`GenerationFailed` so callers never persist a partial
artifact.
"""

from dataclasses import dataclass, field
import logging
import time
from typing import Any, Dict, Literal, Mapping, Optional, Union

from prometheus_client import Counter

from ..domain.docs_models import Document
from ..domain.errors import ChatSDKError, GenerationFailed
from .registry import DocumentHandlerRegistry, PartWriter


LOG = logging.getLogger("chatbot.artifacts")

Mode = Literal["create", "update"]

ARTIFACT_GENERATIONS = Counter(
    "chatbot_artifact_generations_total",
    "Artifact document generations by kind, mode and outcome",
    labelnames=("kind", "mode", "status"),
)


@dataclass
class CreateInput:
    title: str
    aux_context: Optional[Mapping[str, Any]] = field(default=None)


@dataclass
class UpdateInput:
    document: Document
    description: str


class _CountingWriter:
    def __init__(self, inner: PartWriter) -> None:
        self._inner = inner
        self.count = 0

    def write(self, part: Dict[str, Any]) -> None:
        self._inner.write(part)
        self.count += 1


class ArtifactCoordinator:
    def __init__(self, registry: DocumentHandlerRegistry) -> None:
        self._registry = registry

    @property
    def kinds(self):
        return self._registry.kinds

    async def produce(
        self,
        kind: str,
        mode: Mode,
        payload: Union[CreateInput, UpdateInput],
        writer: PartWriter,
    ) -> str:
        handler = self._registry.get(kind)
        counting = _CountingWriter(writer)
        started = time.perf_counter()
        try:
            if mode == "create":
                if not isinstance(payload, CreateInput):
                    raise TypeError("create requires CreateInput")
                content = await handler.on_create_document(payload.title, payload.aux_context, counting)
            elif mode == "update":
                if not isinstance(payload, UpdateInput):
                    raise TypeError("update requires UpdateInput")
                content = await handler.on_update_document(payload.document, payload.description, counting)
            else:
                raise ValueError(f"Unknown mode: {mode}")
        except ChatSDKError:
            ARTIFACT_GENERATIONS.labels(kind=kind, mode=mode, status="error").inc()
            raise
        except Exception as exc:
            ARTIFACT_GENERATIONS.labels(kind=kind, mode=mode, status="error").inc()
            LOG.warning(
                "artifact_generation_failed",
                extra={"kind": kind, "mode": mode, "parts": counting.count, "error": str(exc)},
            )
            raise GenerationFailed(kind, mode, cause=str(exc)) from exc

        if not isinstance(content, str):
            ARTIFACT_GENERATIONS.labels(kind=kind, mode=mode, status="error").inc()
            raise GenerationFailed(kind, mode, cause=f"handler returned {type(content).__name__}")

        ARTIFACT_GENERATIONS.labels(kind=kind, mode=mode, status="ok").inc()
        LOG.info(
            "artifact_generated",
            extra={
                "kind": kind,
                "mode": mode,
                "parts": counting.count,
                "chars": len(content),
                "duration_ms": int((time.perf_counter() - started) * 1000),
            },
        )
        return content
