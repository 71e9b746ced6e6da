from __future__ import annotations

"""Maps a document kind to the pair of coroutines that produce its content."""

from dataclasses import dataclass
from threading import RLock
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Protocol

from ..domain.docs_models import Document
from ..domain.errors import UnknownDocumentKind


class PartWriter(Protocol):
    def write(self, part: Dict[str, Any]) -> None: ...


CreateFn = Callable[[str, Optional[Mapping[str, Any]], PartWriter], Awaitable[str]]
UpdateFn = Callable[[Document, str, PartWriter], Awaitable[str]]


@dataclass(frozen=True)
class DocumentHandler:
    kind: str
    on_create_document: CreateFn
    on_update_document: UpdateFn


class DocumentHandlerRegistry:
    def __init__(self, handlers: Optional[List[DocumentHandler]] = None) -> None:
        self._handlers: Dict[str, DocumentHandler] = {}
        self._frozen = False
        self._lock = RLock()
        for handler in handlers or []:
            self.register(handler)

    def register(self, handler: DocumentHandler) -> None:
        with self._lock:
            if self._frozen:
                raise RuntimeError("Document handler registry is frozen")
            if handler.kind in self._handlers:
                raise ValueError(f"Handler already registered for kind: {handler.kind}")
            self._handlers[handler.kind] = handler

    def freeze(self) -> "DocumentHandlerRegistry":
        with self._lock:
            self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def kinds(self) -> List[str]:
        return list(self._handlers.keys())

    def get(self, kind: str) -> DocumentHandler:
        handler = self._handlers.get(kind)
        if handler is None:
            raise UnknownDocumentKind(kind)
        return handler
