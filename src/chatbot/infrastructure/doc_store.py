from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from threading import RLock
from typing import Dict, List, Optional, Protocol
import uuid

from ..domain.docs_models import Document, Suggestion


_ONE_MICROSECOND = timedelta(microseconds=1)


class DocumentStore(Protocol):
    def save_document(self, document_id: str, *, title: str, kind: str, content: str, user_id: str, chat_id: Optional[str] = None) -> Document: ...
    def get_document_by_id(self, document_id: str) -> Optional[Document]: ...
    def get_documents_by_id(self, document_id: str) -> List[Document]: ...
    def delete_documents_after(self, document_id: str, timestamp: datetime) -> List[Document]: ...
    def save_suggestions(self, suggestions: List[Dict[str, object]]) -> List[Suggestion]: ...
    def get_suggestions_by_document_id(self, document_id: str) -> List[Suggestion]: ...


@dataclass
class DocVersion:
    id: str
    chat_id: Optional[str]
    user_id: str
    kind: str
    title: str
    content: str
    created_at: datetime


def _utc_now() -> datetime:
    return datetime.now(UTC)


def _ensure_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def _isoformat_utc(value: datetime) -> str:
    return _ensure_utc(value).isoformat(timespec="microseconds").replace("+00:00", "Z")


def parse_timestamp(raw: str) -> datetime:
    """Accept ISO-8601 (``Z`` suffix allowed)."""
    return _ensure_utc(datetime.fromisoformat(raw.strip().replace("Z", "+00:00")))


class InMemoryDocumentStore:
    """Append-only document versions keyed by document id.

    Every save appends a version, so concurrent updates never overwrite each
    other's history; the most recent save is the current document.
    """

    def __init__(self) -> None:
        self._versions: Dict[str, List[DocVersion]] = {}
        self._suggestions: Dict[str, List[Suggestion]] = {}
        self._lock = RLock()

    def _model(self, v: DocVersion) -> Document:
        return Document(
            id=v.id,
            chat_id=v.chat_id,
            user_id=v.user_id,
            kind=v.kind,
            title=v.title,
            content=v.content,
            created_at=_isoformat_utc(v.created_at),
        )

    def save_document(
        self,
        document_id: str,
        *,
        title: str,
        kind: str,
        content: str,
        user_id: str,
        chat_id: Optional[str] = None,
    ) -> Document:
        with self._lock:
            versions = self._versions.setdefault(document_id, [])
            now = _utc_now()
            # Keep created_at strictly increasing so versions stay addressable by timestamp
            if versions and now <= versions[-1].created_at:
                now = versions[-1].created_at + _ONE_MICROSECOND
            dv = DocVersion(
                id=document_id,
                chat_id=chat_id if chat_id is not None else (versions[-1].chat_id if versions else None),
                user_id=user_id,
                kind=kind,
                title=title,
                content=content,
                created_at=now,
            )
            versions.append(dv)
            return self._model(dv)

    def get_document_by_id(self, document_id: str) -> Optional[Document]:
        with self._lock:
            versions = self._versions.get(document_id, [])
            if not versions:
                return None
            return self._model(versions[-1])

    def get_documents_by_id(self, document_id: str) -> List[Document]:
        with self._lock:
            return [self._model(v) for v in self._versions.get(document_id, [])]

    def delete_documents_after(self, document_id: str, timestamp: datetime) -> List[Document]:
        cutoff = _ensure_utc(timestamp)
        with self._lock:
            versions = self._versions.get(document_id, [])
            kept = [v for v in versions if v.created_at <= cutoff]
            dropped = [v for v in versions if v.created_at > cutoff]
            self._versions[document_id] = kept
            dropped_stamps = {_isoformat_utc(v.created_at) for v in dropped}
            if dropped_stamps:
                self._suggestions[document_id] = [
                    s for s in self._suggestions.get(document_id, [])
                    if s.document_created_at not in dropped_stamps
                ]
            return [self._model(v) for v in dropped]

    def save_suggestions(self, suggestions: List[Dict[str, object]]) -> List[Suggestion]:
        with self._lock:
            saved: List[Suggestion] = []
            for raw in suggestions:
                item = Suggestion(
                    id=str(raw.get("id") or uuid.uuid4()),
                    document_id=str(raw["document_id"]),
                    document_created_at=str(raw["document_created_at"]),
                    original_text=str(raw["original_text"]),
                    suggested_text=str(raw["suggested_text"]),
                    description=raw.get("description"),  # type: ignore[arg-type]
                    is_resolved=bool(raw.get("is_resolved", False)),
                    user_id=str(raw["user_id"]),
                    created_at=_isoformat_utc(_utc_now()),
                )
                self._suggestions.setdefault(item.document_id, []).append(item)
                saved.append(item)
            return saved

    def get_suggestions_by_document_id(self, document_id: str) -> List[Suggestion]:
        with self._lock:
            return list(self._suggestions.get(document_id, []))
