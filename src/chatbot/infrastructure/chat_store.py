from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from threading import RLock
from typing import Any, Dict, List, Optional, Protocol, Tuple

from ..domain.chat_models import Chat, ChatMessage, StreamRecord


class ChatStore(Protocol):
    def save_chat(self, chat_id: str, user_id: str, title: str, visibility: str = "private") -> Chat: ...

    def get_or_create_chat(
        self, chat_id: str, user_id: str, title: str, visibility: str = "private"
    ) -> Tuple[Chat, bool]: ...

    def get_chat_by_id(self, chat_id: str) -> Optional[Chat]: ...

    def delete_chat_by_id(self, chat_id: str) -> Optional[Chat]: ...

    def list_chats_by_user(self, user_id: str, limit: int = 20) -> List[Chat]: ...

    def save_messages(self, messages: List[Dict[str, Any]]) -> List[ChatMessage]: ...

    def get_messages_by_chat_id(self, chat_id: str) -> List[ChatMessage]: ...

    def get_message_count_by_user_id(self, user_id: str, difference_in_hours: int = 24) -> int: ...

    def create_stream_id(self, stream_id: str, chat_id: str) -> StreamRecord: ...

    def get_stream_ids_by_chat_id(self, chat_id: str) -> List[str]: ...


@dataclass
class _Chat:
    id: str
    user_id: str
    title: str
    visibility: str
    created_at: datetime


@dataclass
class _Message:
    id: str
    chat_id: str
    role: str
    parts: List[Dict[str, Any]]
    created_at: datetime
    attachments: List[Dict[str, Any]] = field(default_factory=list)


def _utc_now() -> datetime:
    return datetime.now(UTC)


def _iso(value: datetime) -> str:
    return value.isoformat(timespec="microseconds").replace("+00:00", "Z")


class InMemoryChatStore:
    def __init__(self) -> None:
        self._chats: Dict[str, _Chat] = {}
        self._messages: Dict[str, List[_Message]] = {}
        self._streams: Dict[str, List[StreamRecord]] = {}
        self._lock = RLock()

    def _chat_model(self, chat: _Chat) -> Chat:
        return Chat(
            id=chat.id,
            user_id=chat.user_id,
            title=chat.title,
            visibility=chat.visibility,  # type: ignore[arg-type]
            created_at=_iso(chat.created_at),
        )

    def _message_model(self, message: _Message) -> ChatMessage:
        return ChatMessage(
            id=message.id,
            chat_id=message.chat_id,
            role=message.role,  # type: ignore[arg-type]
            parts=[dict(p) for p in message.parts],
            attachments=list(message.attachments),
            created_at=_iso(message.created_at),
        )

    def save_chat(self, chat_id: str, user_id: str, title: str, visibility: str = "private") -> Chat:
        with self._lock:
            if chat_id in self._chats:
                raise KeyError("Chat already exists")
            chat = _Chat(id=chat_id, user_id=user_id, title=title, visibility=visibility, created_at=_utc_now())
            self._chats[chat_id] = chat
            self._messages.setdefault(chat_id, [])
            return self._chat_model(chat)

    def get_or_create_chat(
        self, chat_id: str, user_id: str, title: str, visibility: str = "private"
    ) -> Tuple[Chat, bool]:
        """Return the stored chat, creating it first when absent. The flag is True on creation."""
        with self._lock:
            existing = self._chats.get(chat_id)
            if existing is not None:
                return self._chat_model(existing), False
            return self.save_chat(chat_id, user_id, title, visibility=visibility), True

    def get_chat_by_id(self, chat_id: str) -> Optional[Chat]:
        with self._lock:
            chat = self._chats.get(chat_id)
            if not chat:
                return None
            return self._chat_model(chat)

    def delete_chat_by_id(self, chat_id: str) -> Optional[Chat]:
        with self._lock:
            chat = self._chats.pop(chat_id, None)
            self._messages.pop(chat_id, None)
            self._streams.pop(chat_id, None)
            if not chat:
                return None
            return self._chat_model(chat)

    def list_chats_by_user(self, user_id: str, limit: int = 20) -> List[Chat]:
        with self._lock:
            chats = [c for c in self._chats.values() if c.user_id == user_id]
            # Newest first
            chats.sort(key=lambda c: c.created_at, reverse=True)
            return [self._chat_model(c) for c in chats[: max(0, limit)]]

    def save_messages(self, messages: List[Dict[str, Any]]) -> List[ChatMessage]:
        """Append a batch; either every message is stored or none is."""
        with self._lock:
            staged: List[_Message] = []
            for raw in messages:
                chat_id = raw["chat_id"]
                if chat_id not in self._chats:
                    raise KeyError("Chat not found")
                staged.append(
                    _Message(
                        id=str(raw["id"]),
                        chat_id=chat_id,
                        role=raw["role"],
                        parts=[dict(p) for p in raw.get("parts", [])],
                        attachments=list(raw.get("attachments") or []),
                        created_at=raw.get("created_at") or _utc_now(),
                    )
                )
            for msg in staged:
                self._messages.setdefault(msg.chat_id, []).append(msg)
            return [self._message_model(m) for m in staged]

    def get_messages_by_chat_id(self, chat_id: str) -> List[ChatMessage]:
        with self._lock:
            return [self._message_model(m) for m in self._messages.get(chat_id, [])]

    def get_message_count_by_user_id(self, user_id: str, difference_in_hours: int = 24) -> int:
        since = _utc_now() - timedelta(hours=difference_in_hours)
        with self._lock:
            count = 0
            for chat in self._chats.values():
                if chat.user_id != user_id:
                    continue
                for msg in self._messages.get(chat.id, []):
                    if msg.role == "user" and msg.created_at >= since:
                        count += 1
            return count

    def create_stream_id(self, stream_id: str, chat_id: str) -> StreamRecord:
        with self._lock:
            record = StreamRecord(stream_id=stream_id, chat_id=chat_id, created_at=_iso(_utc_now()))
            self._streams.setdefault(chat_id, []).append(record)
            return record

    def get_stream_ids_by_chat_id(self, chat_id: str) -> List[str]:
        with self._lock:
            return [r.stream_id for r in self._streams.get(chat_id, [])]
