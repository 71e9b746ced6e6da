from __future__ import annotations

from typing import Annotated, Any, Dict, List, Literal, Optional, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


VisibilityType = Literal["public", "private"]
ChatModelId = Literal["chat-model", "chat-model-reasoning"]
Role = Literal["system", "user", "assistant"]


class TextPart(BaseModel):
    type: Literal["text"]
    text: str = Field(min_length=1, max_length=2000)


class FilePart(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type: Literal["file"]
    media_type: Literal["image/jpeg", "image/png"] = Field(alias="mediaType")
    name: str = Field(min_length=1, max_length=100)
    url: str


UserMessagePart = Annotated[Union[TextPart, FilePart], Field(discriminator="type")]


class UserMessage(BaseModel):
    id: UUID
    role: Literal["user"]
    parts: List[UserMessagePart] = Field(min_length=1)

    def text(self) -> str:
        return "\n".join(p.text for p in self.parts if isinstance(p, TextPart))


class PostRequestBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: UUID
    message: UserMessage
    selected_chat_model: ChatModelId = Field(alias="selectedChatModel")
    selected_visibility_type: VisibilityType = Field(alias="selectedVisibilityType")


class Chat(BaseModel):
    id: str
    user_id: str
    title: str
    visibility: VisibilityType = "private"
    created_at: str


class ChatMessage(BaseModel):
    id: str
    chat_id: str
    role: Role
    parts: List[Dict[str, Any]]
    attachments: List[Dict[str, Any]] = []
    created_at: str


class StreamRecord(BaseModel):
    stream_id: str
    chat_id: str
    created_at: str


class RequestHints(BaseModel):
    latitude: Optional[str] = None
    longitude: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
