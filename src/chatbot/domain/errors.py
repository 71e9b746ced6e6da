from __future__ import annotations

"""Error taxonomy shared by the API routers and the chat turn.

Every request-boundary failure is a :class:`ChatSDKError` whose ``code`` is
``"<type>:<surface>"``. The type selects the HTTP status, the full code selects
the user-facing message.
"""

import logging
from typing import Dict, Optional

from fastapi import Request
from fastapi.responses import JSONResponse


logger = logging.getLogger(__name__)

ERROR_TYPES = ("bad_request", "unauthorized", "forbidden", "not_found", "rate_limit", "offline")
SURFACES = ("chat", "auth", "api", "stream", "database", "history", "document", "suggestions")

# Surfaces whose details are logged instead of returned to the client
_LOG_ONLY_SURFACES = {"database"}

_STATUS_BY_TYPE: Dict[str, int] = {
    "bad_request": 400,
    "unauthorized": 401,
    "forbidden": 403,
    "not_found": 404,
    "rate_limit": 429,
    "offline": 503,
}

_MESSAGES: Dict[str, str] = {
    "bad_request:api": "The request couldn't be processed. Please check your input and try again.",
    "unauthorized:auth": "You need to sign in before continuing.",
    "forbidden:auth": "Your account does not have access to this feature.",
    "rate_limit:chat": "You have exceeded your maximum number of messages for the day. Please try again later.",
    "not_found:chat": "The requested chat was not found. Please check the chat ID and try again.",
    "forbidden:chat": "This chat belongs to another user. Please check the chat ID and try again.",
    "unauthorized:chat": "You need to sign in to view this chat. Please sign in and try again.",
    "offline:chat": "We're having trouble sending your message. Please check your internet connection and try again.",
    "offline:stream": "The content generation stream failed. Please try again.",
    "not_found:document": "The requested document was not found. Please check the document ID and try again.",
    "forbidden:document": "This document belongs to another user. Please check the document ID and try again.",
    "unauthorized:document": "You need to sign in to view this document. Please sign in and try again.",
    "bad_request:document": "The request to create or update the document was invalid. Please check your input and try again.",
}

GENERIC_MESSAGE = "Something went wrong. Please try again later."
DATABASE_MESSAGE = "An error occurred while executing a database query."


class ChatSDKError(Exception):
    def __init__(self, code: str, cause: Optional[str] = None) -> None:
        error_type, _, surface = code.partition(":")
        if error_type not in _STATUS_BY_TYPE or surface not in SURFACES:
            raise ValueError(f"Unknown error code: {code}")
        super().__init__(_MESSAGES.get(code, GENERIC_MESSAGE))
        self.code = code
        self.type = error_type
        self.surface = surface
        self.cause = cause
        self.status_code = _STATUS_BY_TYPE[error_type]

    @property
    def message(self) -> str:
        return str(self)

    def to_response(self) -> JSONResponse:
        if self.surface in _LOG_ONLY_SURFACES:
            logger.error("database_error", extra={"code": self.code, "cause": self.cause})
            return JSONResponse(status_code=self.status_code, content={"code": "", "message": DATABASE_MESSAGE})
        return JSONResponse(
            status_code=self.status_code,
            content={"code": self.code, "message": self.message, "cause": self.cause},
        )


class UnknownDocumentKind(ChatSDKError):
    """No handler is registered for the requested document kind."""

    def __init__(self, kind: str) -> None:
        super().__init__("bad_request:document", cause=f"No document handler registered for kind: {kind}")
        self.kind = kind


class GenerationFailed(ChatSDKError):
    """The upstream content stream failed before producing final content."""

    def __init__(self, kind: str, mode: str, cause: Optional[str] = None) -> None:
        super().__init__("offline:stream", cause=cause)
        self.kind = kind
        self.mode = mode


async def chat_sdk_error_handler(request: Request, exc: ChatSDKError) -> JSONResponse:
    return exc.to_response()
