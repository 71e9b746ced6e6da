from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import unquote

from fastapi import APIRouter, Depends, Query, Request, Response, status
from fastapi.responses import JSONResponse, StreamingResponse

from ...context import AppContext, get_context
from ...domain.chat_models import PostRequestBody, RequestHints
from ...domain.errors import ChatSDKError
from ...security.auth import User, get_optional_user
from ...services.chat_turn import ChatTurnController
from ...services.streaming import UI_MESSAGE_STREAM_HEADERS


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chat", tags=["chat"])


def _header(request: Request, name: str) -> Optional[str]:
    value = request.headers.get(name)
    return unquote(value) if value else None


def request_hints(request: Request) -> RequestHints:
    """Geolocation hints as set by the edge proxy in front of the API."""
    return RequestHints(
        latitude=_header(request, "x-vercel-ip-latitude"),
        longitude=_header(request, "x-vercel-ip-longitude"),
        city=_header(request, "x-vercel-ip-city"),
        country=_header(request, "x-vercel-ip-country"),
    )


@router.post("")
async def post_chat(
    request: Request,
    ctx: AppContext = Depends(get_context),
    user: Optional[User] = Depends(get_optional_user),
):
    try:
        body = PostRequestBody.model_validate(await request.json())
    except ValueError as exc:
        logger.info("chat_request_invalid: %s", str(exc)[:200])
        raise ChatSDKError("bad_request:api")

    controller = ChatTurnController(ctx)
    try:
        turn = await controller.prepare(body, user, request_hints(request))
    except ChatSDKError:
        raise
    except Exception:
        logger.exception("post_chat_unexpected_error")
        raise

    if ctx.stream_context is not None:
        body_iter = ctx.stream_context.resumable_stream(turn.stream_id, lambda: controller.stream(turn))
    else:
        body_iter = controller.stream(turn)
    return StreamingResponse(body_iter, media_type="text/event-stream", headers=UI_MESSAGE_STREAM_HEADERS)


@router.delete("")
def delete_chat(
    id: Optional[str] = Query(None),
    ctx: AppContext = Depends(get_context),
    user: Optional[User] = Depends(get_optional_user),
):
    if not id:
        raise ChatSDKError("bad_request:api")
    if user is None:
        raise ChatSDKError("unauthorized:chat")
    chat = ctx.chats.get_chat_by_id(id)
    if chat is None:
        raise ChatSDKError("not_found:chat")
    if chat.user_id != user.id:
        raise ChatSDKError("forbidden:chat")
    deleted = ctx.chats.delete_chat_by_id(id)
    return JSONResponse(status_code=status.HTTP_200_OK, content=deleted.model_dump() if deleted else None)


@router.get("/{chat_id}/stream")
async def resume_chat_stream(
    chat_id: str,
    ctx: AppContext = Depends(get_context),
    user: Optional[User] = Depends(get_optional_user),
):
    if user is None:
        raise ChatSDKError("unauthorized:chat")
    chat = ctx.chats.get_chat_by_id(chat_id)
    if chat is None:
        raise ChatSDKError("not_found:chat")
    if chat.visibility == "private" and chat.user_id != user.id:
        raise ChatSDKError("forbidden:chat")

    if ctx.stream_context is None:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    stream_ids = ctx.chats.get_stream_ids_by_chat_id(chat_id)
    if not stream_ids:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    replay = await ctx.stream_context.resume_existing_stream(stream_ids[-1])
    if replay is None:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    return StreamingResponse(replay, media_type="text/event-stream", headers=UI_MESSAGE_STREAM_HEADERS)
