from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from ...context import AppContext, get_context
from ...domain.errors import ChatSDKError
from ...security.auth import User, get_optional_user


router = APIRouter(prefix="/history", tags=["history"])


@router.get("")
def list_history(
    limit: int = Query(10, ge=1, le=100),
    ctx: AppContext = Depends(get_context),
    user: Optional[User] = Depends(get_optional_user),
):
    if user is None:
        raise ChatSDKError("unauthorized:chat")
    chats = ctx.chats.list_chats_by_user(user.id, limit=limit + 1)
    return {
        "chats": [c.model_dump() for c in chats[:limit]],
        "hasMore": len(chats) > limit,
    }
