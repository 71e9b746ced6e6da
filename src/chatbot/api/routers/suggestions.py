from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from ...context import AppContext, get_context
from ...domain.errors import ChatSDKError
from ...security.auth import User, get_optional_user


router = APIRouter(prefix="/suggestions", tags=["suggestions"])


@router.get("")
def list_suggestions(
    document_id: Optional[str] = Query(None, alias="documentId"),
    ctx: AppContext = Depends(get_context),
    user: Optional[User] = Depends(get_optional_user),
):
    if not document_id:
        raise ChatSDKError("bad_request:api")
    if user is None:
        raise ChatSDKError("unauthorized:suggestions")
    suggestions = ctx.documents.get_suggestions_by_document_id(document_id)
    if not suggestions:
        return []
    if suggestions[0].user_id != user.id:
        raise ChatSDKError("forbidden:api")
    return [s.model_dump() for s in suggestions]
