from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from fastapi import APIRouter, Depends, Query, Request

from ...context import AppContext, get_context
from ...domain.chart_models import ChartConfig, apply_edit
from ...domain.docs_models import ChartEdit, Document, DocumentSave
from ...domain.errors import ChatSDKError
from ...infrastructure.doc_store import parse_timestamp
from ...security.auth import User, get_optional_user


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/document", tags=["document"])


def _require(id: Optional[str], user: Optional[User]) -> Tuple[str, User]:
    if not id:
        raise ChatSDKError("bad_request:api")
    if user is None:
        raise ChatSDKError("unauthorized:document")
    return id, user


def _owned_versions(ctx: AppContext, document_id: str, user: User) -> List[Document]:
    versions = ctx.documents.get_documents_by_id(document_id)
    if not versions:
        raise ChatSDKError("not_found:document")
    if versions[0].user_id != user.id:
        raise ChatSDKError("forbidden:document")
    return versions


@router.get("")
def get_document(
    id: Optional[str] = Query(None),
    ctx: AppContext = Depends(get_context),
    user: Optional[User] = Depends(get_optional_user),
):
    document_id, current = _require(id, user)
    return [d.model_dump() for d in _owned_versions(ctx, document_id, current)]


@router.post("")
async def save_document(
    request: Request,
    id: Optional[str] = Query(None),
    ctx: AppContext = Depends(get_context),
    user: Optional[User] = Depends(get_optional_user),
):
    document_id, current = _require(id, user)
    try:
        payload = DocumentSave.model_validate(await request.json())
    except ValueError:
        raise ChatSDKError("bad_request:api")

    versions = ctx.documents.get_documents_by_id(document_id)
    if versions and versions[0].user_id != current.id:
        raise ChatSDKError("forbidden:document")
    doc = ctx.documents.save_document(
        document_id,
        title=payload.title,
        kind=payload.kind,
        content=payload.content,
        user_id=current.id,
    )
    return doc.model_dump()


@router.delete("")
def delete_document_versions(
    id: Optional[str] = Query(None),
    timestamp: Optional[str] = Query(None),
    ctx: AppContext = Depends(get_context),
    user: Optional[User] = Depends(get_optional_user),
):
    if not timestamp:
        raise ChatSDKError("bad_request:api")
    document_id, current = _require(id, user)
    _owned_versions(ctx, document_id, current)
    try:
        cutoff = parse_timestamp(timestamp)
    except ValueError:
        raise ChatSDKError("bad_request:api")
    deleted = ctx.documents.delete_documents_after(document_id, cutoff)
    return [d.model_dump() for d in deleted]


@router.post("/chart")
async def edit_chart(
    request: Request,
    id: Optional[str] = Query(None),
    ctx: AppContext = Depends(get_context),
    user: Optional[User] = Depends(get_optional_user),
):
    """Apply an editor mutation and save the re-serialized chart as a new version."""
    document_id, current = _require(id, user)
    try:
        edit = ChartEdit.model_validate(await request.json())
    except ValueError:
        raise ChatSDKError("bad_request:api")

    versions = _owned_versions(ctx, document_id, current)
    latest = versions[-1]
    if latest.kind != "chart":
        raise ChatSDKError("bad_request:document")

    config, recovered = ChartConfig.from_content(latest.content, default_title=latest.title)
    if recovered:
        logger.warning("chart_content_recovered", extra={"document_id": latest.id})
    updated = apply_edit(
        config,
        chart_type=edit.type,
        title=edit.title,
        x_axis=edit.x_axis,
        y_axis=edit.y_axis,
        csv=edit.csv,
    )
    doc = ctx.documents.save_document(
        latest.id,
        title=updated.title or latest.title,
        kind="chart",
        content=updated.serialize(),
        user_id=current.id,
        chat_id=latest.chat_id,
    )
    return {"document": doc.model_dump(), "chart": updated.model_dump(by_alias=True)}
