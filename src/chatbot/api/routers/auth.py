from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from ...context import AppContext, get_context
from ...security.auth import TokenResponse, User, create_access_token, get_current_user, new_guest_user


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/guest", response_model=TokenResponse)
def guest_login(ctx: AppContext = Depends(get_context)) -> TokenResponse:
    user = new_guest_user()
    token = create_access_token(user, ctx.jwt)
    logger.info("guest_session_issued", extra={"user_id": user.id})
    return TokenResponse(access_token=token, expires_in=ctx.jwt.expires_min * 60, user=user)


@router.get("/me", response_model=User)
def me(user: User = Depends(get_current_user)) -> User:
    return user
