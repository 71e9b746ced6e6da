from __future__ import annotations

"""Authentication utilities: JWT handling and session resolution.

This module provides:
- the ``User`` session model (guest or regular)
- JWT encode/decode helpers
- a FastAPI dependency resolving the optional current user

Env vars:
- JWT_SECRET (required in prod; default for dev)
- JWT_EXPIRES_MIN (default 60)
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Literal, Mapping, Optional

import logging
import os
import uuid
import jwt
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel

from ..domain.errors import ChatSDKError


logger = logging.getLogger(__name__)
bearer_scheme = HTTPBearer(auto_error=False)

UserType = Literal["guest", "regular"]


@dataclass(frozen=True)
class JwtConfig:
    secret: str
    algorithm: str = "HS256"
    expires_min: int = 60

    @staticmethod
    def from_env(env: Optional[Mapping[str, str]] = None) -> "JwtConfig":
        source = env if env is not None else os.environ
        secret = source.get("JWT_SECRET") or "dev-secret-change-me"
        try:
            expires = int(source.get("JWT_EXPIRES_MIN", "60"))
        except ValueError:
            expires = 60
        return JwtConfig(secret=secret, expires_min=expires)


class User(BaseModel):
    id: str
    email: str
    type: UserType = "regular"


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: User


def new_guest_user() -> User:
    return User(id=str(uuid.uuid4()), email=f"guest-{int(datetime.now(timezone.utc).timestamp() * 1000)}", type="guest")


def create_access_token(user: User, cfg: JwtConfig) -> str:
    now = datetime.now(timezone.utc)
    exp = now + timedelta(minutes=cfg.expires_min)
    payload = {
        "sub": user.id,
        "email": user.email,
        "type": user.type,
        "iat": int(now.timestamp()),
        "exp": int(exp.timestamp()),
    }
    return jwt.encode(payload, cfg.secret, algorithm=cfg.algorithm)


def decode_token(token: str, cfg: JwtConfig) -> User:
    try:
        data = jwt.decode(token, cfg.secret, algorithms=[cfg.algorithm])
        return User(id=data["sub"], email=data.get("email", ""), type=data.get("type", "regular"))
    except jwt.ExpiredSignatureError:
        raise ChatSDKError("unauthorized:auth", cause="Token expired")
    except (jwt.InvalidTokenError, KeyError, ValueError):
        raise ChatSDKError("unauthorized:auth", cause="Invalid token")


def jwt_config_from_request(request: Request) -> JwtConfig:
    return request.app.state.context.jwt


def get_optional_user(
    request: Request,
    creds: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[User]:
    """Resolve the session, or None when there is no usable bearer token.

    Routes decide which ``unauthorized:<surface>`` error a missing session maps to.
    """
    if creds is None or not creds.scheme or creds.scheme.lower() != "bearer":
        return None
    try:
        return decode_token(creds.credentials, jwt_config_from_request(request))
    except ChatSDKError as exc:
        logger.info("auth_token_rejected", extra={"cause": exc.cause})
        return None


def get_current_user(user: Optional[User] = Depends(get_optional_user)) -> User:
    if user is None:
        raise ChatSDKError("unauthorized:auth")
    return user
