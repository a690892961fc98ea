from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Any
from uuid import UUID

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext
from passlib.exc import UnknownHashError

from hr_admin.errors import UnauthorizedError
from hr_admin.settings import get_settings

bearer_scheme = HTTPBearer(auto_error=False)

JWT_ALGORITHM = "HS256"
DEFAULT_EXPIRES_IN_SECONDS = 86400
_EXPIRES_IN_PATTERN = re.compile(r"^(\d+)([smhd])$")
_UNIT_SECONDS = {"s": 1, "m": 60, "h": 3600, "d": 86400}


@lru_cache
def _pwd_context() -> CryptContext:
    return CryptContext(
        schemes=["bcrypt"],
        deprecated="auto",
        bcrypt__rounds=get_settings().salt_rounds,
    )


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def hash_password(password: str) -> str:
    return _pwd_context().hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return _pwd_context().verify(password, password_hash)
    except (ValueError, TypeError, UnknownHashError):
        # Malformed stored hashes count as a mismatch.
        return False


def parse_expires_in(value: str | None) -> int:
    match = _EXPIRES_IN_PATTERN.match((value or "").strip())
    if match is None:
        return DEFAULT_EXPIRES_IN_SECONDS
    return int(match.group(1)) * _UNIT_SECONDS[match.group(2)]


def get_expires_in() -> str:
    return get_settings().jwt_expires_in or "24h"


def create_access_token(*, user_id: UUID | str, email: str, name: str) -> tuple[str, dict[str, Any]]:
    settings = get_settings()
    now = _utcnow()
    exp = now + timedelta(seconds=parse_expires_in(get_expires_in()))
    claims: dict[str, Any] = {
        "id": str(user_id),
        "email": email,
        "name": name,
        "iat": int(now.timestamp()),
        "exp": int(exp.timestamp()),
    }
    token = jwt.encode(claims, settings.jwt_secret, algorithm=JWT_ALGORITHM)
    return token, claims


def decode_token(token: str) -> dict[str, Any]:
    settings = get_settings()
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[JWT_ALGORITHM],
            options={"require_exp": True},
        )
    except ExpiredSignatureError as exc:
        raise UnauthorizedError("Token expired", code="TOKEN_EXPIRED") from exc
    except JWTError as exc:
        raise UnauthorizedError("Invalid token", code="INVALID_TOKEN") from exc

    for key in ("id", "email", "name"):
        if not isinstance(payload.get(key), str) or not payload[key]:
            raise UnauthorizedError("Invalid token", code="INVALID_TOKEN")
    try:
        UUID(payload["id"])
    except ValueError as exc:
        raise UnauthorizedError("Invalid token", code="INVALID_TOKEN") from exc

    return payload


def require_hr_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> dict[str, Any]:
    if credentials is None:
        raw_header = request.headers.get("authorization")
        if not raw_header:
            raise UnauthorizedError("Authorization header is missing", code="MISSING_TOKEN")
        raise UnauthorizedError("Invalid token format", code="INVALID_TOKEN")
    if credentials.scheme.lower() != "bearer":
        raise UnauthorizedError("Invalid token format", code="INVALID_TOKEN")
    if not credentials.credentials:
        raise UnauthorizedError("Token is missing", code="MISSING_TOKEN")

    payload = decode_token(credentials.credentials)

    request.state.actor = "hr_user"
    request.state.actor_id = payload["id"]
    return payload


def current_user_id(claims: dict[str, Any]) -> UUID:
    return UUID(str(claims["id"]))
