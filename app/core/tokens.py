# app/core/tokens.py
from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import jwt, JWTError
from app.core.config import settings

def _now() -> datetime:
    return datetime.now(timezone.utc)

def _encode(sub: str, token_type: str, expires: timedelta) -> str:
    payload: Dict[str, Any] = {
        "type": token_type,
        "sub": sub,
        "jti": uuid.uuid4().hex,
        "iat": int(_now().timestamp()),
        "exp": int((_now() + expires).timestamp()),
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)

def create_access_token(*, sub: str) -> str:
    """Access token curto (minutos); sub = id do usuário."""
    return _encode(sub, "access", timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))

def create_refresh_token(*, sub: str) -> str:
    return _encode(sub, "refresh", timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS))

def _decode(token: str, token_type: str) -> Optional[Dict[str, Any]]:
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None
    if not isinstance(payload, dict):
        return None
    if payload.get("type") != token_type:
        return None
    if not payload.get("sub") or not payload.get("jti"):
        return None
    return payload

def decode_access(token: str) -> Optional[Dict[str, Any]]:
    return _decode(token, "access")

def decode_refresh(token: str) -> Optional[Dict[str, Any]]:
    return _decode(token, "refresh")
