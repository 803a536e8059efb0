# app/services/auth.py
from __future__ import annotations

import uuid
from typing import Optional

import structlog

from app.core.errors import (
    AuthenticationError,
    AuthorizationError,
    CertChainError,
    ConflictError,
    ValidationError,
)
from app.core.security import hash_password, verify_and_rehash
from app.core.tokens import decode_access
from app.schemas.user import Identity, UserRecord
from app.store.base import Store

logger = structlog.get_logger(__name__)

def normalize_email(email: str) -> str:
    return (email or "").strip().lower()

def authenticate(store: Store, email: str, password: str) -> Identity:
    user = store.find_user_by_email(normalize_email(email))
    if not user or not user.is_active:
        raise AuthenticationError("Invalid credentials")
    ok, new_hash = verify_and_rehash(password or "", user.hashed_password)
    if not ok:
        raise AuthenticationError("Invalid credentials")
    if new_hash:
        # login não falha por causa do rehash; fica para o próximo
        try:
            store.update_user_password(user.id, new_hash)
            logger.info("password_rehashed", user_id=user.id)
        except CertChainError:
            logger.exception("password_rehash_failed", user_id=user.id)
    return user.to_identity()

def change_password(store: Store, identity: Optional[Identity], current_password: str, new_password: str) -> None:
    if identity is None:
        raise AuthenticationError("Authentication required")
    user = store.find_user_by_email(identity.email)
    if user is None or not user.is_active:
        raise AuthenticationError("User not found or inactive")
    ok, _ = verify_and_rehash(current_password or "", user.hashed_password)
    if not ok:
        raise AuthorizationError("Current password is incorrect")
    if current_password == new_password:
        raise ValidationError("New password must differ from the current one")
    store.update_user_password(user.id, hash_password(new_password))
    logger.info("password_changed", user_id=user.id)

def identity_from_token(store: Store, token: str) -> Identity:
    """getCurrentUser + getProfile: decodifica o bearer e carrega o perfil no store."""
    payload = decode_access(token)
    if not payload:
        raise AuthenticationError("Invalid token")
    identity = store.get_profile(str(payload["sub"]))
    if identity is None or not identity.is_active:
        raise AuthenticationError("User not found or inactive")
    return identity

def ensure_super_admin(store: Store, *, email: str, password: str, full_name: str, user_id: Optional[str] = None) -> Optional[UserRecord]:
    """Cria o super-admin se ainda não existir (seed). Retorna None se já existia."""
    email = normalize_email(email)
    if not email or not password:
        return None
    if store.find_user_by_email(email) is not None:
        return None
    try:
        user = store.insert_user(UserRecord(
            id=user_id or str(uuid.uuid4()),
            full_name=full_name,
            email=email,
            hashed_password=hash_password(password),
            role=None,
            institution_id=None,
            is_super_admin=True,
        ))
    except ConflictError:
        return None
    logger.info("super_admin_seeded", email=email)
    return user
