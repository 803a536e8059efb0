# app/api/v1/auth.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Response
from fastapi.security import OAuth2PasswordRequestForm

from app.api.deps import get_store, require_identity
from app.core.errors import AuthenticationError
from app.core.tokens import create_access_token, create_refresh_token, decode_refresh
from app.schemas.token import LoginRequest, PasswordChange, RefreshRequest, TokenPair
from app.schemas.user import Identity, UserOut
from app.services.auth import authenticate, change_password
from app.store.base import Store

router = APIRouter()

# ---------- helpers ----------
def _user_out(identity: Identity) -> UserOut:
    return UserOut(
        id=identity.user_id,
        full_name=identity.full_name,
        email=identity.email,
        role=identity.role,
        institution_id=identity.institution_id,
        is_super_admin=identity.is_super_admin,
    )

def issue_tokens_for(identity: Identity) -> TokenPair:
    return TokenPair(
        access_token=create_access_token(sub=identity.user_id),
        refresh_token=create_refresh_token(sub=identity.user_id),
        user=_user_out(identity),
    )

# ---------- endpoints ----------
@router.post("/login", response_model=TokenPair)
def login(body: LoginRequest, store: Store = Depends(get_store)):
    return issue_tokens_for(authenticate(store, body.email, body.password))

@router.post("/token", response_model=TokenPair)
def login_oauth2_form(form: OAuth2PasswordRequestForm = Depends(), store: Store = Depends(get_store)):
    return issue_tokens_for(authenticate(store, form.username, form.password))

@router.post("/refresh", response_model=TokenPair)
def refresh(body: RefreshRequest, store: Store = Depends(get_store)):
    payload = decode_refresh(body.token)
    if not payload:
        raise AuthenticationError("Invalid token")
    identity = store.get_profile(str(payload["sub"]))
    if identity is None or not identity.is_active:
        raise AuthenticationError("User not found or inactive")
    return issue_tokens_for(identity)

@router.get("/me", response_model=UserOut)
def me(identity: Identity = Depends(require_identity)):
    return _user_out(identity)

@router.post("/password", status_code=204)
def update_password(
    body: PasswordChange,
    store: Store = Depends(get_store),
    identity: Identity = Depends(require_identity),
):
    change_password(store, identity, body.current_password, body.new_password)
    return Response(status_code=204)
