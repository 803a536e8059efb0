from typing import Optional

from fastapi import Depends, Header, HTTPException, Request
from sqlalchemy.orm import Session

from app.core.errors import AuthenticationError
from app.db.session import get_db
from app.schemas.user import Identity
from app.schemas.verification import Requester
from app.services.auth import identity_from_token
from app.store.base import Store
from app.store.sql import SqlStore

# ----------------------------------------------------------------------
# Store por request (sobrescrito nos testes por InMemoryStore)
# ----------------------------------------------------------------------
def get_store(db: Session = Depends(get_db)) -> Store:
    return SqlStore(db)

# ----------------------------------------------------------------------
# Lê o Bearer do header Authorization (sem usar OAuth2PasswordBearer)
# ----------------------------------------------------------------------
def get_bearer_token(authorization: Optional[str] = Header(None, alias="Authorization")) -> Optional[str]:
    if not authorization:
        return None
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise HTTPException(status_code=401, detail="Invalid Authorization header")
    return parts[1]

# ----------------------------------------------------------------------
# Identidade opcional: os serviços decidem entre 401 e 403
# ----------------------------------------------------------------------
def get_current_identity(
    token: Optional[str] = Depends(get_bearer_token),
    store: Store = Depends(get_store),
) -> Optional[Identity]:
    if token is None:
        return None
    return identity_from_token(store, token)

def require_identity(identity: Optional[Identity] = Depends(get_current_identity)) -> Identity:
    if identity is None:
        raise AuthenticationError("Missing Authorization header")
    return identity

def get_requester(request: Request) -> Requester:
    forwarded = request.headers.get("x-forwarded-for", "")
    ip = forwarded.split(",")[0].strip() if forwarded else (request.client.host if request.client else None)
    return Requester(ip_address=ip or None, user_agent=request.headers.get("user-agent"))
