# app/api/v1/institutions.py
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from app.api.deps import get_current_identity, get_store
from app.schemas.institution import Institution, InstitutionRegister, InstitutionStats, InstitutionUpdate
from app.schemas.user import Identity, UserCreate, UserOut
from app.services import institutions as svc
from app.store.base import Store

router = APIRouter()

class RegistrationOut(BaseModel):
    institution: Institution
    admin: UserOut

def _user_out(u) -> UserOut:
    return UserOut(
        id=u.id,
        full_name=u.full_name,
        email=u.email,
        role=u.role,
        institution_id=u.institution_id,
        is_super_admin=u.is_super_admin,
    )

# -------- cadastro público: instituição nasce pending --------
@router.post("/register", response_model=RegistrationOut, status_code=201)
def register_institution(body: InstitutionRegister, store: Store = Depends(get_store)):
    inst, admin = svc.register_institution(store, body)
    return RegistrationOut(institution=inst, admin=_user_out(admin))

# -------- instituição do usuário logado --------
@router.get("/me", response_model=Institution)
def get_my_institution(
    store: Store = Depends(get_store),
    identity: Optional[Identity] = Depends(get_current_identity),
):
    return svc.my_institution(store, identity)

@router.patch("/me", response_model=Institution)
def update_my_institution(
    body: InstitutionUpdate,
    store: Store = Depends(get_store),
    identity: Optional[Identity] = Depends(get_current_identity),
):
    return svc.update_my_institution(store, identity, body)

@router.get("/me/stats", response_model=InstitutionStats)
def get_my_institution_stats(
    store: Store = Depends(get_store),
    identity: Optional[Identity] = Depends(get_current_identity),
):
    return svc.institution_stats(store, identity)

@router.post("/me/users", response_model=UserOut, status_code=201)
def create_user(
    body: UserCreate,
    store: Store = Depends(get_store),
    identity: Optional[Identity] = Depends(get_current_identity),
):
    return _user_out(svc.create_institution_user(store, identity, body))
