# app/api/v1/admin.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query

from app.api.deps import get_current_identity, get_store
from app.models.institution import InstitutionStatus
from app.schemas.institution import Institution, StatusChange, SystemStats
from app.schemas.user import Identity
from app.services import institutions as svc
from app.store.base import Store

router = APIRouter()  # super-admin

@router.get("/institutions", response_model=List[Institution])
def list_institutions(
    status: Optional[InstitutionStatus] = Query(None),
    search: Optional[str] = Query(None, max_length=200),
    store: Store = Depends(get_store),
    identity: Optional[Identity] = Depends(get_current_identity),
):
    return svc.list_institutions(store, identity, status=status, search=search)

@router.get("/stats", response_model=SystemStats)
def get_system_stats(
    store: Store = Depends(get_store),
    identity: Optional[Identity] = Depends(get_current_identity),
):
    return svc.system_stats(store, identity)

@router.post("/institutions/{institution_id}/{operation}", response_model=Institution)
def change_institution_status(
    institution_id: str = Path(..., min_length=1),
    operation: str = Path(..., pattern="^(approve|reject|suspend|reactivate|deactivate)$"),
    body: Optional[StatusChange] = None,
    store: Store = Depends(get_store),
    identity: Optional[Identity] = Depends(get_current_identity),
):
    return svc.change_status(store, identity, institution_id, operation, body.notes if body else None)
