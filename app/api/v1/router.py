# app/api/v1/router.py
from fastapi import APIRouter
from app.api.v1 import (
    health,
    auth,
    institutions,
    certificates,
    verify,
    admin,
)

api_router = APIRouter()

# -------- rotas públicas --------
api_router.include_router(health.router, tags=["health"])
api_router.include_router(verify.router, prefix="/verify", tags=["verify"])
api_router.include_router(certificates.holders_router, prefix="/holders", tags=["holders"])

# -------- rotas autenticadas (identidade resolvida nos serviços) --------
api_router.include_router(auth.router,         prefix="/auth",         tags=["auth"])
api_router.include_router(institutions.router, prefix="/institutions", tags=["institutions"])
api_router.include_router(certificates.router, prefix="/certificates", tags=["certificates"])
api_router.include_router(admin.router,        prefix="/admin",        tags=["super-admin"])
