# app/api/v1/certificates.py
from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Request
from fastapi.responses import Response
from pydantic import BaseModel

from app.api.deps import get_current_identity, get_store
from app.schemas.audit import AuditEntry
from app.schemas.certificate import Certificate, CertificateIssue, CertificateRevoke, CertificateStats
from app.schemas.user import Identity
from app.schemas.verification import VerificationAttempt
from app.services import certificates as svc
from app.services.qr import qr_png_bytes, verify_url
from app.store.base import Store

router = APIRouter()
holders_router = APIRouter()  # público

class CertificateHistory(BaseModel):
    audit: List[AuditEntry]
    verifications: List[VerificationAttempt]

# -------------------------- emissão --------------------------

@router.post("", response_model=Certificate, status_code=201)
def issue_certificate(
    body: CertificateIssue,
    store: Store = Depends(get_store),
    identity: Optional[Identity] = Depends(get_current_identity),
):
    return svc.issue_certificate(store, identity, body)

# -------------------------- leitura --------------------------

@router.get("", response_model=List[Certificate])
def list_certificates(
    store: Store = Depends(get_store),
    identity: Optional[Identity] = Depends(get_current_identity),
):
    return svc.list_certificates(store, identity)

@router.get("/stats", response_model=CertificateStats)
def certificate_stats(
    store: Store = Depends(get_store),
    identity: Optional[Identity] = Depends(get_current_identity),
):
    return svc.certificate_stats(store, identity)

@router.get("/{certificate_id}", response_model=Certificate)
def get_certificate(
    certificate_id: str = Path(..., min_length=1),
    store: Store = Depends(get_store),
    identity: Optional[Identity] = Depends(get_current_identity),
):
    return svc.get_certificate(store, identity, certificate_id)

@router.get("/{certificate_id}/history", response_model=CertificateHistory)
def certificate_history(
    certificate_id: str = Path(..., min_length=1),
    store: Store = Depends(get_store),
    identity: Optional[Identity] = Depends(get_current_identity),
):
    return svc.certificate_history(store, identity, certificate_id)

# QR com o link público de verificação; sem dados pessoais na imagem
@router.get("/{certificate_id}/qr", responses={200: {"content": {"image/png": {}}}})
def certificate_qr(
    request: Request,
    certificate_id: str = Path(..., min_length=1),
    store: Store = Depends(get_store),
):
    cert = svc.get_public_certificate(store, certificate_id)
    png = qr_png_bytes(verify_url(cert.fingerprint, str(request.base_url) + "api/v1"))
    return Response(content=png, media_type="image/png")

# -------------------------- revogação --------------------------

@router.post("/{certificate_id}/revoke", response_model=Certificate)
def revoke_certificate(
    certificate_id: str = Path(..., min_length=1),
    body: Optional[CertificateRevoke] = None,
    store: Store = Depends(get_store),
    identity: Optional[Identity] = Depends(get_current_identity),
):
    return svc.revoke_certificate(store, identity, certificate_id, body.reason if body else None)

# -------------------- consulta do titular (pública) --------------------

@holders_router.get("/{email}/certificates", response_model=List[Certificate])
def certificates_by_holder(email: str, store: Store = Depends(get_store)):
    return svc.list_certificates_by_holder(store, email)
