# app/api/v1/verify.py
from fastapi import APIRouter, Depends

from app.api.deps import get_requester, get_store
from app.schemas.verification import Requester, VerificationResult, VerifyRequest
from app.services.verification import verify_certificate
from app.store.base import Store

router = APIRouter()  # público

# sempre 200: a classificação (inclusive not_found/error) vai no corpo
# :path aceita "/" no valor lido do QR
@router.get("/{fingerprint:path}", response_model=VerificationResult)
def verify_by_fingerprint(
    fingerprint: str,
    store: Store = Depends(get_store),
    requester: Requester = Depends(get_requester),
):
    return verify_certificate(store, fingerprint, requester=requester)

@router.post("", response_model=VerificationResult)
def verify_with_claims(
    body: VerifyRequest,
    store: Store = Depends(get_store),
    requester: Requester = Depends(get_requester),
):
    return verify_certificate(store, body.fingerprint, requester=requester, claims=body.claims)
