from __future__ import annotations
from datetime import date, datetime
from typing import Optional
from pydantic import BaseModel

from app.models.verification import VerificationStatus
from app.schemas.certificate import Certificate

class CertificateClaims(BaseModel):
    """Campos impressos no certificado, apresentados por quem verifica."""
    holder_name: str
    holder_email: str
    course_name: str
    institution_name: str
    issue_date: date
    grade: Optional[str] = None

class VerifyRequest(BaseModel):
    # sem limite: valor de scanner é classificado e registrado como veio
    fingerprint: str
    claims: Optional[CertificateClaims] = None

class Requester(BaseModel):
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None

class VerificationResult(BaseModel):
    status: VerificationStatus
    reason: Optional[str] = None
    message: str
    is_valid: bool = False
    certificate: Optional[Certificate] = None
    verified_at: datetime

class VerificationAttempt(BaseModel):
    id: str
    fingerprint: str
    certificate_id: Optional[str] = None
    result: VerificationStatus
    reason: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    verified_at: datetime
