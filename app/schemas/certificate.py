from __future__ import annotations
from datetime import date, datetime
from typing import Any, Dict, Optional
from pydantic import BaseModel, EmailStr, Field

from app.models.certificate import CertificateStatus

class CertificateIssue(BaseModel):
    holder_name: str = Field(min_length=1, max_length=160)
    holder_email: EmailStr
    course_name: str = Field(min_length=1, max_length=200)
    issue_date: date
    grade: Optional[str] = Field(default=None, max_length=80)
    metadata: Dict[str, Any] = Field(default_factory=dict)

class CertificateRevoke(BaseModel):
    reason: Optional[str] = Field(default=None, max_length=500)

class Certificate(BaseModel):
    id: str
    certificate_code: str
    fingerprint: str
    content_digest: str
    holder_name: str
    holder_email: str
    course_name: str
    institution_id: str
    institution_name: str
    issue_date: date
    grade: Optional[str] = None
    issuer_id: str
    status: CertificateStatus = CertificateStatus.valid
    transaction_id: Optional[str] = None
    revoked_at: Optional[datetime] = None
    revoked_by: Optional[str] = None
    revocation_reason: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

class CertificateStats(BaseModel):
    total: int = 0
    valid: int = 0
    revoked: int = 0
    suspended: int = 0
