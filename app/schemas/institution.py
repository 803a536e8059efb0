from __future__ import annotations
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, EmailStr, Field

from app.models.institution import InstitutionStatus

class InstitutionBase(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    email: EmailStr
    website: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None

class InstitutionAdmin(BaseModel):
    full_name: str = Field(min_length=1, max_length=120)
    email: EmailStr
    password: str = Field(min_length=8, max_length=128)

class InstitutionRegister(BaseModel):
    institution: InstitutionBase
    admin: InstitutionAdmin

class Institution(InstitutionBase):
    id: str
    email: str
    status: InstitutionStatus = InstitutionStatus.pending
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    approval_notes: Optional[str] = None
    certificate_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

class StatusChange(BaseModel):
    notes: Optional[str] = Field(default=None, max_length=1000)

class InstitutionStats(BaseModel):
    total_certificates: int = 0
    valid_certificates: int = 0
    revoked_certificates: int = 0
    suspended_certificates: int = 0
    total_verifications: int = 0

class SystemStats(BaseModel):
    total_institutions: int = 0
    active_institutions: int = 0
    pending_institutions: int = 0
    total_certificates: int = 0
    total_verifications: int = 0

class InstitutionUpdate(BaseModel):
    """Campos que o admin da instituição pode editar; e-mail e status não."""
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    website: Optional[str] = Field(default=None, max_length=255)
    address: Optional[str] = None
    phone: Optional[str] = Field(default=None, max_length=30)
