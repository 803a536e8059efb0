from __future__ import annotations
from datetime import datetime
from typing import Any, Dict, Optional
from pydantic import BaseModel

from app.models.audit import AuditAction, AuditActionType

class AuditEntry(BaseModel):
    id: str
    certificate_id: Optional[str] = None
    institution_id: Optional[str] = None
    action_type: AuditActionType
    action: AuditAction
    performed_by: Optional[str] = None
    performed_by_email: Optional[str] = None
    details: Optional[Dict[str, Any]] = None
    created_at: datetime
