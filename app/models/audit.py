from enum import Enum
from typing import Any, Dict, Optional
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, JSON, DateTime, func
from app.db.base import Base

class AuditActionType(str, Enum):
    certificate="certificate"
    institution="institution"

class AuditAction(str, Enum):
    created="created"
    issued="issued"
    revoked="revoked"
    approved="approved"
    rejected="rejected"
    suspended="suspended"
    reactivated="reactivated"
    deactivated="deactivated"

class AuditLog(Base):
    __tablename__ = "audit_logs"
    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    certificate_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True, index=True)
    institution_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True, index=True)
    action_type: Mapped[AuditActionType] = mapped_column()
    action: Mapped[AuditAction] = mapped_column()
    performed_by: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    performed_by_email: Mapped[Optional[str]] = mapped_column(String(160), nullable=True)
    details: Mapped[Dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
