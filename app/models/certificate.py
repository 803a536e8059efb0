from enum import Enum
from datetime import date, datetime
from typing import Any, Dict, Optional
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import ForeignKey, String, Text, Date, DateTime, JSON, func
from app.db.base import Base

class CertificateStatus(str, Enum):
    valid="valid"
    revoked="revoked"
    # previsto no schema, sem transição de entrada/saída
    suspended="suspended"

class Certificate(Base):
    __tablename__ = "certificates"
    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    certificate_code: Mapped[str] = mapped_column(String(40), unique=True, index=True)
    fingerprint: Mapped[str] = mapped_column(String(64), unique=True, index=True)
    content_digest: Mapped[str] = mapped_column(String(64))

    holder_name: Mapped[str] = mapped_column(String(160))
    holder_email: Mapped[str] = mapped_column(String(160), index=True)
    course_name: Mapped[str] = mapped_column(String(200))
    institution_id: Mapped[str] = mapped_column(ForeignKey("institutions.id"), index=True)
    institution_name: Mapped[str] = mapped_column(String(200))
    issue_date: Mapped[date] = mapped_column(Date)
    grade: Mapped[Optional[str]] = mapped_column(String(80), nullable=True)
    issuer_id: Mapped[str] = mapped_column(ForeignKey("users.id"))

    status: Mapped[CertificateStatus] = mapped_column(default=CertificateStatus.valid)
    transaction_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    revoked_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    revoked_by: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    revocation_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # "metadata" é reservado no declarative; atributo diferente, coluna com o nome certo
    extra: Mapped[Dict[str, Any]] = mapped_column("metadata", JSON, default=dict)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    institution = relationship("Institution", back_populates="certificates")
