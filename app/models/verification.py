from enum import Enum
from datetime import datetime
from typing import Optional
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import ForeignKey, String, Text, DateTime, func
from app.db.base import Base

class VerificationStatus(str, Enum):
    valid="valid"
    invalid="invalid"
    revoked="revoked"
    not_found="not_found"
    # store indisponível durante a verificação (não confundir com not_found)
    error="error"

class VerificationAttempt(Base):
    __tablename__ = "verification_attempts"
    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    # valor apresentado, como veio (pode ser lixo do scanner)
    fingerprint: Mapped[str] = mapped_column(Text)
    certificate_id: Mapped[Optional[str]] = mapped_column(ForeignKey("certificates.id"), nullable=True, index=True)
    result: Mapped[VerificationStatus] = mapped_column()
    reason: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)
    ip_address: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    user_agent: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    verified_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
