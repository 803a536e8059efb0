# app/store/sql.py
from __future__ import annotations

import datetime as dt
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Tuple

import sqlalchemy as sa
from sqlalchemy import select, func, or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
import structlog

from app.core.errors import ConflictError, DependencyError, NotFoundError
from app.models.audit import AuditLog
from app.models.certificate import Certificate as CertificateModel
from app.models.institution import Institution as InstitutionModel, InstitutionStatus
from app.models.user import User
from app.models.verification import VerificationAttempt as AttemptModel
from app.schemas.audit import AuditEntry
from app.schemas.certificate import Certificate
from app.schemas.institution import Institution
from app.schemas.user import Identity, UserRecord
from app.schemas.verification import VerificationAttempt
from app.store.base import Store

logger = structlog.get_logger(__name__)

def _now() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)

# -------------------------- conversões --------------------------

def _cert_out(c: CertificateModel) -> Certificate:
    return Certificate(
        id=c.id,
        certificate_code=c.certificate_code,
        fingerprint=c.fingerprint,
        content_digest=c.content_digest,
        holder_name=c.holder_name,
        holder_email=c.holder_email,
        course_name=c.course_name,
        institution_id=c.institution_id,
        institution_name=c.institution_name,
        issue_date=c.issue_date,
        grade=c.grade,
        issuer_id=c.issuer_id,
        status=c.status,
        transaction_id=c.transaction_id,
        revoked_at=c.revoked_at,
        revoked_by=c.revoked_by,
        revocation_reason=c.revocation_reason,
        metadata=c.extra or {},
        created_at=c.created_at,
        updated_at=c.updated_at,
    )

def _inst_out(i: InstitutionModel) -> Institution:
    return Institution(
        id=i.id,
        name=i.name,
        email=i.email,
        website=i.website,
        address=i.address,
        phone=i.phone,
        status=i.status,
        approved_by=i.approved_by,
        approved_at=i.approved_at,
        approval_notes=i.approval_notes,
        certificate_count=i.certificate_count or 0,
        created_at=i.created_at,
        updated_at=i.updated_at,
    )

def _user_out(u: User) -> UserRecord:
    return UserRecord(
        id=u.id,
        full_name=u.full_name,
        email=u.email,
        hashed_password=u.hashed_password,
        role=u.role,
        institution_id=u.institution_id,
        is_super_admin=bool(u.is_super_admin),
        is_active=bool(u.is_active),
    )

def _attempt_out(a: AttemptModel) -> VerificationAttempt:
    return VerificationAttempt(
        id=a.id,
        fingerprint=a.fingerprint,
        certificate_id=a.certificate_id,
        result=a.result,
        reason=a.reason,
        ip_address=a.ip_address,
        user_agent=a.user_agent,
        verified_at=a.verified_at,
    )

def _audit_out(e: AuditLog) -> AuditEntry:
    return AuditEntry(
        id=e.id,
        certificate_id=e.certificate_id,
        institution_id=e.institution_id,
        action_type=e.action_type,
        action=e.action,
        performed_by=e.performed_by,
        performed_by_email=e.performed_by_email,
        details=e.details,
        created_at=e.created_at,
    )

def _without_none(data: Dict[str, Any], *keys: str) -> Dict[str, Any]:
    # deixa o server_default agir quando o serviço não informou o timestamp
    return {k: v for k, v in data.items() if not (k in keys and v is None)}

# ----------------------------- store -----------------------------

class SqlStore(Store):
    """Store sobre uma Session SQLAlchemy (uma por request)."""

    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def _guard(self, op: str) -> Iterator[None]:
        try:
            yield
        except IntegrityError as exc:
            self.db.rollback()
            raise ConflictError(f"Unique constraint violated on {op}", details=str(getattr(exc, "orig", exc))) from exc
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("store_failure", op=op, error=str(exc))
            raise DependencyError(f"Store failure on {op}", details=str(exc)) from exc

    # ---------------- certificados ----------------

    def insert_certificate(self, cert: Certificate) -> Certificate:
        data = cert.model_dump()
        data["extra"] = data.pop("metadata") or {}
        with self._guard("insert_certificate"):
            row = CertificateModel(**_without_none(data, "created_at", "updated_at"))
            self.db.add(row)
            self.db.execute(
                sa.update(InstitutionModel)
                .where(InstitutionModel.id == cert.institution_id)
                .values(certificate_count=InstitutionModel.certificate_count + 1)
            )
            self.db.commit()
            self.db.refresh(row)
            return _cert_out(row)

    def find_certificate_by_fingerprint(self, fingerprint: str) -> Optional[Certificate]:
        with self._guard("find_certificate_by_fingerprint"):
            row = self.db.execute(
                select(CertificateModel).where(CertificateModel.fingerprint == fingerprint)
            ).scalar_one_or_none()
            return _cert_out(row) if row else None

    def find_certificate_by_id(self, certificate_id: str) -> Optional[Certificate]:
        with self._guard("find_certificate_by_id"):
            row = self.db.get(CertificateModel, certificate_id)
            return _cert_out(row) if row else None

    def update_certificate(self, certificate_id: str, patch: Dict[str, Any]) -> Certificate:
        with self._guard("update_certificate"):
            row = self.db.get(CertificateModel, certificate_id)
            if not row:
                raise NotFoundError("Certificate not found")
            for k, v in patch.items():
                setattr(row, "extra" if k == "metadata" else k, v)
            row.updated_at = _now()
            self.db.add(row); self.db.commit(); self.db.refresh(row)
            return _cert_out(row)

    def find_certificates_by_holder_email(self, email: str) -> List[Certificate]:
        with self._guard("find_certificates_by_holder_email"):
            rows = self.db.execute(
                select(CertificateModel)
                .where(func.lower(CertificateModel.holder_email) == email.strip().lower())
                .order_by(CertificateModel.created_at.desc())
            ).scalars().all()
            return [_cert_out(r) for r in rows]

    def list_certificates(self, institution_id: Optional[str] = None) -> List[Certificate]:
        stmt = select(CertificateModel).order_by(CertificateModel.created_at.desc())
        if institution_id is not None:
            stmt = stmt.where(CertificateModel.institution_id == institution_id)
        with self._guard("list_certificates"):
            return [_cert_out(r) for r in self.db.execute(stmt).scalars().all()]

    # ---------------- verificações ----------------

    def append_verification_attempt(self, attempt: VerificationAttempt) -> None:
        with self._guard("append_verification_attempt"):
            self.db.add(AttemptModel(**_without_none(attempt.model_dump(), "verified_at")))
            self.db.commit()

    def list_verification_attempts(self, certificate_id: str) -> List[VerificationAttempt]:
        with self._guard("list_verification_attempts"):
            rows = self.db.execute(
                select(AttemptModel)
                .where(AttemptModel.certificate_id == certificate_id)
                .order_by(AttemptModel.verified_at.desc())
            ).scalars().all()
            return [_attempt_out(r) for r in rows]

    def count_verification_attempts(self, institution_id: Optional[str] = None) -> int:
        stmt = select(func.count(AttemptModel.id))
        if institution_id is not None:
            stmt = stmt.join(CertificateModel, CertificateModel.id == AttemptModel.certificate_id).where(
                CertificateModel.institution_id == institution_id
            )
        with self._guard("count_verification_attempts"):
            return int(self.db.execute(stmt).scalar() or 0)

    # ---------------- instituições ----------------

    def insert_institution(self, institution: Institution) -> Institution:
        with self._guard("insert_institution"):
            row = InstitutionModel(**_without_none(institution.model_dump(), "created_at", "updated_at"))
            self.db.add(row); self.db.commit(); self.db.refresh(row)
            return _inst_out(row)

    def insert_institution_with_admin(
        self, institution: Institution, admin: UserRecord
    ) -> Tuple[Institution, UserRecord]:
        with self._guard("insert_institution_with_admin"):
            inst_row = InstitutionModel(**_without_none(institution.model_dump(), "created_at", "updated_at"))
            user_row = User(**admin.model_dump())
            self.db.add(inst_row)
            # FK do admin exige a instituição no banco antes; tudo na mesma transação
            self.db.flush()
            self.db.add(user_row)
            self.db.commit()
            self.db.refresh(inst_row); self.db.refresh(user_row)
            return _inst_out(inst_row), _user_out(user_row)

    def get_institution(self, institution_id: str) -> Optional[Institution]:
        with self._guard("get_institution"):
            row = self.db.get(InstitutionModel, institution_id)
            return _inst_out(row) if row else None

    def update_institution(self, institution_id: str, patch: Dict[str, Any]) -> Institution:
        with self._guard("update_institution"):
            row = self.db.get(InstitutionModel, institution_id)
            if not row:
                raise NotFoundError("Institution not found")
            for k, v in patch.items():
                setattr(row, k, v)
            row.updated_at = _now()
            self.db.add(row); self.db.commit(); self.db.refresh(row)
            return _inst_out(row)

    def find_institutions(
        self, status: Optional[InstitutionStatus] = None, search: Optional[str] = None
    ) -> List[Institution]:
        stmt = select(InstitutionModel).order_by(InstitutionModel.created_at.desc())
        if status is not None:
            stmt = stmt.where(InstitutionModel.status == status)
        if search:
            like = f"%{search}%"
            stmt = stmt.where(or_(InstitutionModel.name.ilike(like), InstitutionModel.email.ilike(like)))
        with self._guard("find_institutions"):
            return [_inst_out(r) for r in self.db.execute(stmt).scalars().all()]

    # ---------------- identidade ----------------

    def insert_user(self, user: UserRecord) -> UserRecord:
        with self._guard("insert_user"):
            row = User(**user.model_dump())
            self.db.add(row); self.db.commit(); self.db.refresh(row)
            return _user_out(row)

    def find_user_by_email(self, email: str) -> Optional[UserRecord]:
        with self._guard("find_user_by_email"):
            row = self.db.execute(
                select(User).where(func.lower(User.email) == email.strip().lower())
            ).scalar_one_or_none()
            return _user_out(row) if row else None

    def get_profile(self, user_id: str) -> Optional[Identity]:
        with self._guard("get_profile"):
            row = self.db.get(User, user_id)
            return _user_out(row).to_identity() if row else None

    def update_user_password(self, user_id: str, hashed_password: str) -> None:
        with self._guard("update_user_password"):
            row = self.db.get(User, user_id)
            if not row:
                raise NotFoundError("User not found")
            row.hashed_password = hashed_password
            self.db.commit()

    # ---------------- auditoria ----------------

    def append_audit_log(self, entry: AuditEntry) -> None:
        with self._guard("append_audit_log"):
            self.db.add(AuditLog(**_without_none(entry.model_dump(), "created_at")))
            self.db.commit()

    def list_audit_logs(
        self, certificate_id: Optional[str] = None, institution_id: Optional[str] = None
    ) -> List[AuditEntry]:
        stmt = select(AuditLog).order_by(AuditLog.created_at.desc())
        if certificate_id is not None:
            stmt = stmt.where(AuditLog.certificate_id == certificate_id)
        if institution_id is not None:
            stmt = stmt.where(AuditLog.institution_id == institution_id)
        with self._guard("list_audit_logs"):
            return [_audit_out(r) for r in self.db.execute(stmt).scalars().all()]
