# app/store/memory.py
from __future__ import annotations

import datetime as dt
from typing import Any, Dict, List, Optional, Tuple

from app.core.errors import ConflictError, NotFoundError
from app.models.institution import InstitutionStatus
from app.schemas.audit import AuditEntry
from app.schemas.certificate import Certificate
from app.schemas.institution import Institution
from app.schemas.user import Identity, UserRecord
from app.schemas.verification import VerificationAttempt
from app.store.base import Store

_EPOCH = dt.datetime(1970, 1, 1, tzinfo=dt.timezone.utc)


def _newest_first(rows, attr: str):
    return sorted(rows, key=lambda r: getattr(r, attr) or _EPOCH, reverse=True)


class InMemoryStore(Store):
    """Store em memória, mesmas garantias de unicidade do banco. Só para testes."""

    def __init__(self) -> None:
        self.certificates: Dict[str, Certificate] = {}
        self.institutions: Dict[str, Institution] = {}
        self.users: Dict[str, UserRecord] = {}
        self.attempts: List[VerificationAttempt] = []
        self.audit_logs: List[AuditEntry] = []

    # ---------------- certificados ----------------

    def insert_certificate(self, cert: Certificate) -> Certificate:
        for other in self.certificates.values():
            if other.fingerprint == cert.fingerprint:
                raise ConflictError("Duplicate certificate fingerprint", details={"field": "fingerprint"})
            if other.certificate_code == cert.certificate_code:
                raise ConflictError("Duplicate certificate code", details={"field": "certificate_code"})
        self.certificates[cert.id] = cert.model_copy(deep=True)
        inst = self.institutions.get(cert.institution_id)
        if inst is not None:
            inst.certificate_count += 1
        return cert.model_copy(deep=True)

    def find_certificate_by_fingerprint(self, fingerprint: str) -> Optional[Certificate]:
        for cert in self.certificates.values():
            if cert.fingerprint == fingerprint:
                return cert.model_copy(deep=True)
        return None

    def find_certificate_by_id(self, certificate_id: str) -> Optional[Certificate]:
        cert = self.certificates.get(certificate_id)
        return cert.model_copy(deep=True) if cert else None

    def update_certificate(self, certificate_id: str, patch: Dict[str, Any]) -> Certificate:
        cert = self.certificates.get(certificate_id)
        if cert is None:
            raise NotFoundError("Certificate not found")
        updated = cert.model_copy(update=patch, deep=True)
        self.certificates[certificate_id] = updated
        return updated.model_copy(deep=True)

    def find_certificates_by_holder_email(self, email: str) -> List[Certificate]:
        email = email.strip().lower()
        rows = [c for c in self.certificates.values() if c.holder_email.lower() == email]
        return [c.model_copy(deep=True) for c in _newest_first(rows, "created_at")]

    def list_certificates(self, institution_id: Optional[str] = None) -> List[Certificate]:
        rows = [
            c for c in self.certificates.values()
            if institution_id is None or c.institution_id == institution_id
        ]
        return [c.model_copy(deep=True) for c in _newest_first(rows, "created_at")]

    # ---------------- verificações ----------------

    def append_verification_attempt(self, attempt: VerificationAttempt) -> None:
        self.attempts.append(attempt.model_copy(deep=True))

    def list_verification_attempts(self, certificate_id: str) -> List[VerificationAttempt]:
        rows = [a for a in self.attempts if a.certificate_id == certificate_id]
        return [a.model_copy(deep=True) for a in _newest_first(rows, "verified_at")]

    def count_verification_attempts(self, institution_id: Optional[str] = None) -> int:
        if institution_id is None:
            return len(self.attempts)
        owned = {c.id for c in self.certificates.values() if c.institution_id == institution_id}
        return sum(1 for a in self.attempts if a.certificate_id in owned)

    # ---------------- instituições ----------------

    def insert_institution(self, institution: Institution) -> Institution:
        if any(i.email.lower() == institution.email.lower() for i in self.institutions.values()):
            raise ConflictError("Institution email already registered", details={"field": "email"})
        self.institutions[institution.id] = institution.model_copy(deep=True)
        return institution.model_copy(deep=True)

    def insert_institution_with_admin(
        self, institution: Institution, admin: UserRecord
    ) -> Tuple[Institution, UserRecord]:
        # checa as duas unicidades antes de gravar qualquer coisa
        if any(i.email.lower() == institution.email.lower() for i in self.institutions.values()):
            raise ConflictError("Institution email already registered", details={"field": "email"})
        if any(u.email.lower() == admin.email.lower() for u in self.users.values()):
            raise ConflictError("User email already registered", details={"field": "admin.email"})
        return self.insert_institution(institution), self.insert_user(admin)

    def get_institution(self, institution_id: str) -> Optional[Institution]:
        inst = self.institutions.get(institution_id)
        return inst.model_copy(deep=True) if inst else None

    def update_institution(self, institution_id: str, patch: Dict[str, Any]) -> Institution:
        inst = self.institutions.get(institution_id)
        if inst is None:
            raise NotFoundError("Institution not found")
        updated = inst.model_copy(update=patch, deep=True)
        self.institutions[institution_id] = updated
        return updated.model_copy(deep=True)

    def find_institutions(
        self, status: Optional[InstitutionStatus] = None, search: Optional[str] = None
    ) -> List[Institution]:
        rows = list(self.institutions.values())
        if status is not None:
            rows = [i for i in rows if i.status == status]
        if search:
            needle = search.lower()
            rows = [i for i in rows if needle in i.name.lower() or needle in i.email.lower()]
        return [i.model_copy(deep=True) for i in _newest_first(rows, "created_at")]

    # ---------------- identidade ----------------

    def insert_user(self, user: UserRecord) -> UserRecord:
        if self.find_user_by_email(user.email) is not None:
            raise ConflictError("User email already registered", details={"field": "email"})
        self.users[user.id] = user.model_copy(deep=True)
        return user.model_copy(deep=True)

    def find_user_by_email(self, email: str) -> Optional[UserRecord]:
        email = email.strip().lower()
        for user in self.users.values():
            if user.email.lower() == email:
                return user.model_copy(deep=True)
        return None

    def get_profile(self, user_id: str) -> Optional[Identity]:
        user = self.users.get(user_id)
        return user.to_identity() if user else None

    def update_user_password(self, user_id: str, hashed_password: str) -> None:
        user = self.users.get(user_id)
        if user is None:
            raise NotFoundError("User not found")
        user.hashed_password = hashed_password

    # ---------------- auditoria ----------------

    def append_audit_log(self, entry: AuditEntry) -> None:
        self.audit_logs.append(entry.model_copy(deep=True))

    def list_audit_logs(
        self, certificate_id: Optional[str] = None, institution_id: Optional[str] = None
    ) -> List[AuditEntry]:
        rows = [
            e for e in self.audit_logs
            if (certificate_id is None or e.certificate_id == certificate_id)
            and (institution_id is None or e.institution_id == institution_id)
        ]
        return [e.model_copy(deep=True) for e in _newest_first(rows, "created_at")]
