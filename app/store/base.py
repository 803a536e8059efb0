# app/store/base.py
"""
Contrato do store consumido pelo core.

Duas implementações: ``SqlStore`` (SQLAlchemy, usada pela API) e
``InMemoryStore`` (testes). Falhas de infraestrutura saem como
``DependencyError``; violações de unicidade como ``ConflictError``.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple

from app.models.institution import InstitutionStatus
from app.schemas.audit import AuditEntry
from app.schemas.certificate import Certificate
from app.schemas.institution import Institution
from app.schemas.user import Identity, UserRecord
from app.schemas.verification import VerificationAttempt


class Store(ABC):
    # ---------------- certificados ----------------

    @abstractmethod
    def insert_certificate(self, cert: Certificate) -> Certificate:
        """Persiste o certificado e incrementa ``certificate_count`` da instituição."""

    @abstractmethod
    def find_certificate_by_fingerprint(self, fingerprint: str) -> Optional[Certificate]: ...

    @abstractmethod
    def find_certificate_by_id(self, certificate_id: str) -> Optional[Certificate]: ...

    @abstractmethod
    def update_certificate(self, certificate_id: str, patch: Dict[str, Any]) -> Certificate:
        """Aplica o patch; ``NotFoundError`` se o id não existir."""

    @abstractmethod
    def find_certificates_by_holder_email(self, email: str) -> List[Certificate]: ...

    @abstractmethod
    def list_certificates(self, institution_id: Optional[str] = None) -> List[Certificate]: ...

    # ---------------- verificações ----------------

    @abstractmethod
    def append_verification_attempt(self, attempt: VerificationAttempt) -> None: ...

    @abstractmethod
    def list_verification_attempts(self, certificate_id: str) -> List[VerificationAttempt]: ...

    @abstractmethod
    def count_verification_attempts(self, institution_id: Optional[str] = None) -> int: ...

    # ---------------- instituições ----------------

    @abstractmethod
    def insert_institution(self, institution: Institution) -> Institution: ...

    @abstractmethod
    def insert_institution_with_admin(
        self, institution: Institution, admin: UserRecord
    ) -> Tuple[Institution, UserRecord]:
        """Cadastro atômico: ou grava instituição e admin, ou nenhum dos dois."""

    @abstractmethod
    def get_institution(self, institution_id: str) -> Optional[Institution]: ...

    @abstractmethod
    def update_institution(self, institution_id: str, patch: Dict[str, Any]) -> Institution: ...

    @abstractmethod
    def find_institutions(
        self, status: Optional[InstitutionStatus] = None, search: Optional[str] = None
    ) -> List[Institution]:
        """Mais recentes primeiro; ``search`` casa nome ou e-mail (case-insensitive)."""

    # ---------------- identidade ----------------

    @abstractmethod
    def insert_user(self, user: UserRecord) -> UserRecord: ...

    @abstractmethod
    def find_user_by_email(self, email: str) -> Optional[UserRecord]: ...

    @abstractmethod
    def get_profile(self, user_id: str) -> Optional[Identity]: ...

    @abstractmethod
    def update_user_password(self, user_id: str, hashed_password: str) -> None:
        """``NotFoundError`` se o usuário não existir."""

    # ---------------- auditoria ----------------

    @abstractmethod
    def append_audit_log(self, entry: AuditEntry) -> None: ...

    @abstractmethod
    def list_audit_logs(
        self, certificate_id: Optional[str] = None, institution_id: Optional[str] = None
    ) -> List[AuditEntry]: ...
