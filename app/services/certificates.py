# app/services/certificates.py
from __future__ import annotations

import datetime as dt
import uuid
from typing import Dict, List, Optional

import structlog

from app.core.authz import Action, authorize
from app.core.config import settings
from app.core.errors import (
    AlreadyRevokedError,
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from app.models.audit import AuditAction, AuditActionType
from app.models.certificate import CertificateStatus
from app.schemas.certificate import Certificate, CertificateIssue, CertificateStats
from app.schemas.user import Identity
from app.services.audit import record_audit
from app.services.fingerprint import (
    content_digest,
    generate_certificate_code,
    generate_fingerprint,
    generate_transaction_id,
)
from app.store.base import Store

logger = structlog.get_logger(__name__)

# -------------------------- Utils --------------------------

def _now_tz() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)

def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None

def _validate_issue(fields: CertificateIssue) -> CertificateIssue:
    missing = [
        name for name in ("holder_name", "holder_email", "course_name")
        if not _clean(getattr(fields, name))
    ]
    if missing:
        raise ValidationError("Missing required certificate fields", details={"missing": missing})
    return fields.model_copy(update={
        "holder_name": _clean(fields.holder_name),
        "holder_email": str(fields.holder_email).strip().lower(),
        "course_name": _clean(fields.course_name),
        "grade": _clean(fields.grade),
    })

def _load(store: Store, certificate_id: str) -> Certificate:
    cert = store.find_certificate_by_id(certificate_id)
    if not cert:
        raise NotFoundError("Certificate not found", details={"certificate_id": certificate_id})
    return cert

# -------------------- Emissão --------------------

def issue_certificate(
    store: Store,
    identity: Optional[Identity],
    fields: CertificateIssue,
    *,
    max_attempts: Optional[int] = None,
) -> Certificate:
    """
    Emite um certificado em status ``valid`` para a instituição do emissor.

    Colisão de fingerprint/código no store é tratada como retentável: os
    tokens são regerados até ``ISSUE_MAX_ATTEMPTS`` vezes.
    """
    if identity is None:
        raise AuthenticationError("Authentication required")
    fields = _validate_issue(fields)

    if not identity.institution_id:
        raise AuthorizationError("User is not linked to an institution")
    institution = store.get_institution(identity.institution_id)
    if institution is None:
        raise AuthorizationError("Institution not found for user")
    authorize(identity, Action.issue_certificate, institution)

    digest = content_digest(
        holder_name=fields.holder_name,
        holder_email=fields.holder_email,
        course_name=fields.course_name,
        institution_name=institution.name,
        issue_date=fields.issue_date,
        grade=fields.grade,
    )

    attempts = max(1, max_attempts or settings.ISSUE_MAX_ATTEMPTS)
    for attempt in range(1, attempts + 1):
        now = _now_tz()
        ts = int(now.timestamp() * 1000)
        cert = Certificate(
            id=str(uuid.uuid4()),
            certificate_code=generate_certificate_code(ts),
            fingerprint=generate_fingerprint(
                holder_name=fields.holder_name,
                holder_email=fields.holder_email,
                course_name=fields.course_name,
                institution_name=institution.name,
                issue_date=fields.issue_date,
                issuer_id=identity.user_id,
            ),
            content_digest=digest,
            holder_name=fields.holder_name,
            holder_email=fields.holder_email,
            course_name=fields.course_name,
            institution_id=institution.id,
            institution_name=institution.name,
            issue_date=fields.issue_date,
            grade=fields.grade,
            issuer_id=identity.user_id,
            status=CertificateStatus.valid,
            transaction_id=generate_transaction_id(ts),
            metadata=dict(fields.metadata or {}),
            created_at=now,
            updated_at=now,
        )
        try:
            saved = store.insert_certificate(cert)
        except ConflictError:
            if attempt == attempts:
                raise
            logger.warning("certificate_token_collision", attempt=attempt, max_attempts=attempts)
            continue

        logger.info("certificate_issued", certificate_id=saved.id, code=saved.certificate_code, institution_id=institution.id)
        record_audit(
            store,
            action_type=AuditActionType.certificate,
            action=AuditAction.issued,
            identity=identity,
            certificate_id=saved.id,
            institution_id=institution.id,
            details={"certificate_code": saved.certificate_code, "transaction_id": saved.transaction_id},
        )
        return saved

    # não alcançável: o laço retorna ou propaga
    raise ConflictError("Could not allocate unique certificate tokens")

# -------------------- Revogação --------------------

def revoke_certificate(
    store: Store,
    identity: Optional[Identity],
    certificate_id: str,
    reason: Optional[str] = None,
) -> Certificate:
    """valid -> revoked (terminal). Revogar de novo levanta ``AlreadyRevokedError``."""
    if identity is None:
        raise AuthenticationError("Authentication required")
    cert = _load(store, certificate_id)
    authorize(identity, Action.revoke_certificate, cert)

    if cert.status == CertificateStatus.revoked:
        raise AlreadyRevokedError(
            "Certificate is already revoked",
            details={"certificate_id": cert.id, "revoked_at": cert.revoked_at.isoformat() if cert.revoked_at else None},
        )
    if cert.status != CertificateStatus.valid:
        raise InvalidTransitionError(
            f"Cannot revoke a certificate in status '{cert.status.value}'",
            details={"certificate_id": cert.id},
        )

    updated = store.update_certificate(cert.id, {
        "status": CertificateStatus.revoked,
        "revoked_at": _now_tz(),
        "revoked_by": identity.user_id,
        "revocation_reason": _clean(reason),
    })
    logger.info("certificate_revoked", certificate_id=updated.id, revoked_by=identity.user_id)
    record_audit(
        store,
        action_type=AuditActionType.certificate,
        action=AuditAction.revoked,
        identity=identity,
        certificate_id=updated.id,
        institution_id=updated.institution_id,
        details={"reason": updated.revocation_reason},
    )
    return updated

# -------------------- Leitura --------------------

def get_certificate(store: Store, identity: Optional[Identity], certificate_id: str) -> Certificate:
    cert = _load(store, certificate_id)
    authorize(identity, Action.view_certificate, cert)
    return cert

def get_public_certificate(store: Store, certificate_id: str) -> Certificate:
    return _load(store, certificate_id)

def list_certificates(store: Store, identity: Optional[Identity]) -> List[Certificate]:
    if identity is None:
        raise AuthenticationError("Authentication required")
    if identity.is_super_admin and not identity.institution_id:
        return store.list_certificates()
    if not identity.institution_id:
        raise AuthorizationError("User is not linked to an institution")
    return store.list_certificates(identity.institution_id)

def list_certificates_by_holder(store: Store, email: str) -> List[Certificate]:
    email = (email or "").strip()
    if not email:
        raise ValidationError("Holder email is required")
    return store.find_certificates_by_holder_email(email)

def certificate_stats(store: Store, identity: Optional[Identity]) -> CertificateStats:
    certs = list_certificates(store, identity)
    return CertificateStats(
        total=len(certs),
        valid=sum(1 for c in certs if c.status == CertificateStatus.valid),
        revoked=sum(1 for c in certs if c.status == CertificateStatus.revoked),
        suspended=sum(1 for c in certs if c.status == CertificateStatus.suspended),
    )

def certificate_history(store: Store, identity: Optional[Identity], certificate_id: str) -> Dict[str, list]:
    cert = get_certificate(store, identity, certificate_id)
    return {
        "audit": store.list_audit_logs(certificate_id=cert.id),
        "verifications": store.list_verification_attempts(cert.id),
    }
