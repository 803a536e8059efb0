# app/services/verification.py
"""
Verificador: classifica um fingerprint apresentado.

Ordem das regras (a primeira que casar vence):

0. store falhou              -> error
1. nenhum registro           -> not_found
2. status revoked            -> revoked
3. status suspended          -> invalid (reason=suspended)
4. valid + fingerprint igual + (sem claims ou digest confere) -> valid
5. caso contrário            -> invalid (reason=tampered)

Toda chamada grava exatamente uma tentativa de verificação; falha nessa
gravação é logada e engolida.
"""
from __future__ import annotations

import datetime as dt
import uuid
from typing import Optional, Tuple

import structlog

from app.core.errors import CertChainError, DependencyError
from app.models.certificate import CertificateStatus
from app.models.verification import VerificationStatus
from app.schemas.certificate import Certificate
from app.schemas.verification import (
    CertificateClaims,
    Requester,
    VerificationAttempt,
    VerificationResult,
)
from app.services.fingerprint import content_digest
from app.store.base import Store

logger = structlog.get_logger(__name__)

REASON_SUSPENDED = "suspended"
REASON_TAMPERED = "tampered"

_MESSAGES = {
    (VerificationStatus.valid, None): "Certificate is valid and verified",
    (VerificationStatus.not_found, None): "Certificate not found in the database",
    (VerificationStatus.revoked, None): "This certificate has been revoked",
    (VerificationStatus.invalid, REASON_SUSPENDED): "This certificate is currently suspended",
    (VerificationStatus.invalid, REASON_TAMPERED): "Certificate data mismatch - possible tampering detected",
    (VerificationStatus.error, None): "Verification service temporarily unavailable, try again later",
}

# colunas curtas no banco; valores de scanner podem vir enormes
_MAX_USER_AGENT = 512
_MAX_IP = 64


def _claims_digest(claims: CertificateClaims) -> str:
    return content_digest(
        holder_name=claims.holder_name,
        holder_email=claims.holder_email,
        course_name=claims.course_name,
        institution_name=claims.institution_name,
        issue_date=claims.issue_date,
        grade=claims.grade,
    )


def classify(
    cert: Optional[Certificate],
    fingerprint: str,
    claims: Optional[CertificateClaims] = None,
) -> Tuple[VerificationStatus, Optional[str]]:
    if cert is None:
        return VerificationStatus.not_found, None
    if cert.status == CertificateStatus.revoked:
        return VerificationStatus.revoked, None
    if cert.status == CertificateStatus.suspended:
        return VerificationStatus.invalid, REASON_SUSPENDED
    if cert.fingerprint == fingerprint and (claims is None or _claims_digest(claims) == cert.content_digest):
        return VerificationStatus.valid, None
    return VerificationStatus.invalid, REASON_TAMPERED


def _record_attempt(store: Store, attempt: VerificationAttempt) -> None:
    try:
        store.append_verification_attempt(attempt)
    except CertChainError:
        logger.exception("verification_attempt_write_failed", certificate_id=attempt.certificate_id)


def verify_certificate(
    store: Store,
    fingerprint: str,
    *,
    requester: Optional[Requester] = None,
    claims: Optional[CertificateClaims] = None,
) -> VerificationResult:
    presented = fingerprint if isinstance(fingerprint, str) else ""
    token = presented.strip()
    now = dt.datetime.now(dt.timezone.utc)

    cert: Optional[Certificate] = None
    status: VerificationStatus
    reason: Optional[str] = None
    try:
        cert = store.find_certificate_by_fingerprint(token) if token else None
    except DependencyError:
        logger.exception("verification_lookup_failed")
        status = VerificationStatus.error
    else:
        status, reason = classify(cert, token, claims)

    req = requester or Requester()
    _record_attempt(store, VerificationAttempt(
        id=str(uuid.uuid4()),
        fingerprint=presented,
        certificate_id=cert.id if cert else None,
        result=status,
        reason=reason,
        ip_address=(req.ip_address or None) and req.ip_address[:_MAX_IP],
        user_agent=(req.user_agent or None) and req.user_agent[:_MAX_USER_AGENT],
        verified_at=now,
    ))

    logger.info("certificate_verified", result=status.value, reason=reason, certificate_id=cert.id if cert else None)
    return VerificationResult(
        status=status,
        reason=reason,
        message=_MESSAGES[(status, reason)],
        is_valid=status == VerificationStatus.valid,
        certificate=cert,
        verified_at=now,
    )
