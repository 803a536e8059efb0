# app/services/audit.py
from __future__ import annotations

import datetime as dt
import uuid
from typing import Any, Dict, Optional

import structlog

from app.core.errors import CertChainError
from app.models.audit import AuditAction, AuditActionType
from app.schemas.audit import AuditEntry
from app.schemas.user import Identity
from app.store.base import Store

logger = structlog.get_logger(__name__)

def record_audit(
    store: Store,
    *,
    action_type: AuditActionType,
    action: AuditAction,
    identity: Optional[Identity],
    certificate_id: Optional[str] = None,
    institution_id: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
) -> None:
    """Best effort: falha ao gravar auditoria não desfaz a operação já persistida."""
    entry = AuditEntry(
        id=str(uuid.uuid4()),
        certificate_id=certificate_id,
        institution_id=institution_id,
        action_type=action_type,
        action=action,
        performed_by=identity.user_id if identity else None,
        performed_by_email=identity.email if identity else None,
        details=details or {},
        created_at=dt.datetime.now(dt.timezone.utc),
    )
    try:
        store.append_audit_log(entry)
    except CertChainError:
        logger.exception("audit_write_failed", action_type=action_type.value, action=action.value)
