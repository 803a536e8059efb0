# app/services/institutions.py
from __future__ import annotations

import datetime as dt
import uuid
from typing import Dict, List, Optional, Tuple

import structlog

from app.core.authz import Action, authorize
from app.core.errors import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from app.core.security import hash_password
from app.models.audit import AuditAction, AuditActionType
from app.models.certificate import CertificateStatus
from app.models.institution import InstitutionStatus
from app.schemas.institution import (
    Institution,
    InstitutionRegister,
    InstitutionStats,
    InstitutionUpdate,
    SystemStats,
)
from app.schemas.user import Identity, UserCreate, UserRecord
from app.services.audit import record_audit
from app.store.base import Store

logger = structlog.get_logger(__name__)

S = InstitutionStatus

# operação -> (estados de origem, destino, grava aprovação?, notas obrigatórias?)
TRANSITIONS: Dict[str, Tuple[frozenset, InstitutionStatus, bool, bool]] = {
    "approve":    (frozenset({S.pending}),             S.active,      True,  False),
    "reject":     (frozenset({S.pending}),             S.deactivated, True,  True),
    "suspend":    (frozenset({S.active}),              S.suspended,   False, True),
    "reactivate": (frozenset({S.suspended}),           S.active,      True,  False),
    "deactivate": (frozenset({S.active, S.suspended}), S.deactivated, False, True),
}

_AUDIT_ACTIONS = {
    "approve": AuditAction.approved,
    "reject": AuditAction.rejected,
    "suspend": AuditAction.suspended,
    "reactivate": AuditAction.reactivated,
    "deactivate": AuditAction.deactivated,
}

def _now_tz() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)

def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None

def _load(store: Store, institution_id: str) -> Institution:
    inst = store.get_institution(institution_id)
    if not inst:
        raise NotFoundError("Institution not found", details={"institution_id": institution_id})
    return inst

# -------------------- Cadastro --------------------

def register_institution(store: Store, body: InstitutionRegister) -> Tuple[Institution, UserRecord]:
    """Cria a instituição em ``pending`` e o primeiro usuário admin vinculado a ela."""
    name = _clean(body.institution.name)
    admin_name = _clean(body.admin.full_name)
    if not name or not admin_name:
        raise ValidationError("Institution name and admin name are required")

    admin_email = str(body.admin.email).strip().lower()
    if store.find_user_by_email(admin_email) is not None:
        raise ConflictError("User email already registered", details={"field": "admin.email"})

    now = _now_tz()
    institution_id = str(uuid.uuid4())
    inst, admin = store.insert_institution_with_admin(
        Institution(
            id=institution_id,
            name=name,
            email=str(body.institution.email).strip().lower(),
            website=_clean(body.institution.website),
            address=_clean(body.institution.address),
            phone=_clean(body.institution.phone),
            status=InstitutionStatus.pending,
            certificate_count=0,
            created_at=now,
            updated_at=now,
        ),
        UserRecord(
            id=str(uuid.uuid4()),
            full_name=admin_name,
            email=admin_email,
            hashed_password=hash_password(body.admin.password),
            role="admin",
            institution_id=institution_id,
        ),
    )
    logger.info("institution_registered", institution_id=inst.id, status=inst.status.value)
    record_audit(
        store,
        action_type=AuditActionType.institution,
        action=AuditAction.created,
        identity=admin.to_identity(),
        institution_id=inst.id,
        details={"name": inst.name},
    )
    return inst, admin

def create_institution_user(store: Store, identity: Optional[Identity], body: UserCreate) -> UserRecord:
    """Admin da instituição adiciona issuer/viewer."""
    inst = my_institution(store, identity)
    authorize(identity, Action.manage_institution_users, inst)
    return store.insert_user(UserRecord(
        id=str(uuid.uuid4()),
        full_name=body.full_name.strip(),
        email=str(body.email).strip().lower(),
        hashed_password=hash_password(body.password),
        role=body.role,
        institution_id=inst.id,
    ))

def update_my_institution(store: Store, identity: Optional[Identity], body: InstitutionUpdate) -> Institution:
    """Admin edita o cadastro. Certificados já emitidos mantêm o nome impresso."""
    inst = my_institution(store, identity)
    authorize(identity, Action.edit_institution, inst)

    patch = body.model_dump(exclude_unset=True)
    if "name" in patch:
        patch["name"] = _clean(patch["name"])
        if not patch["name"]:
            raise ValidationError("Institution name cannot be blank")
    for field in ("website", "address", "phone"):
        if field in patch:
            patch[field] = _clean(patch[field])
    if not patch:
        return inst

    updated = store.update_institution(inst.id, patch)
    logger.info("institution_updated", institution_id=inst.id, fields=sorted(patch))
    return updated

# -------------------- Ciclo de vida (super-admin) --------------------

def change_status(
    store: Store,
    identity: Optional[Identity],
    institution_id: str,
    operation: str,
    notes: Optional[str] = None,
) -> Institution:
    if operation not in TRANSITIONS:
        raise ValidationError(f"Unknown institution operation '{operation}'")
    authorize(identity, Action.manage_institutions)

    sources, target, stamps_approval, needs_notes = TRANSITIONS[operation]
    notes = _clean(notes)
    if needs_notes and not notes:
        raise ValidationError(f"Notes are required to {operation} an institution")

    inst = _load(store, institution_id)
    if inst.status not in sources:
        raise InvalidTransitionError(
            f"Cannot {operation} an institution in status '{inst.status.value}'",
            details={"institution_id": inst.id, "from": inst.status.value, "to": target.value},
        )

    patch = {"status": target, "approval_notes": notes}
    if stamps_approval:
        patch.update(approved_by=identity.user_id, approved_at=_now_tz())
    updated = store.update_institution(inst.id, patch)

    logger.info("institution_status_changed", institution_id=inst.id, from_status=inst.status.value, to_status=target.value)
    record_audit(
        store,
        action_type=AuditActionType.institution,
        action=_AUDIT_ACTIONS[operation],
        identity=identity,
        institution_id=inst.id,
        details={"from": inst.status.value, "to": target.value, "notes": notes},
    )
    return updated

def approve_institution(store: Store, identity: Optional[Identity], institution_id: str, notes: Optional[str] = None) -> Institution:
    return change_status(store, identity, institution_id, "approve", notes)

def reject_institution(store: Store, identity: Optional[Identity], institution_id: str, notes: Optional[str] = None) -> Institution:
    return change_status(store, identity, institution_id, "reject", notes)

def suspend_institution(store: Store, identity: Optional[Identity], institution_id: str, notes: Optional[str] = None) -> Institution:
    return change_status(store, identity, institution_id, "suspend", notes)

def reactivate_institution(store: Store, identity: Optional[Identity], institution_id: str, notes: Optional[str] = None) -> Institution:
    return change_status(store, identity, institution_id, "reactivate", notes)

def deactivate_institution(store: Store, identity: Optional[Identity], institution_id: str, notes: Optional[str] = None) -> Institution:
    return change_status(store, identity, institution_id, "deactivate", notes)

# -------------------- Consultas --------------------

def list_institutions(
    store: Store,
    identity: Optional[Identity],
    status: Optional[InstitutionStatus] = None,
    search: Optional[str] = None,
) -> List[Institution]:
    authorize(identity, Action.manage_institutions)
    return store.find_institutions(status=status, search=_clean(search))

def my_institution(store: Store, identity: Optional[Identity]) -> Institution:
    if identity is None:
        raise AuthenticationError("Authentication required")
    if not identity.institution_id:
        raise AuthorizationError("User is not linked to an institution")
    inst = _load(store, identity.institution_id)
    authorize(identity, Action.view_institution, inst)
    return inst

def institution_stats(store: Store, identity: Optional[Identity]) -> InstitutionStats:
    inst = my_institution(store, identity)
    certs = store.list_certificates(inst.id)
    return InstitutionStats(
        total_certificates=len(certs),
        valid_certificates=sum(1 for c in certs if c.status == CertificateStatus.valid),
        revoked_certificates=sum(1 for c in certs if c.status == CertificateStatus.revoked),
        suspended_certificates=sum(1 for c in certs if c.status == CertificateStatus.suspended),
        total_verifications=store.count_verification_attempts(inst.id),
    )

def system_stats(store: Store, identity: Optional[Identity]) -> SystemStats:
    authorize(identity, Action.view_system)
    institutions = store.find_institutions()
    return SystemStats(
        total_institutions=len(institutions),
        active_institutions=sum(1 for i in institutions if i.status == InstitutionStatus.active),
        pending_institutions=sum(1 for i in institutions if i.status == InstitutionStatus.pending),
        total_certificates=len(store.list_certificates()),
        total_verifications=store.count_verification_attempts(),
    )
