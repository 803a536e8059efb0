# app/core/authz.py
"""
Política de autorização num só lugar: ``is_allowed(identity, action, resource)``.

Os serviços chamam ``authorize`` antes de qualquer escrita; as rotas não
repetem checagem de papel.
"""
from __future__ import annotations

from enum import Enum
from typing import Optional, Union

from app.core.errors import AuthenticationError, AuthorizationError
from app.models.institution import InstitutionStatus
from app.models.user import UserRole
from app.schemas.certificate import Certificate
from app.schemas.institution import Institution
from app.schemas.user import Identity

ROLE_ADMIN = UserRole.admin.value
ROLE_ISSUER = UserRole.issuer.value
ROLE_VIEWER = UserRole.viewer.value

_ISSUING_ROLES = {ROLE_ADMIN, ROLE_ISSUER}
_MEMBER_ROLES = {ROLE_ADMIN, ROLE_ISSUER, ROLE_VIEWER}


class Action(str, Enum):
    issue_certificate = "issue_certificate"
    revoke_certificate = "revoke_certificate"
    view_certificate = "view_certificate"
    view_institution = "view_institution"
    edit_institution = "edit_institution"
    manage_institution_users = "manage_institution_users"
    manage_institutions = "manage_institutions"  # só super-admin
    view_system = "view_system"                  # só super-admin


Resource = Union[Institution, Certificate, None]


def _member_of(identity: Identity, institution_id: Optional[str], roles: set[str]) -> bool:
    return (
        institution_id is not None
        and identity.institution_id == institution_id
        and identity.role in roles
    )


def is_allowed(identity: Optional[Identity], action: Action, resource: Resource = None) -> bool:
    if identity is None or not identity.is_active:
        return False

    if action in (Action.manage_institutions, Action.view_system):
        return identity.is_super_admin

    if action == Action.issue_certificate:
        # só admin/issuer de instituição ativa emite; super-admin sem vínculo não
        return (
            isinstance(resource, Institution)
            and resource.status == InstitutionStatus.active
            and _member_of(identity, resource.id, _ISSUING_ROLES)
        )

    if action == Action.revoke_certificate:
        return isinstance(resource, Certificate) and _member_of(
            identity, resource.institution_id, _ISSUING_ROLES
        )

    if action == Action.view_certificate:
        if not isinstance(resource, Certificate):
            return False
        return identity.is_super_admin or _member_of(identity, resource.institution_id, _MEMBER_ROLES)

    if action == Action.view_institution:
        if not isinstance(resource, Institution):
            return False
        return identity.is_super_admin or _member_of(identity, resource.id, _MEMBER_ROLES)

    if action == Action.edit_institution:
        return (
            isinstance(resource, Institution)
            and resource.status != InstitutionStatus.deactivated
            and _member_of(identity, resource.id, {ROLE_ADMIN})
        )

    if action == Action.manage_institution_users:
        return isinstance(resource, Institution) and _member_of(identity, resource.id, {ROLE_ADMIN})

    return False


def authorize(identity: Optional[Identity], action: Action, resource: Resource = None) -> Identity:
    """Levanta ``AuthenticationError`` sem identidade, ``AuthorizationError`` se negado."""
    if identity is None:
        raise AuthenticationError("Authentication required")
    if not is_allowed(identity, action, resource):
        raise AuthorizationError(f"Not allowed to {action.value.replace('_', ' ')}")
    return identity
