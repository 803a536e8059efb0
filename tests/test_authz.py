import uuid
from datetime import date

import pytest

from app.core.authz import Action, authorize, is_allowed
from app.core.errors import AuthenticationError, AuthorizationError
from app.models.institution import InstitutionStatus
from app.schemas.certificate import Certificate
from app.schemas.institution import Institution
from app.schemas.user import Identity


def _inst(status=InstitutionStatus.active, inst_id="inst-1"):
    return Institution(id=inst_id, name="Acme U", email="acme@example.com", status=status)


def _cert(institution_id="inst-1"):
    return Certificate(
        id=str(uuid.uuid4()),
        certificate_code="CERT-X-ABCDEF",
        fingerprint="f" * 64,
        content_digest="d" * 64,
        holder_name="Alice",
        holder_email="alice@example.com",
        course_name="BSc",
        institution_id=institution_id,
        institution_name="Acme U",
        issue_date=date(2024, 1, 1),
        issuer_id="u-1",
    )


def _who(role=None, institution_id="inst-1", super_admin=False, active=True):
    return Identity(
        user_id="u-1",
        email="u@example.com",
        role=role,
        institution_id=institution_id,
        is_super_admin=super_admin,
        is_active=active,
    )


@pytest.mark.parametrize("role, allowed", [("admin", True), ("issuer", True), ("viewer", False), (None, False)])
def test_issue_requires_issuing_role(role, allowed):
    assert is_allowed(_who(role), Action.issue_certificate, _inst()) is allowed


@pytest.mark.parametrize("status", [InstitutionStatus.pending, InstitutionStatus.suspended, InstitutionStatus.deactivated])
def test_issue_requires_active_institution(status):
    assert not is_allowed(_who("admin"), Action.issue_certificate, _inst(status))


def test_issue_denied_for_other_institution_and_super_admin():
    assert not is_allowed(_who("admin", institution_id="other"), Action.issue_certificate, _inst())
    assert not is_allowed(_who(None, institution_id=None, super_admin=True), Action.issue_certificate, _inst())


def test_inactive_user_is_denied_everything():
    assert not is_allowed(_who("admin", active=False), Action.issue_certificate, _inst())


def test_revoke_requires_member_of_owning_institution():
    cert = _cert()
    assert is_allowed(_who("issuer"), Action.revoke_certificate, cert)
    assert not is_allowed(_who("viewer"), Action.revoke_certificate, cert)
    assert not is_allowed(_who("admin", institution_id="other"), Action.revoke_certificate, cert)


def test_viewers_and_super_admin_can_view_certificates():
    cert = _cert()
    assert is_allowed(_who("viewer"), Action.view_certificate, cert)
    assert is_allowed(_who(None, institution_id=None, super_admin=True), Action.view_certificate, cert)
    assert not is_allowed(_who("viewer", institution_id="other"), Action.view_certificate, cert)


def test_institution_management_is_super_admin_only():
    assert is_allowed(_who(None, None, super_admin=True), Action.manage_institutions)
    assert not is_allowed(_who("admin"), Action.manage_institutions)


def test_authorize_distinguishes_missing_identity_from_denial():
    with pytest.raises(AuthenticationError):
        authorize(None, Action.issue_certificate, _inst())
    with pytest.raises(AuthorizationError):
        authorize(_who("viewer"), Action.issue_certificate, _inst())
    assert authorize(_who("admin"), Action.issue_certificate, _inst()).role == "admin"


def test_only_admin_of_live_institution_edits_it():
    assert is_allowed(_who("admin"), Action.edit_institution, _inst(InstitutionStatus.pending))
    assert not is_allowed(_who("issuer"), Action.edit_institution, _inst())
    assert not is_allowed(_who("admin", institution_id="other"), Action.edit_institution, _inst())
    assert not is_allowed(_who("admin"), Action.edit_institution, _inst(InstitutionStatus.deactivated))
