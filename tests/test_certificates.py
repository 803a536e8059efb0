from datetime import date

import pytest

from app.core.errors import (
    AlreadyRevokedError,
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from app.models.audit import AuditAction
from app.models.certificate import CertificateStatus
from app.models.institution import InstitutionStatus
from app.models.verification import VerificationStatus
from app.schemas.certificate import CertificateIssue
from app.services import certificates as svc
from app.services.institutions import approve_institution
from app.services.verification import verify_certificate
from app.store.memory import InMemoryStore


def _alice(**overrides):
    data = dict(
        holder_name="Alice Liddell",
        holder_email="alice@example.com",
        course_name="BSc Computer Science",
        issue_date=date(2024, 5, 15),
        grade="First Class",
    )
    data.update(overrides)
    return CertificateIssue(**data)


@pytest.fixture
def acme(store, make_institution):
    return make_institution(store)


@pytest.fixture
def issuer(store, acme, make_user):
    return make_user(store, role="issuer", institution_id=acme.id)


def test_issue_then_verify_then_revoke_walkthrough(store, make_institution, make_user):
    inst = make_institution(store, status=InstitutionStatus.pending)
    admin = make_user(store, role="admin", institution_id=inst.id)
    root = make_user(store, super_admin=True)

    with pytest.raises(AuthorizationError):
        svc.issue_certificate(store, admin, _alice())

    approve_institution(store, root, inst.id)
    cert = svc.issue_certificate(store, admin, _alice())

    assert cert.status == CertificateStatus.valid
    assert cert.institution_name == "Acme U"
    assert cert.transaction_id.startswith("tx_")
    assert store.get_institution(inst.id).certificate_count == 1

    result = verify_certificate(store, cert.fingerprint)
    assert result.status == VerificationStatus.valid
    assert result.is_valid
    assert result.certificate.id == cert.id

    revoked = svc.revoke_certificate(store, admin, cert.id, "fraud")
    assert revoked.status == CertificateStatus.revoked
    assert revoked.revoked_at is not None
    assert revoked.revoked_by == admin.user_id
    assert revoked.revocation_reason == "fraud"

    result = verify_certificate(store, cert.fingerprint)
    assert result.status == VerificationStatus.revoked
    assert not result.is_valid

    with pytest.raises(AlreadyRevokedError):
        svc.revoke_certificate(store, admin, cert.id, "again")


def test_issue_normalizes_fields_and_keeps_metadata(store, issuer):
    cert = svc.issue_certificate(
        store, issuer, _alice(holder_name="  Alice Liddell ", holder_email="Alice@Example.com", metadata={"credits": 180})
    )
    assert cert.holder_name == "Alice Liddell"
    assert cert.holder_email == "alice@example.com"
    assert cert.metadata == {"credits": 180}
    assert cert.issuer_id == issuer.user_id


def test_same_fields_twice_yield_two_distinct_certificates(store, issuer):
    a = svc.issue_certificate(store, issuer, _alice())
    b = svc.issue_certificate(store, issuer, _alice())
    assert a.fingerprint != b.fingerprint
    assert a.certificate_code != b.certificate_code
    assert a.content_digest == b.content_digest


def test_blank_fields_are_rejected_before_touching_store(store, issuer):
    with pytest.raises(ValidationError) as exc:
        svc.issue_certificate(store, issuer, _alice(holder_name="   ", course_name="  "))
    assert set(exc.value.details["missing"]) == {"holder_name", "course_name"}
    assert store.certificates == {}


def test_issue_requires_identity(store):
    with pytest.raises(AuthenticationError):
        svc.issue_certificate(store, None, _alice())


@pytest.mark.parametrize("kind", ["viewer", "super_admin", "no_institution"])
def test_issue_is_denied_for_non_issuers(store, acme, make_user, kind):
    if kind == "viewer":
        who = make_user(store, role="viewer", institution_id=acme.id)
    elif kind == "super_admin":
        who = make_user(store, super_admin=True)
    else:
        who = make_user(store, role="issuer")
    with pytest.raises(AuthorizationError):
        svc.issue_certificate(store, who, _alice())
    assert store.certificates == {}


def test_issue_is_denied_for_suspended_institution(store, make_institution, make_user):
    inst = make_institution(store, status=InstitutionStatus.suspended)
    admin = make_user(store, role="admin", institution_id=inst.id)
    with pytest.raises(AuthorizationError):
        svc.issue_certificate(store, admin, _alice())


class _CollidingStore(InMemoryStore):
    """Rejeita as primeiras ``collisions`` inserções como duplicadas."""

    def __init__(self, collisions):
        super().__init__()
        self.collisions = collisions
        self.calls = 0

    def insert_certificate(self, cert):
        self.calls += 1
        if self.calls <= self.collisions:
            raise ConflictError("Duplicate certificate fingerprint")
        return super().insert_certificate(cert)


def test_issue_retries_on_token_collision(make_institution, make_user):
    store = _CollidingStore(collisions=2)
    inst = make_institution(store)
    issuer = make_user(store, role="issuer", institution_id=inst.id)

    cert = svc.issue_certificate(store, issuer, _alice(), max_attempts=3)

    assert store.calls == 3
    assert store.find_certificate_by_id(cert.id) is not None


def test_issue_gives_up_after_max_attempts(make_institution, make_user):
    store = _CollidingStore(collisions=5)
    inst = make_institution(store)
    issuer = make_user(store, role="issuer", institution_id=inst.id)

    with pytest.raises(ConflictError):
        svc.issue_certificate(store, issuer, _alice(), max_attempts=2)
    assert store.calls == 2
    assert store.certificates == {}


def test_revoke_rules(store, acme, issuer, make_user, make_institution):
    cert = svc.issue_certificate(store, issuer, _alice())
    viewer = make_user(store, role="viewer", institution_id=acme.id)
    other = make_institution(store, name="Other U")
    outsider = make_user(store, role="admin", institution_id=other.id)
    root = make_user(store, super_admin=True)

    for who in (viewer, outsider, root):
        with pytest.raises(AuthorizationError):
            svc.revoke_certificate(store, who, cert.id)
    with pytest.raises(AuthenticationError):
        svc.revoke_certificate(store, None, cert.id)
    with pytest.raises(NotFoundError):
        svc.revoke_certificate(store, issuer, "missing-id")

    assert store.find_certificate_by_id(cert.id).status == CertificateStatus.valid


def test_revoking_suspended_certificate_is_an_invalid_transition(store, issuer):
    cert = svc.issue_certificate(store, issuer, _alice())
    store.update_certificate(cert.id, {"status": CertificateStatus.suspended})
    with pytest.raises(InvalidTransitionError):
        svc.revoke_certificate(store, issuer, cert.id, "fraud")


def test_issue_and_revoke_are_audited(store, issuer):
    cert = svc.issue_certificate(store, issuer, _alice())
    svc.revoke_certificate(store, issuer, cert.id, "fraud")
    actions = [e.action for e in store.list_audit_logs(certificate_id=cert.id)]
    assert sorted(a.value for a in actions) == [AuditAction.issued.value, AuditAction.revoked.value]


def test_audit_failure_does_not_undo_issuance(store, issuer, monkeypatch):
    def boom(entry):
        raise ConflictError("audit store down")

    monkeypatch.setattr(store, "append_audit_log", boom)
    cert = svc.issue_certificate(store, issuer, _alice())
    assert store.find_certificate_by_id(cert.id) is not None


def test_reads_stats_and_holder_lookup(store, acme, issuer, make_user):
    a = svc.issue_certificate(store, issuer, _alice())
    svc.issue_certificate(store, issuer, _alice(holder_email="bob@example.com", holder_name="Bob"))
    svc.revoke_certificate(store, issuer, a.id, "typo")
    viewer = make_user(store, role="viewer", institution_id=acme.id)

    stats = svc.certificate_stats(store, viewer)
    assert (stats.total, stats.valid, stats.revoked, stats.suspended) == (2, 1, 1, 0)

    assert [c.id for c in svc.list_certificates_by_holder(store, "ALICE@example.com")] == [a.id]
    assert svc.get_certificate(store, viewer, a.id).id == a.id
    with pytest.raises(ValidationError):
        svc.list_certificates_by_holder(store, "  ")

    verify_certificate(store, a.fingerprint)
    history = svc.certificate_history(store, viewer, a.id)
    assert len(history["verifications"]) == 1
    assert len(history["audit"]) == 2
