import uuid
from datetime import date, datetime, timezone

import pytest
from sqlalchemy.exc import OperationalError

from app.core.errors import ConflictError, DependencyError, NotFoundError
from app.models.audit import AuditAction, AuditActionType
from app.models.certificate import CertificateStatus
from app.models.institution import InstitutionStatus
from app.models.verification import VerificationStatus
from app.schemas.audit import AuditEntry
from app.schemas.certificate import Certificate
from app.schemas.verification import VerificationAttempt


def _cert(inst, issuer, **overrides):
    data = dict(
        id=str(uuid.uuid4()),
        certificate_code=f"CERT-{uuid.uuid4().hex[:8].upper()}-ABC123",
        fingerprint=uuid.uuid4().hex + uuid.uuid4().hex,
        content_digest="d" * 64,
        holder_name="Alice Liddell",
        holder_email="alice@example.com",
        course_name="BSc Computer Science",
        institution_id=inst.id,
        institution_name=inst.name,
        issue_date=date(2024, 5, 15),
        issuer_id=issuer.user_id,
        transaction_id="tx_1_abc",
        metadata={"credits": 180},
        created_at=datetime.now(timezone.utc),
    )
    data.update(overrides)
    return Certificate(**data)


@pytest.fixture
def acme(sql_store, make_institution):
    return make_institution(sql_store)


@pytest.fixture
def issuer(sql_store, acme, make_user):
    return make_user(sql_store, role="issuer", institution_id=acme.id)


def test_insert_and_find_certificate(sql_store, acme, issuer):
    saved = sql_store.insert_certificate(_cert(acme, issuer))

    by_fp = sql_store.find_certificate_by_fingerprint(saved.fingerprint)
    assert by_fp.id == saved.id
    assert by_fp.metadata == {"credits": 180}
    assert by_fp.status == CertificateStatus.valid
    assert sql_store.find_certificate_by_id(saved.id).certificate_code == saved.certificate_code
    assert sql_store.find_certificate_by_fingerprint("nope") is None
    assert sql_store.get_institution(acme.id).certificate_count == 1


def test_duplicate_fingerprint_or_code_is_conflict(sql_store, acme, issuer):
    first = sql_store.insert_certificate(_cert(acme, issuer))
    with pytest.raises(ConflictError):
        sql_store.insert_certificate(_cert(acme, issuer, fingerprint=first.fingerprint))
    with pytest.raises(ConflictError):
        sql_store.insert_certificate(_cert(acme, issuer, certificate_code=first.certificate_code))
    # rollback deixa o contador e a sessão consistentes
    assert sql_store.get_institution(acme.id).certificate_count == 1
    assert len(sql_store.list_certificates(acme.id)) == 1


def test_update_certificate(sql_store, acme, issuer):
    saved = sql_store.insert_certificate(_cert(acme, issuer))
    updated = sql_store.update_certificate(saved.id, {
        "status": CertificateStatus.revoked,
        "revoked_at": datetime.now(timezone.utc),
        "revocation_reason": "fraud",
    })
    assert updated.status == CertificateStatus.revoked
    assert updated.revocation_reason == "fraud"
    with pytest.raises(NotFoundError):
        sql_store.update_certificate("missing", {"status": CertificateStatus.revoked})


def test_holder_lookup_is_case_insensitive(sql_store, acme, issuer):
    sql_store.insert_certificate(_cert(acme, issuer))
    sql_store.insert_certificate(_cert(acme, issuer, holder_email="bob@example.com"))
    assert len(sql_store.find_certificates_by_holder_email("ALICE@example.com")) == 1


def test_verification_attempts(sql_store, acme, issuer):
    saved = sql_store.insert_certificate(_cert(acme, issuer))
    for result in (VerificationStatus.valid, VerificationStatus.valid):
        sql_store.append_verification_attempt(VerificationAttempt(
            id=str(uuid.uuid4()),
            fingerprint=saved.fingerprint,
            certificate_id=saved.id,
            result=result,
            verified_at=datetime.now(timezone.utc),
        ))
    sql_store.append_verification_attempt(VerificationAttempt(
        id=str(uuid.uuid4()),
        fingerprint="garbage",
        result=VerificationStatus.not_found,
        verified_at=datetime.now(timezone.utc),
    ))
    assert len(sql_store.list_verification_attempts(saved.id)) == 2
    assert sql_store.count_verification_attempts(acme.id) == 2
    assert sql_store.count_verification_attempts() == 3


def test_institutions_users_and_audit(sql_store, make_institution, make_user):
    pending = make_institution(sql_store, name="Acme U", status=InstitutionStatus.pending)
    make_institution(sql_store, name="Beta College")

    with pytest.raises(ConflictError):
        make_institution(sql_store, name="Dup", email=pending.email)

    updated = sql_store.update_institution(pending.id, {"status": InstitutionStatus.active})
    assert updated.status == InstitutionStatus.active
    assert [i.name for i in sql_store.find_institutions(search="BETA")] == ["Beta College"]
    assert len(sql_store.find_institutions(status=InstitutionStatus.active)) == 2

    who = make_user(sql_store, role="admin", institution_id=pending.id, email="dean@example.com")
    assert sql_store.find_user_by_email(" DEAN@example.com ").id == who.user_id
    assert sql_store.get_profile(who.user_id).institution_id == pending.id
    with pytest.raises(ConflictError):
        make_user(sql_store, email="dean@example.com")

    sql_store.append_audit_log(AuditEntry(
        id=str(uuid.uuid4()),
        institution_id=pending.id,
        action_type=AuditActionType.institution,
        action=AuditAction.approved,
        performed_by=who.user_id,
        details={"notes": None},
        created_at=datetime.now(timezone.utc),
    ))
    logs = sql_store.list_audit_logs(institution_id=pending.id)
    assert [e.action for e in logs] == [AuditAction.approved]


def test_infrastructure_failure_is_dependency_error(sql_store, monkeypatch):
    def broken(*args, **kwargs):
        raise OperationalError("SELECT 1", {}, Exception("database is locked"))

    monkeypatch.setattr(sql_store.db, "execute", broken)
    with pytest.raises(DependencyError):
        sql_store.find_certificate_by_fingerprint("a" * 64)


def test_init_db_seeds_super_admin_from_settings(db_session, sql_store, monkeypatch):
    from app.core.config import settings
    from app.db.init_db import init_db

    monkeypatch.setattr(settings, "SUPERADMIN_EMAIL", "Root@Example.com")
    monkeypatch.setattr(settings, "SUPERADMIN_PASSWORD", "root-password")
    init_db(db_session)
    init_db(db_session)

    root = sql_store.find_user_by_email("root@example.com")
    assert root.is_super_admin
    assert root.role is None


def test_institution_and_admin_are_written_together(sql_store, make_user, monkeypatch):
    from app.models.institution import InstitutionStatus as S
    from app.schemas.institution import Institution
    from app.schemas.user import UserRecord

    make_user(sql_store, email="dean@example.com")
    inst = Institution(id=str(uuid.uuid4()), name="Acme U", email="registrar@example.com", status=S.pending)
    admin = UserRecord(
        id=str(uuid.uuid4()), full_name="Dean", email="dean@example.com",
        hashed_password="x", role="admin", institution_id=inst.id,
    )
    with pytest.raises(ConflictError):
        sql_store.insert_institution_with_admin(inst, admin)
    assert sql_store.find_institutions() == []

    admin = admin.model_copy(update={"email": "dean2@example.com"})
    saved_inst, saved_admin = sql_store.insert_institution_with_admin(inst, admin)
    assert saved_inst.id == inst.id
    assert sql_store.get_profile(saved_admin.id).institution_id == inst.id


def test_update_user_password(sql_store, make_user):
    who = make_user(sql_store, email="pw@example.com")
    sql_store.update_user_password(who.user_id, "new-hash")
    assert sql_store.find_user_by_email("pw@example.com").hashed_password == "new-hash"
    with pytest.raises(NotFoundError):
        sql_store.update_user_password("missing", "h")
