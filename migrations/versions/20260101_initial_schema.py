"""initial schema: institutions, users, certificates, verification attempts, audit

Revision ID: 20260101_initial
Revises:
Create Date: 2026-01-01 00:00:00
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "20260101_initial"
down_revision: Union[str, Sequence[str], None] = None
branch_labels = None
depends_on = None

institution_status = sa.Enum("pending", "active", "suspended", "deactivated", name="institutionstatus")
certificate_status = sa.Enum("valid", "revoked", "suspended", name="certificatestatus")
verification_status = sa.Enum("valid", "invalid", "revoked", "not_found", "error", name="verificationstatus")
audit_action_type = sa.Enum("certificate", "institution", name="auditactiontype")
audit_action = sa.Enum(
    "created", "issued", "revoked", "approved", "rejected", "suspended", "reactivated", "deactivated",
    name="auditaction",
)

def upgrade() -> None:
    op.create_table(
        "institutions",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("email", sa.String(160), nullable=False),
        sa.Column("website", sa.String(255), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("phone", sa.String(30), nullable=True),
        sa.Column("status", institution_status, nullable=False),
        sa.Column("approved_by", sa.String(36), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("approval_notes", sa.Text(), nullable=True),
        sa.Column("certificate_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_institutions"),
    )
    op.create_index("ix_institutions_email", "institutions", ["email"], unique=True)
    op.create_index("ix_institutions_status", "institutions", ["status"])

    op.create_table(
        "users",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("institution_id", sa.String(36), nullable=True),
        sa.Column("full_name", sa.String(120), nullable=False),
        sa.Column("email", sa.String(160), nullable=False),
        sa.Column("hashed_password", sa.String(255), nullable=False),
        sa.Column("role", sa.String(20), nullable=True),
        sa.Column("is_super_admin", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.ForeignKeyConstraint(["institution_id"], ["institutions.id"], name="fk_users_institution_id_institutions"),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_institution_id", "users", ["institution_id"])

    op.create_table(
        "certificates",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("certificate_code", sa.String(40), nullable=False),
        sa.Column("fingerprint", sa.String(64), nullable=False),
        sa.Column("content_digest", sa.String(64), nullable=False),
        sa.Column("holder_name", sa.String(160), nullable=False),
        sa.Column("holder_email", sa.String(160), nullable=False),
        sa.Column("course_name", sa.String(200), nullable=False),
        sa.Column("institution_id", sa.String(36), nullable=False),
        sa.Column("institution_name", sa.String(200), nullable=False),
        sa.Column("issue_date", sa.Date(), nullable=False),
        sa.Column("grade", sa.String(80), nullable=True),
        sa.Column("issuer_id", sa.String(36), nullable=False),
        sa.Column("status", certificate_status, nullable=False),
        sa.Column("transaction_id", sa.String(64), nullable=True),
        sa.Column("revoked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("revoked_by", sa.String(36), nullable=True),
        sa.Column("revocation_reason", sa.Text(), nullable=True),
        sa.Column("metadata", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(["institution_id"], ["institutions.id"], name="fk_certificates_institution_id_institutions"),
        sa.ForeignKeyConstraint(["issuer_id"], ["users.id"], name="fk_certificates_issuer_id_users"),
        sa.PrimaryKeyConstraint("id", name="pk_certificates"),
    )
    op.create_index("ix_certificates_certificate_code", "certificates", ["certificate_code"], unique=True)
    op.create_index("ix_certificates_fingerprint", "certificates", ["fingerprint"], unique=True)
    op.create_index("ix_certificates_holder_email", "certificates", ["holder_email"])
    op.create_index("ix_certificates_institution_id", "certificates", ["institution_id"])

    op.create_table(
        "verification_attempts",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("fingerprint", sa.Text(), nullable=False),
        sa.Column("certificate_id", sa.String(36), nullable=True),
        sa.Column("result", verification_status, nullable=False),
        sa.Column("reason", sa.String(40), nullable=True),
        sa.Column("ip_address", sa.String(64), nullable=True),
        sa.Column("user_agent", sa.String(512), nullable=True),
        sa.Column("verified_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(["certificate_id"], ["certificates.id"], name="fk_verification_attempts_certificate_id_certificates"),
        sa.PrimaryKeyConstraint("id", name="pk_verification_attempts"),
    )
    op.create_index("ix_verification_attempts_certificate_id", "verification_attempts", ["certificate_id"])

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("certificate_id", sa.String(36), nullable=True),
        sa.Column("institution_id", sa.String(36), nullable=True),
        sa.Column("action_type", audit_action_type, nullable=False),
        sa.Column("action", audit_action, nullable=False),
        sa.Column("performed_by", sa.String(36), nullable=True),
        sa.Column("performed_by_email", sa.String(160), nullable=True),
        sa.Column("details", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_audit_logs"),
    )
    op.create_index("ix_audit_logs_certificate_id", "audit_logs", ["certificate_id"])
    op.create_index("ix_audit_logs_institution_id", "audit_logs", ["institution_id"])

    op.create_table(
        "idempotency_keys",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("key", sa.String(80), nullable=False),
        sa.Column("signature", sa.String(80), nullable=False),
        sa.Column("response_body", sa.LargeBinary(), nullable=False),
        sa.Column("response_mime", sa.String(80), nullable=False),
        sa.Column("status_code", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_idempotency_keys"),
        sa.UniqueConstraint("key", "signature", name="uq_idempotency_key_signature"),
    )
    op.create_index("ix_idempotency_keys_key", "idempotency_keys", ["key"])
    op.create_index("ix_idempotency_keys_signature", "idempotency_keys", ["signature"])

def downgrade() -> None:
    op.drop_table("idempotency_keys")
    op.drop_table("audit_logs")
    op.drop_table("verification_attempts")
    op.drop_table("certificates")
    op.drop_table("users")
    op.drop_table("institutions")
    bind = op.get_bind()
    for enum in (audit_action, audit_action_type, verification_status, certificate_status, institution_status):
        enum.drop(bind, checkfirst=True)
