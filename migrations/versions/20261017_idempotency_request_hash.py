"""idempotency keys: request body hash; old entries dropped (signature changed scope)

Revision ID: 20261017_idem_hash
Revises: 20260101_initial
Create Date: 2026-10-17 00:00:00
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "20261017_idem_hash"
down_revision: Union[str, Sequence[str], None] = "20260101_initial"
branch_labels = None
depends_on = None

def upgrade() -> None:
    # assinaturas antigas não incluíam o chamador; não podem ser repetidas
    op.execute("DELETE FROM idempotency_keys")
    with op.batch_alter_table("idempotency_keys") as batch:
        batch.add_column(sa.Column("request_hash", sa.String(64), nullable=False, server_default=""))

def downgrade() -> None:
    with op.batch_alter_table("idempotency_keys") as batch:
        batch.drop_column("request_hash")
