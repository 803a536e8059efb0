from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, LargeBinary, Integer, UniqueConstraint
from app.db.base import Base

class IdempotencyKey(Base):
    __tablename__ = "idempotency_keys"
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    key: Mapped[str] = mapped_column(String(80), index=True)
    # método + rota + chamador
    signature: Mapped[str] = mapped_column(String(80), index=True)
    # corpo da requisição original; reuso com corpo diferente é recusado
    request_hash: Mapped[str] = mapped_column(String(64), default="", server_default="")
    response_body: Mapped[bytes] = mapped_column(LargeBinary)
    response_mime: Mapped[str] = mapped_column(String(80))
    status_code: Mapped[int] = mapped_column(Integer)

    __table_args__ = (UniqueConstraint("key", "signature", name="uq_idempotency_key_signature"),)
