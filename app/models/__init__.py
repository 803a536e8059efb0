# app/models/__init__.py
from app.db.base import Base  # noqa: F401  (registra todas as tabelas no metadata)

__all__: list[str] = []
