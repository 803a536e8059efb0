# app/db/init_db.py
from sqlalchemy.orm import Session

from app.core.config import settings
from app.services.auth import ensure_super_admin
from app.store.sql import SqlStore

def init_db(db: Session) -> None:
    # super-admin só é semeado quando as credenciais vêm do ambiente
    ensure_super_admin(
        SqlStore(db),
        email=settings.SUPERADMIN_EMAIL,
        password=settings.SUPERADMIN_PASSWORD,
        full_name=settings.SUPERADMIN_NAME,
    )
