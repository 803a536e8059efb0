import os
import tempfile
import uuid
from datetime import datetime, timezone

# ambiente de teste antes de importar o app (Settings lê o env na importação)
os.environ.setdefault("DATA_DIR", tempfile.mkdtemp(prefix="certchain-test-"))
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ["RUN_MIGRATIONS_ON_STARTUP"] = "false"
os.environ.setdefault("SECRET_KEY", "test-secret")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.security import hash_password
from app.db.base import Base
from app.models.institution import InstitutionStatus
from app.schemas.institution import Institution
from app.schemas.user import UserRecord
from app.store.memory import InMemoryStore
from app.store.sql import SqlStore

PASSWORD = "correct-horse-battery"


@pytest.fixture(scope="session")
def password_hash():
    return hash_password(PASSWORD)


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db_session(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def sql_store(db_session):
    return SqlStore(db_session)


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def make_institution():
    def _make(target, name="Acme U", status=InstitutionStatus.active, email=None):
        now = datetime.now(timezone.utc)
        return target.insert_institution(Institution(
            id=str(uuid.uuid4()),
            name=name,
            email=email or f"{uuid.uuid4().hex[:8]}@acme.example.com",
            status=status,
            created_at=now,
            updated_at=now,
        ))
    return _make


@pytest.fixture
def make_user(password_hash):
    def _make(target, role=None, institution_id=None, super_admin=False, email=None):
        user = target.insert_user(UserRecord(
            id=str(uuid.uuid4()),
            full_name="Test User",
            email=email or f"{uuid.uuid4().hex[:8]}@example.com",
            hashed_password=password_hash,
            role=role,
            institution_id=institution_id,
            is_super_admin=super_admin,
        ))
        return user.to_identity()
    return _make
