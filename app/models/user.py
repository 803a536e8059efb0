from enum import Enum
from sqlalchemy import Column, String, Boolean, ForeignKey, DateTime, func
from sqlalchemy.orm import relationship

from app.db.base import Base


class UserRole(str, Enum):
    admin = "admin"
    issuer = "issuer"
    viewer = "viewer"


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True)
    institution_id = Column(String(36), ForeignKey("institutions.id"), nullable=True, index=True)

    full_name = Column(String(120), nullable=False)
    email = Column(String(160), nullable=False, unique=True, index=True)
    hashed_password = Column(String(255), nullable=False)
    # null para super-admin (não pertence a instituição)
    role = Column(String(20), nullable=True)
    is_super_admin = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    institution = relationship("Institution", back_populates="users")
