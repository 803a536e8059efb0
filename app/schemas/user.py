# app/schemas/user.py
from __future__ import annotations
from typing import Literal, Optional
from pydantic import BaseModel, EmailStr, Field

RoleName = Literal["admin", "issuer", "viewer"]

class Identity(BaseModel):
    """Visão do usuário autenticado que o core consulta para autorizar."""
    user_id: str
    email: str
    full_name: str = ""
    role: Optional[RoleName] = None
    institution_id: Optional[str] = None
    is_super_admin: bool = False
    is_active: bool = True

class UserCreate(BaseModel):
    full_name: str = Field(min_length=1, max_length=120)
    email: EmailStr
    password: str = Field(min_length=8, max_length=128)
    role: Literal["issuer", "viewer"] = "issuer"

class UserRecord(BaseModel):
    id: str
    full_name: str
    email: str
    hashed_password: str
    role: Optional[RoleName] = None
    institution_id: Optional[str] = None
    is_super_admin: bool = False
    is_active: bool = True

    def to_identity(self) -> Identity:
        return Identity(
            user_id=self.id,
            email=self.email,
            full_name=self.full_name,
            role=self.role,
            institution_id=self.institution_id,
            is_super_admin=self.is_super_admin,
            is_active=self.is_active,
        )

class UserOut(BaseModel):
    id: str
    full_name: str
    email: str
    role: Optional[str] = None
    institution_id: Optional[str] = None
    is_super_admin: bool = False
