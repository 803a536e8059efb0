# app/core/security.py
"""
Hash de senha. argon2 para hashes novos; bcrypt só é aceito na verificação
de contas antigas e reescrito em argon2 no próximo login.
"""
from __future__ import annotations

from typing import Optional, Tuple

from passlib.context import CryptContext

pwd_context = CryptContext(
    schemes=["argon2", "bcrypt"],
    deprecated="auto",
    argon2__time_cost=2,
    argon2__memory_cost=19456,
    argon2__parallelism=1,
)

def hash_password(plain: str) -> str:
    return pwd_context.hash(plain)

def verify_password(plain: str, stored_hash: str) -> bool:
    return pwd_context.verify(plain, stored_hash)

def verify_and_rehash(plain: str, stored_hash: str) -> Tuple[bool, Optional[str]]:
    """(senha confere?, hash novo quando o armazenado usa esquema/parâmetros velhos)."""
    ok, new_hash = pwd_context.verify_and_update(plain, stored_hash)
    return bool(ok), new_hash
