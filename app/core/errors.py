# app/core/errors.py
"""
Erros de domínio. Os serviços levantam estas exceções; o app (main.py)
traduz para HTTP no envelope {"code", "message", "details"}.
"""
from __future__ import annotations

from typing import Any, Optional


class CertChainError(Exception):
    status_code = 500
    code = "INTERNAL_ERROR"

    def __init__(self, message: str, *, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message, "details": self.details}


class ValidationError(CertChainError):
    """Entrada ausente/malformada, rejeitada antes de tocar o store."""
    status_code = 422
    code = "VALIDATION_ERROR"


class AuthenticationError(CertChainError):
    status_code = 401
    code = "UNAUTHENTICATED"


class AuthorizationError(CertChainError):
    status_code = 403
    code = "FORBIDDEN"


class NotFoundError(CertChainError):
    status_code = 404
    code = "NOT_FOUND"


class ConflictError(CertChainError):
    """Violação de unicidade no store (fingerprint, código, e-mail)."""
    status_code = 409
    code = "CONFLICT"


class AlreadyRevokedError(ConflictError):
    code = "ALREADY_REVOKED"


class InvalidTransitionError(ConflictError):
    code = "INVALID_TRANSITION"


class DependencyError(CertChainError):
    """Store ou provedor de identidade indisponível; mensagem original preservada."""
    status_code = 503
    code = "DEPENDENCY_ERROR"
