# app/services/fingerprint.py
"""
Geração de tokens do certificado.

``generate_fingerprint`` mistura timestamp e nonce no payload: o resultado é
um identificador opaco e único, NÃO um digest reprodutível do conteúdo. Para
detecção de adulteração existe ``content_digest``, função pura dos campos
semânticos, comparado na verificação quando o verificador apresenta os dados
impressos no certificado.
"""
from __future__ import annotations

import datetime as dt
import hashlib
import json
import secrets
import time
from typing import Any, Dict, Optional

from app.core.errors import ValidationError

FINGERPRINT_LENGTH = 64
_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"

_REQUIRED = ("holder_name", "holder_email", "course_name", "institution_name", "issue_date", "issuer_id")


def _base36(n: int) -> str:
    if n == 0:
        return "0"
    out = []
    while n:
        n, r = divmod(n, 36)
        out.append(_BASE36[r])
    return "".join(reversed(out))


def _random_base36(size: int) -> str:
    return "".join(secrets.choice(_BASE36) for _ in range(size))


def _now_ms() -> int:
    return int(time.time() * 1000)


def _as_text(value: Any) -> str:
    if isinstance(value, (dt.date, dt.datetime)):
        return value.isoformat()
    return str(value).strip() if value is not None else ""


def _canonical(payload: Dict[str, Any]) -> bytes:
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def _sha256_hex(payload: Dict[str, Any]) -> str:
    return hashlib.sha256(_canonical(payload)).hexdigest()


def validate_fields(fields: Dict[str, Any]) -> Dict[str, str]:
    missing = [name for name in _REQUIRED if not _as_text(fields.get(name))]
    if missing:
        raise ValidationError("Missing required certificate fields", details={"missing": missing})
    return {name: _as_text(fields[name]) for name in _REQUIRED}


def generate_fingerprint(
    *,
    holder_name: str,
    holder_email: str,
    course_name: str,
    institution_name: str,
    issue_date: dt.date | str,
    issuer_id: str,
    timestamp_ms: Optional[int] = None,
    nonce: Optional[str] = None,
) -> str:
    """SHA-256 (64 hex minúsculos) de campos + relógio + nonce. Não determinístico."""
    payload: Dict[str, Any] = validate_fields(dict(
        holder_name=holder_name,
        holder_email=holder_email,
        course_name=course_name,
        institution_name=institution_name,
        issue_date=issue_date,
        issuer_id=issuer_id,
    ))
    payload["timestamp"] = timestamp_ms if timestamp_ms is not None else _now_ms()
    payload["nonce"] = nonce if nonce is not None else secrets.token_hex(16)
    return _sha256_hex(payload)


def content_digest(
    *,
    holder_name: str,
    holder_email: str,
    course_name: str,
    institution_name: str,
    issue_date: dt.date | str,
    grade: Optional[str] = None,
) -> str:
    """Digest determinístico dos campos visíveis no certificado."""
    return _sha256_hex({
        "holder_name": " ".join(_as_text(holder_name).split()),
        "holder_email": _as_text(holder_email).lower(),
        "course_name": " ".join(_as_text(course_name).split()),
        "institution_name": " ".join(_as_text(institution_name).split()),
        "issue_date": _as_text(issue_date),
        "grade": " ".join(_as_text(grade).split()),
    })


def generate_certificate_code(timestamp_ms: Optional[int] = None) -> str:
    # ex.: CERT-M4K8A1QZ-XYZ123
    ts = timestamp_ms if timestamp_ms is not None else _now_ms()
    return f"CERT-{_base36(ts)}-{_random_base36(6)}".upper()


def generate_transaction_id(timestamp_ms: Optional[int] = None) -> str:
    """Id de "transação" simulada; não existe ledger por trás."""
    ts = timestamp_ms if timestamp_ms is not None else _now_ms()
    return f"tx_{ts}_{_random_base36(9)}"
