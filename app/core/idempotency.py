# app/core/idempotency.py
import json
from hashlib import sha256

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
import structlog

from app.db import session as db_session
from app.models.tokens import IdempotencyKey

logger = structlog.get_logger(__name__)

# login/refresh devolvem tokens: nunca vão para a tabela
_EXCLUDED_PREFIXES = ("/api/v1/auth/",)

def _digest(*parts: bytes) -> str:
    h = sha256()
    for part in parts:
        h.update(sha256(part).digest())
    return h.hexdigest()

def request_signature(method: str, path: str, authorization: str) -> str:
    """Escopo da chave: método + rota + quem chamou (hash do Authorization)."""
    return _digest(method.encode(), path.encode(), authorization.encode())

def request_hash(body: bytes) -> str:
    # JSON é comparado canonicamente; corpo não-JSON byte a byte
    try:
        canonical = json.dumps(json.loads(body), sort_keys=True, separators=(",", ":")).encode()
    except ValueError:
        canonical = body
    return sha256(canonical).hexdigest()

class IdempotencyMiddleware(BaseHTTPMiddleware):
    """
    Repete a resposta gravada quando o mesmo chamador reenvia a mesma
    Idempotency-Key para o mesmo método+rota. Emissão não é determinística
    (fingerprint novo a cada chamada), então retry sem chave duplicaria o
    certificado.

    Só respostas 2xx são gravadas: 401/403/409 dependem de estado que pode
    mudar (instituição aprovada depois, por exemplo). Reusar a chave com outro
    corpo responde 422.
    """

    async def dispatch(self, request: Request, call_next):
        if request.method not in {"POST", "PUT", "PATCH", "DELETE"}:
            return await call_next(request)

        key = request.headers.get("Idempotency-Key")
        if not key or request.url.path.startswith(_EXCLUDED_PREFIXES):
            return await call_next(request)

        signature = request_signature(request.method, request.url.path, request.headers.get("Authorization", ""))
        body_hash = request_hash(await request.body())
        with db_session.SessionLocal() as db:
            exists = db.execute(
                select(IdempotencyKey).where(IdempotencyKey.key == key, IdempotencyKey.signature == signature)
            ).scalar_one_or_none()
            if exists:
                if exists.request_hash != body_hash:
                    logger.warning("idempotency_key_reused", key=key, path=request.url.path)
                    return JSONResponse(status_code=422, content={
                        "code": "IDEMPOTENCY_KEY_REUSED",
                        "message": "Idempotency-Key already used with a different request body.",
                        "details": {"key": key},
                    })
                logger.info("idempotent_replay", key=key, path=request.url.path)
                return Response(content=exists.response_body, media_type=exists.response_mime, status_code=exists.status_code)

        response = await call_next(request)
        body = b""
        async for chunk in response.body_iterator:
            body += chunk

        if 200 <= response.status_code < 300:
            with db_session.SessionLocal() as db:
                db.add(IdempotencyKey(
                    key=key,
                    signature=signature,
                    request_hash=body_hash,
                    response_body=body,
                    response_mime=response.headers.get("content-type") or "application/json",
                    status_code=response.status_code,
                ))
                try:
                    db.commit()
                except IntegrityError:
                    # corrida com requisição concorrente de mesma chave; a primeira vence
                    db.rollback()

        headers = {k: v for k, v in response.headers.items() if k.lower() != "content-length"}
        return Response(content=body, status_code=response.status_code, headers=headers)
