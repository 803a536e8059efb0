# app/services/qr.py
import io

import qrcode  # type: ignore

from app.core.config import settings

def verify_url(fingerprint: str, base_url: str = "") -> str:
    # prioridade: env PUBLIC_BASE_URL; senão, a base da requisição
    base = (settings.PUBLIC_BASE_URL or base_url or "").rstrip("/")
    return f"{base}/verify/{fingerprint}"

def qr_png_bytes(text: str, *, box_size: int = 8, border: int = 2) -> bytes:
    qr = qrcode.QRCode(error_correction=qrcode.constants.ERROR_CORRECT_M, box_size=box_size, border=border)
    qr.add_data(text)
    qr.make(fit=True)
    img = qr.make_image()
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()
