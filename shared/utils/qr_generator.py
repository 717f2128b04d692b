"""Utilidades para generar y renderizar códigos QR de invitados"""
import base64
import io
import logging
import secrets
import time

import qrcode
from qrcode.constants import ERROR_CORRECT_H

from app.core.config import settings

logger = logging.getLogger(__name__)

_BASE36_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"


def _to_base36(number: int) -> str:
    if number == 0:
        return "0"
    digits = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(_BASE36_ALPHABET[remainder])
    return "".join(reversed(digits))


def generate_qr_code() -> str:
    """
    Generar código QR opaco para un invitado

    Formato: {timestamp_ms_base36}-{8 hex aleatorios}. La unicidad definitiva
    la garantiza la restricción UNIQUE de guests.qr_code.

    Returns:
        String como "mgw3k2x1-9f8a7b6c"
    """
    timestamp = _to_base36(time.time_ns() // 1_000_000)
    return f"{timestamp}-{secrets.token_hex(4)}"


def render_qr_data_url(qr_data: str) -> str:
    """
    Renderizar un código QR como data URL PNG

    Args:
        qr_data: Código a codificar (qr_code del invitado)

    Returns:
        String "data:image/png;base64,..."
    """
    qr = qrcode.QRCode(
        error_correction=ERROR_CORRECT_H,
        box_size=settings.QR_BOX_SIZE,
        border=settings.QR_BORDER,
    )
    qr.add_data(qr_data)
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white")

    img_buffer = io.BytesIO()
    img.save(img_buffer, format="PNG")
    img_bytes = img_buffer.getvalue()

    logger.debug(f"QR renderizado ({len(img_bytes)} bytes) para {qr_data}")
    return "data:image/png;base64," + base64.b64encode(img_bytes).decode("utf-8")
