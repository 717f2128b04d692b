"""
Rate limiting usando slowapi + Redis
"""
from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from fastapi import Request, Response
from starlette.responses import JSONResponse
import hashlib
import logging

from app.core.config import settings

logger = logging.getLogger(__name__)


def get_real_client_ip(request: Request) -> str:
    """
    Obtener IP real del cliente considerando proxies/load balancers.
    """
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        # La primera IP es la del cliente
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip

    return get_remote_address(request)


def get_user_identifier(request: Request) -> str:
    """
    Identificador para rate limiting: IP + hash del token si está autenticado.
    """
    ip = get_real_client_ip(request)

    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        token_hash = hashlib.md5(auth_header.encode()).hexdigest()[:8]
        return f"{ip}:{token_hash}"

    return ip


storage_uri = settings.RATE_LIMIT_STORAGE_URI or settings.REDIS_URL

try:
    limiter = Limiter(
        key_func=get_user_identifier,
        storage_uri=storage_uri,
        strategy="fixed-window",
        headers_enabled=False,  # Deshabilitado para compatibilidad con response_model de FastAPI
        enabled=settings.RATE_LIMIT_ENABLED,
    )
    logger.info(f"Rate limiter inicializado con storage: {storage_uri.split('@')[-1]}")
except Exception as e:
    # Fallback a memoria si Redis no está disponible
    logger.warning(f"Redis no disponible para rate limiting, usando memoria local: {e}")
    limiter = Limiter(
        key_func=get_user_identifier,
        strategy="fixed-window",
        headers_enabled=False,
        enabled=settings.RATE_LIMIT_ENABLED,
    )


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> Response:
    """
    Handler personalizado para rate limit exceeded.
    """
    retry_after = exc.detail.split(" ")[-1] if exc.detail else "60"

    logger.warning(
        f"Rate limit exceeded - IP: {get_real_client_ip(request)}, "
        f"Path: {request.url.path}, "
        f"Retry-After: {retry_after}"
    )

    return JSONResponse(
        status_code=429,
        content={
            "error": "rate_limit_exceeded",
            "detail": "Demasiadas solicitudes. Por favor espera antes de intentar nuevamente.",
            "retry_after_seconds": int(retry_after) if retry_after.isdigit() else 60,
        },
        headers={"Retry-After": str(retry_after)},
    )


# ============ RATE LIMITS PRE-DEFINIDOS ============

RATE_LIMITS = {
    # Login: restrictivo para frenar fuerza bruta
    "login": "10/minute",

    # Escaneo en puerta: alto volumen durante el ingreso
    "checkin": "120/minute",

    # Gestión de invitados y usuarios
    "management": "60/minute",

    # Lecturas y estadísticas
    "read": "120/minute",
}
