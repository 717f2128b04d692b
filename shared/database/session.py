"""Sesiones de base de datos: manejo de fallos de storage en servicios"""
from functools import wraps
from typing import Callable
import asyncio
import logging

from sqlalchemy.exc import SQLAlchemyError

from shared.utils.results import ErrorCode, ServiceResult, INTERNAL_ERROR_MESSAGE

logger = logging.getLogger(__name__)


async def safe_rollback(db):
    """Rollback que no oculta el error original si también falla"""
    try:
        await db.rollback()
    except SQLAlchemyError as e:
        logger.error(f"Rollback failed: {type(e).__name__}: {e}")


def storage_guard(operation: str):
    """
    Decorator para métodos de servicio con atributo ``db``.

    Un SQLAlchemyError o un timeout de storage se registran con traceback y
    se devuelven como INTERNAL_ERROR genérico. Una cancelación del request
    hace rollback y se re-lanza.
    """
    def decorator(func: Callable):
        @wraps(func)
        async def wrapper(self, *args, **kwargs):
            try:
                return await func(self, *args, **kwargs)
            except asyncio.CancelledError:
                logger.warning(f"Operación {operation} cancelada; haciendo rollback")
                await safe_rollback(self.db)
                raise
            except (SQLAlchemyError, asyncio.TimeoutError) as e:
                await safe_rollback(self.db)
                logger.error(f"Storage failure in {operation}: {type(e).__name__}", exc_info=True)
                return ServiceResult.failure(ErrorCode.INTERNAL_ERROR, INTERNAL_ERROR_MESSAGE)
        return wrapper
    return decorator
