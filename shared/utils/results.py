"""Resultados de servicios y taxonomía de errores

Los servicios devuelven ``ServiceResult`` en lugar de lanzar excepciones.
Solo la capa HTTP traduce un error a código de estado.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, TypeVar

from fastapi import HTTPException


T = TypeVar("T")


class ErrorCode(str, Enum):
    VALIDATION_ERROR = "validation_error"
    INVALID_TRANSITION = "invalid_transition"
    INVALID_OPERATION = "invalid_operation"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    INTERNAL_ERROR = "internal_error"


HTTP_STATUS_BY_CODE = {
    ErrorCode.VALIDATION_ERROR: 400,
    ErrorCode.INVALID_TRANSITION: 400,
    ErrorCode.INVALID_OPERATION: 400,
    ErrorCode.UNAUTHORIZED: 401,
    ErrorCode.FORBIDDEN: 403,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.CONFLICT: 409,
    ErrorCode.INTERNAL_ERROR: 500,
}

INTERNAL_ERROR_MESSAGE = "Error del servidor"


@dataclass(frozen=True)
class ServiceError:
    code: ErrorCode
    message: str

    @property
    def status_code(self) -> int:
        return HTTP_STATUS_BY_CODE[self.code]


@dataclass(frozen=True)
class ServiceResult(Generic[T]):
    """Valor o error de una operación de servicio (nunca ambos)"""
    value: Optional[T] = None
    error: Optional[ServiceError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T = None) -> "ServiceResult[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, code: ErrorCode, message: str) -> "ServiceResult[T]":
        return cls(error=ServiceError(code=code, message=message))


def http_exception_from(error: ServiceError) -> HTTPException:
    """Traducir un error de servicio a HTTPException (solo en la capa de rutas)"""
    headers = {"WWW-Authenticate": "Bearer"} if error.code == ErrorCode.UNAUTHORIZED else None
    return HTTPException(
        status_code=error.status_code,
        detail={"error": error.code.value, "detail": error.message},
        headers=headers,
    )


def unwrap(result: ServiceResult[T]) -> T:
    """Devolver el valor del resultado o lanzar la HTTPException equivalente"""
    if result.error is not None:
        raise http_exception_from(result.error)
    return result.value
