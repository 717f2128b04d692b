"""Dependencies de autenticación para FastAPI"""
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
from uuid import UUID
import logging

from shared.auth.jwt_handler import verify_token
from shared.auth.principal import Principal
from shared.database.connection import get_db
from shared.database.models import User

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={'error': 'unauthorized', 'detail': detail},
        headers={'WWW-Authenticate': 'Bearer'},
    )


def _forbidden(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail={'error': 'forbidden', 'detail': detail},
    )


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> Principal:
    '''Obtener usuario actual desde token JWT'''
    if credentials is None:
        raise _unauthorized('No autorizado para acceder a esta ruta')

    payload = await verify_token(credentials.credentials)
    if payload is None:
        raise _unauthorized('Token inválido o expirado')

    try:
        user_id = UUID(str(payload.get('sub')))
    except ValueError:
        raise _unauthorized('Token inválido: falta user_id')

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if user is None:
        raise _unauthorized('Usuario no encontrado')

    # El rol vigente es el de la base de datos, no el del token
    return Principal(user_id=user.id, role=user.role, username=user.username)


async def get_current_admin(
    current_user: Principal = Depends(get_current_user)
) -> Principal:
    '''Verificar que el usuario sea admin'''
    if not current_user.is_admin:
        logger.warning(f"Usuario {current_user.user_id} intentó acceder a una ruta de administrador")
        raise _forbidden('Esta ruta requiere privilegios de administrador')
    return current_user
