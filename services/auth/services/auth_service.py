"""Servicio de autenticación y gestión de usuarios"""
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from typing import List, Optional, Tuple, Union
from uuid import UUID
from datetime import datetime, timezone
import logging
import uuid

from shared.auth.jwt_handler import create_user_token
from shared.auth.passwords import hash_password, verify_password
from shared.auth.principal import Principal
from shared.database.models import User, USER_ROLES
from shared.database.session import storage_guard, safe_rollback
from shared.utils.results import ErrorCode, ServiceResult
from services.guest_management.services.guest_store import GuestStore

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6
# Límite de bcrypt
MAX_PASSWORD_BYTES = 72

INVALID_CREDENTIALS = "Credenciales inválidas"
USER_NOT_FOUND = "Usuario no encontrado"


def _validate_password(password: Optional[str]) -> Optional[str]:
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        return f"La contraseña debe tener al menos {MIN_PASSWORD_LENGTH} caracteres"
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        return f"La contraseña no puede superar {MAX_PASSWORD_BYTES} bytes"
    return None


def _validate_role(role: Optional[str]) -> Optional[str]:
    if role not in USER_ROLES:
        return f"Rol inválido. Debe ser uno de: {', '.join(USER_ROLES)}"
    return None


def _parse_user_id(user_id: Union[str, UUID]) -> Optional[UUID]:
    if isinstance(user_id, UUID):
        return user_id
    try:
        return UUID(str(user_id))
    except ValueError:
        return None


class AuthService:
    """Login, alta de usuarios y administración de roles"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _get_user(self, user_id: Union[str, UUID]) -> Optional[User]:
        parsed_id = _parse_user_id(user_id)
        if parsed_id is None:
            return None
        result = await self.db.execute(select(User).where(User.id == parsed_id))
        return result.scalar_one_or_none()

    async def get_user_by_username(self, username: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.username == username))
        return result.scalar_one_or_none()

    @storage_guard("login")
    async def login(self, username: Optional[str], password: Optional[str]) -> ServiceResult[Tuple[str, User]]:
        """
        Validar credenciales y emitir token

        Returns:
            ServiceResult con (token, user); UNAUTHORIZED con el mismo mensaje
            para usuario inexistente y contraseña incorrecta
        """
        username = (username or "").strip()
        if not username or not password:
            return ServiceResult.failure(ErrorCode.VALIDATION_ERROR, "Por favor ingrese usuario y contraseña")

        user = await self.get_user_by_username(username)
        if user is None or not verify_password(password, user.password_hash):
            logger.warning(f"Login fallido para usuario '{username}'")
            return ServiceResult.failure(ErrorCode.UNAUTHORIZED, INVALID_CREDENTIALS)

        logger.info(f"Login exitoso: {user.id}")
        return ServiceResult.success((create_user_token(str(user.id), user.role), user))

    @storage_guard("get_me")
    async def get_me(self, principal: Principal) -> ServiceResult[User]:
        user = await self._get_user(principal.user_id)
        if user is None:
            return ServiceResult.failure(ErrorCode.NOT_FOUND, USER_NOT_FOUND)
        return ServiceResult.success(user)

    @storage_guard("register_user")
    async def register_user(
        self,
        username: Optional[str],
        password: Optional[str],
        role: Optional[str] = None
    ) -> ServiceResult[User]:
        """Crear usuario (solo admin); rol staff por defecto"""
        username = (username or "").strip()
        role = (role or "staff").strip()

        if not username:
            return ServiceResult.failure(ErrorCode.VALIDATION_ERROR, "El nombre de usuario es requerido")
        for message in (_validate_password(password), _validate_role(role)):
            if message:
                return ServiceResult.failure(ErrorCode.VALIDATION_ERROR, message)

        if await self.get_user_by_username(username) is not None:
            return ServiceResult.failure(ErrorCode.CONFLICT, "El usuario ya existe")

        user = User(
            id=uuid.uuid4(),
            username=username,
            password_hash=hash_password(password),
            role=role,
            created_at=datetime.now(timezone.utc),
        )
        self.db.add(user)
        try:
            await self.db.commit()
        except IntegrityError:
            # Alta concurrente con el mismo username
            await safe_rollback(self.db)
            return ServiceResult.failure(ErrorCode.CONFLICT, "El usuario ya existe")
        await self.db.refresh(user)

        logger.info(f"Usuario {user.id} creado con rol {role}")
        return ServiceResult.success(user)

    @storage_guard("update_password")
    async def update_password(
        self,
        principal: Principal,
        current_password: Optional[str],
        new_password: Optional[str]
    ) -> ServiceResult[str]:
        """Cambiar contraseña propia y devolver un token nuevo"""
        user = await self._get_user(principal.user_id)
        if user is None:
            return ServiceResult.failure(ErrorCode.NOT_FOUND, USER_NOT_FOUND)

        if not current_password or not verify_password(current_password, user.password_hash):
            logger.warning(f"Cambio de contraseña rechazado para {user.id}")
            return ServiceResult.failure(ErrorCode.UNAUTHORIZED, "Contraseña actual incorrecta")

        message = _validate_password(new_password)
        if message:
            return ServiceResult.failure(ErrorCode.VALIDATION_ERROR, message)

        user.password_hash = hash_password(new_password)
        await self.db.commit()

        logger.info(f"Contraseña actualizada para {user.id}")
        return ServiceResult.success(create_user_token(str(user.id), user.role))

    @storage_guard("list_users")
    async def list_users(self) -> ServiceResult[List[User]]:
        result = await self.db.execute(select(User).order_by(User.created_at.desc()))
        return ServiceResult.success(list(result.scalars().all()))

    @storage_guard("delete_user")
    async def delete_user(self, principal: Principal, user_id: Union[str, UUID]) -> ServiceResult[User]:
        """
        Eliminar usuario (solo admin)

        No permite eliminarse a sí mismo ni eliminar usuarios con invitados.
        """
        user = await self._get_user(user_id)
        if user is None:
            return ServiceResult.failure(ErrorCode.NOT_FOUND, USER_NOT_FOUND)

        if user.id == principal.user_id:
            return ServiceResult.failure(ErrorCode.VALIDATION_ERROR, "No puede eliminar su propia cuenta")

        owned = await GuestStore(self.db).count_owned_by(user.id)
        if owned:
            return ServiceResult.failure(
                ErrorCode.CONFLICT,
                f"El usuario tiene {owned} invitado(s) asociados"
            )

        await self.db.delete(user)
        await self.db.commit()

        logger.info(f"Usuario {user.id} eliminado por {principal.user_id}")
        return ServiceResult.success(user)

    @storage_guard("update_user_role")
    async def update_user_role(
        self,
        principal: Principal,
        user_id: Union[str, UUID],
        new_role: Optional[str]
    ) -> ServiceResult[User]:
        """Cambiar rol de un usuario (solo admin, no el propio)"""
        user = await self._get_user(user_id)
        if user is None:
            return ServiceResult.failure(ErrorCode.NOT_FOUND, USER_NOT_FOUND)

        if user.id == principal.user_id:
            return ServiceResult.failure(ErrorCode.VALIDATION_ERROR, "No puedes cambiar tu propio rol")

        message = _validate_role(new_role)
        if message:
            return ServiceResult.failure(ErrorCode.VALIDATION_ERROR, message)

        user.role = new_role
        await self.db.commit()
        await self.db.refresh(user)

        logger.info(f"Rol de {user.id} cambiado a {new_role} por {principal.user_id}")
        return ServiceResult.success(user)
