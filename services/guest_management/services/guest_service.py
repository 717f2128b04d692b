"""Servicio del ciclo de vida de invitados"""
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError
from pydantic import EmailStr, TypeAdapter, ValidationError
from typing import Dict, List, Optional, Union
from uuid import UUID
from datetime import datetime, timezone
import logging
import uuid

from shared.auth.principal import Principal
from shared.database.models import Guest, TICKET_TYPES, GUEST_STATUSES
from shared.database.session import storage_guard, safe_rollback
from shared.utils.qr_generator import generate_qr_code
from shared.utils.results import ErrorCode, ServiceResult
from services.guest_management.models.guest import GuestCreateRequest
from services.guest_management.services.authorization import (
    Action,
    authorize,
    check_guest_access,
    requires_owner_scope,
)
from services.guest_management.services.guest_store import GuestStore

logger = logging.getLogger(__name__)

EMAIL_ADAPTER = TypeAdapter(EmailStr)

# Campos que update puede modificar; ticket_type, qr_code, status,
# entry_time, created_by y created_at quedan fijos
MUTABLE_FIELDS = ("name", "email", "phone")

GUEST_NOT_FOUND = "Invitado no encontrado"


def _clean(value: Optional[str]) -> Optional[str]:
    return value.strip() if isinstance(value, str) else value


def _validate_name(name: Optional[str]) -> Optional[str]:
    if not name:
        return "El nombre es requerido"
    return None


def _validate_email(email: Optional[str]) -> Optional[str]:
    if not email:
        return "El email es requerido"
    try:
        EMAIL_ADAPTER.validate_python(email)
    except ValidationError:
        return "El email no es válido"
    return None


def _validate_ticket_type(ticket_type: Optional[str]) -> Optional[str]:
    if not ticket_type:
        return "El tipo de entrada es requerido"
    if ticket_type not in TICKET_TYPES:
        return f"Tipo de entrada inválido. Debe ser uno de: {', '.join(TICKET_TYPES)}"
    return None


def _parse_guest_id(guest_id: Union[str, UUID]) -> Optional[UUID]:
    if isinstance(guest_id, UUID):
        return guest_id
    try:
        return UUID(str(guest_id))
    except ValueError:
        return None


class GuestService:
    """Operaciones sobre invitados: alta, consulta, cambios, ingreso y regalos"""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.store = GuestStore(db)

    async def _load_authorized(
        self,
        principal: Principal,
        guest_id: Union[str, UUID],
        action: Action
    ) -> ServiceResult[Guest]:
        """Cargar invitado verificando existencia (404) antes que propiedad (403)"""
        parsed_id = _parse_guest_id(guest_id)
        if parsed_id is None:
            return ServiceResult.failure(ErrorCode.NOT_FOUND, GUEST_NOT_FOUND)

        guest = await self.store.get_by_id(parsed_id)
        if guest is None:
            return ServiceResult.failure(ErrorCode.NOT_FOUND, GUEST_NOT_FOUND)

        denied = check_guest_access(principal, action, guest)
        if denied is not None:
            return ServiceResult(error=denied)

        return ServiceResult.success(guest)

    @storage_guard("create_guest")
    async def create_guest(
        self,
        principal: Principal,
        data: GuestCreateRequest
    ) -> ServiceResult[Guest]:
        """
        Crear invitado en estado pendiente.

        El qr_code se genera aquí, antes de la única escritura, si el caller
        no lo envía.

        Returns:
            ServiceResult con el Guest creado, o FORBIDDEN / VALIDATION_ERROR / CONFLICT
        """
        denied = check_guest_access(principal, Action.CREATE)
        if denied is not None:
            return ServiceResult(error=denied)

        name = _clean(data.name)
        email = _clean(data.email)
        phone = _clean(data.phone) or None
        ticket_type = _clean(data.ticket_type)

        errors = [
            message
            for message in (
                _validate_name(name),
                _validate_email(email),
                _validate_ticket_type(ticket_type),
            )
            if message
        ]
        if errors:
            return ServiceResult.failure(ErrorCode.VALIDATION_ERROR, "; ".join(errors))

        qr_code = _clean(data.qr_code) or generate_qr_code()

        guest = Guest(
            id=uuid.uuid4(),
            name=name,
            email=email.lower(),
            phone=phone,
            ticket_type=ticket_type,
            qr_code=qr_code,
            status="pendiente",
            gift=None,
            entry_time=None,
            created_by=principal.user_id,
            created_at=datetime.now(timezone.utc),
        )

        try:
            await self.store.add(guest)
        except IntegrityError:
            await safe_rollback(self.db)
            # Cualquier otra violación (p.ej. created_by) la reporta storage_guard
            if await self.store.get_by_qr_code(qr_code) is None:
                raise
            logger.warning(f"qrCode duplicado al crear invitado: {qr_code}")
            return ServiceResult.failure(ErrorCode.CONFLICT, "El qrCode ya existe en el sistema")

        logger.info(f"Invitado {guest.id} creado por {principal.user_id} ({ticket_type})")
        return ServiceResult.success(guest)

    @storage_guard("get_guest")
    async def get_guest(
        self,
        principal: Principal,
        guest_id: Union[str, UUID]
    ) -> ServiceResult[Guest]:
        return await self._load_authorized(principal, guest_id, Action.READ)

    @storage_guard("list_guests")
    async def list_guests(
        self,
        principal: Principal,
        status: Optional[str] = None,
        ticket_type: Optional[str] = None
    ) -> ServiceResult[List[Guest]]:
        """
        Listar invitados visibles para el principal.

        Admin ve todos; staff solo los que creó. Filtros opcionales por
        estado y tipo de entrada. Orden: created_at descendente.
        """
        if not authorize(principal.role, Action.LIST, is_owner=True):
            denied = check_guest_access(principal, Action.LIST)
            return ServiceResult(error=denied)

        status = _clean(status) or None
        ticket_type = _clean(ticket_type) or None

        if status is not None and status not in GUEST_STATUSES:
            return ServiceResult.failure(
                ErrorCode.VALIDATION_ERROR,
                f"Estado inválido. Debe ser uno de: {', '.join(GUEST_STATUSES)}"
            )
        if ticket_type is not None and ticket_type not in TICKET_TYPES:
            return ServiceResult.failure(
                ErrorCode.VALIDATION_ERROR,
                f"Tipo de entrada inválido. Debe ser uno de: {', '.join(TICKET_TYPES)}"
            )

        created_by = principal.user_id if requires_owner_scope(principal.role, Action.LIST) else None

        guests = await self.store.list_guests(
            created_by=created_by,
            status=status,
            ticket_type=ticket_type
        )
        return ServiceResult.success(guests)

    @storage_guard("update_guest")
    async def update_guest(
        self,
        principal: Principal,
        guest_id: Union[str, UUID],
        patch: Dict
    ) -> ServiceResult[Guest]:
        """
        Actualizar datos de contacto (name, email, phone).

        Args:
            patch: Solo las claves enviadas por el caller (nombres snake_case)
        """
        loaded = await self._load_authorized(principal, guest_id, Action.UPDATE)
        if not loaded.ok:
            return loaded
        guest = loaded.value

        immutable = sorted(set(patch) - set(MUTABLE_FIELDS))
        if immutable:
            return ServiceResult.failure(
                ErrorCode.VALIDATION_ERROR,
                f"No se pueden modificar los campos: {', '.join(immutable)}"
            )

        fields = {}
        if "name" in patch:
            name = _clean(patch["name"])
            message = _validate_name(name)
            if message:
                return ServiceResult.failure(ErrorCode.VALIDATION_ERROR, message)
            fields["name"] = name
        if "email" in patch:
            email = _clean(patch["email"])
            message = _validate_email(email)
            if message:
                return ServiceResult.failure(ErrorCode.VALIDATION_ERROR, message)
            fields["email"] = email.lower()
        if "phone" in patch:
            fields["phone"] = _clean(patch["phone"]) or None

        if fields:
            await self.store.update_fields(guest, fields)
            logger.info(f"Invitado {guest.id} actualizado por {principal.user_id}: {', '.join(fields)}")

        return ServiceResult.success(guest)

    @storage_guard("delete_guest")
    async def delete_guest(
        self,
        principal: Principal,
        guest_id: Union[str, UUID]
    ) -> ServiceResult[None]:
        loaded = await self._load_authorized(principal, guest_id, Action.DELETE)
        if not loaded.ok:
            return ServiceResult(error=loaded.error)
        guest = loaded.value

        await self.store.delete(guest)
        logger.info(f"Invitado {guest.id} eliminado por {principal.user_id}")
        return ServiceResult.success(None)

    @storage_guard("register_entry")
    async def register_entry(
        self,
        principal: Principal,
        guest_id: Union[str, UUID]
    ) -> ServiceResult[Guest]:
        """
        Registrar ingreso: pendiente -> ingresado.

        La transición es un UPDATE condicionado a status='pendiente'; ante
        llamadas concurrentes sobre el mismo invitado solo una lo logra, el
        resto recibe INVALID_TRANSITION.
        """
        loaded = await self._load_authorized(principal, guest_id, Action.REGISTER_ENTRY)
        if not loaded.ok:
            return loaded
        guest = loaded.value

        entered = await self.store.mark_entered(guest.id, datetime.now(timezone.utc))
        if not entered:
            if await self.store.get_by_id(guest.id) is None:
                # Eliminado entre la lectura y la escritura
                return ServiceResult.failure(ErrorCode.NOT_FOUND, GUEST_NOT_FOUND)
            logger.warning(f"Ingreso rechazado para invitado {guest.id}: ya no está pendiente")
            return ServiceResult.failure(
                ErrorCode.INVALID_TRANSITION,
                "El invitado ya ha ingresado o su entrada está cancelada"
            )

        await self.store.refresh(guest)
        logger.info(f"Ingreso registrado para invitado {guest.id} por {principal.user_id}")
        return ServiceResult.success(guest)

    @storage_guard("register_gift")
    async def register_gift(
        self,
        principal: Principal,
        guest_id: Union[str, UUID],
        gift: Optional[str]
    ) -> ServiceResult[Guest]:
        """
        Registrar regalo de un invitado con entrada de invitación.

        Un regalo ya registrado se sobrescribe.
        """
        loaded = await self._load_authorized(principal, guest_id, Action.REGISTER_GIFT)
        if not loaded.ok:
            return loaded
        guest = loaded.value

        if guest.ticket_type != "invitacion":
            return ServiceResult.failure(
                ErrorCode.INVALID_OPERATION,
                'Solo los invitados con tipo "invitacion" pueden registrar regalos'
            )

        gift = _clean(gift)
        if not gift:
            return ServiceResult.failure(ErrorCode.VALIDATION_ERROR, "El regalo es requerido")

        updated = await self.store.set_gift(guest.id, gift)
        if not updated:
            # Eliminado entre la lectura y la escritura
            return ServiceResult.failure(ErrorCode.NOT_FOUND, GUEST_NOT_FOUND)

        await self.store.refresh(guest)
        logger.info(f"Regalo registrado para invitado {guest.id} por {principal.user_id}")
        return ServiceResult.success(guest)

    @storage_guard("verify_by_qr")
    async def verify_by_qr(
        self,
        principal: Principal,
        qr_code: str
    ) -> ServiceResult[Guest]:
        """Buscar invitado por qr_code; cualquier usuario autenticado puede escanear"""
        denied = check_guest_access(principal, Action.VERIFY)
        if denied is not None:
            return ServiceResult(error=denied)

        qr_code = _clean(qr_code)
        guest = await self.store.get_by_qr_code(qr_code) if qr_code else None
        if guest is None:
            return ServiceResult.failure(ErrorCode.NOT_FOUND, "Código QR inválido")

        return ServiceResult.success(guest)
