"""Persistencia de invitados"""
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, func, case
from typing import Dict, List, Optional
from uuid import UUID
from datetime import datetime
import asyncio

from app.core.config import settings
from shared.database.models import Guest


class GuestStore:
    """
    Acceso a la tabla guests.

    Cada llamada a la base de datos corre con el timeout de
    DATABASE_STATEMENT_TIMEOUT; si vence, la operación se cancela y se
    propaga asyncio.TimeoutError. Los errores de SQLAlchemy también se
    propagan; el servicio decide cómo reportarlos.
    """

    def __init__(self, db: AsyncSession, timeout: Optional[float] = None):
        self.db = db
        self.timeout = timeout if timeout is not None else settings.DATABASE_STATEMENT_TIMEOUT

    async def _execute(self, stmt):
        return await asyncio.wait_for(self.db.execute(stmt), timeout=self.timeout)

    async def _commit(self):
        await asyncio.wait_for(self.db.commit(), timeout=self.timeout)

    async def add(self, guest: Guest) -> Guest:
        """Insertar invitado; IntegrityError si el qr_code ya existe"""
        self.db.add(guest)
        await self._commit()
        await asyncio.wait_for(self.db.refresh(guest), timeout=self.timeout)
        return guest

    async def get_by_id(self, guest_id: UUID) -> Optional[Guest]:
        result = await self._execute(select(Guest).where(Guest.id == guest_id))
        return result.scalar_one_or_none()

    async def get_by_qr_code(self, qr_code: str) -> Optional[Guest]:
        result = await self._execute(select(Guest).where(Guest.qr_code == qr_code))
        return result.scalar_one_or_none()

    async def list_guests(
        self,
        created_by: Optional[UUID] = None,
        status: Optional[str] = None,
        ticket_type: Optional[str] = None
    ) -> List[Guest]:
        """Listar invitados, más recientes primero"""
        stmt = select(Guest)

        if created_by is not None:
            stmt = stmt.where(Guest.created_by == created_by)
        if status:
            stmt = stmt.where(Guest.status == status)
        if ticket_type:
            stmt = stmt.where(Guest.ticket_type == ticket_type)

        stmt = stmt.order_by(Guest.created_at.desc())

        result = await self._execute(stmt)
        return list(result.scalars().all())

    async def update_fields(self, guest: Guest, fields: Dict) -> Guest:
        for key, value in fields.items():
            setattr(guest, key, value)
        await self._commit()
        return guest

    async def delete(self, guest: Guest):
        await asyncio.wait_for(self.db.delete(guest), timeout=self.timeout)
        await self._commit()

    async def mark_entered(self, guest_id: UUID, entry_time: datetime) -> bool:
        """
        Transición pendiente -> ingresado en una sola escritura condicional.

        Returns:
            True si esta llamada hizo la transición; False si el invitado ya
            no estaba pendiente (o no existe).
        """
        stmt = (
            update(Guest)
            .where(Guest.id == guest_id, Guest.status == "pendiente")
            .values(status="ingresado", entry_time=entry_time)
            .execution_options(synchronize_session=False)
        )
        result = await self._execute(stmt)
        await self._commit()
        return result.rowcount == 1

    async def refresh(self, guest: Guest) -> Guest:
        await asyncio.wait_for(self.db.refresh(guest), timeout=self.timeout)
        return guest

    async def set_gift(self, guest_id: UUID, gift: str) -> bool:
        """Registrar regalo; la condición de tipo invitacion va en el WHERE"""
        stmt = (
            update(Guest)
            .where(Guest.id == guest_id, Guest.ticket_type == "invitacion")
            .values(gift=gift)
            .execution_options(synchronize_session=False)
        )
        result = await self._execute(stmt)
        await self._commit()
        return result.rowcount == 1

    async def count_owned_by(self, user_id: UUID) -> int:
        result = await self._execute(select(func.count(Guest.id)).where(Guest.created_by == user_id))
        return result.scalar() or 0

    async def aggregate_counts(self) -> Dict[str, int]:
        """Conteos en una sola pasada sobre toda la tabla"""
        def count_if(condition):
            return func.coalesce(func.sum(case((condition, 1), else_=0)), 0)

        stmt = select(
            func.count(Guest.id).label("total_guests"),
            count_if(Guest.status == "ingresado").label("entered_guests"),
            count_if(Guest.status == "pendiente").label("pending_guests"),
            count_if(Guest.ticket_type == "vip").label("vip_guests"),
            count_if(Guest.ticket_type == "general").label("general_guests"),
            count_if(Guest.ticket_type == "invitacion").label("invitacion_guests"),
            count_if(Guest.gift.is_not(None)).label("gifts_registered"),
        )
        result = await self._execute(stmt)
        row = result.one()
        return {key: int(value or 0) for key, value in row._mapping.items()}
