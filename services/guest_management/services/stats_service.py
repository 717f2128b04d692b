"""Servicio para cálculo de estadísticas de invitados"""
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Dict

from shared.database.session import storage_guard
from shared.utils.results import ServiceResult
from services.guest_management.services.guest_store import GuestStore


class StatsService:
    """Servicio para operaciones de estadísticas"""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.store = GuestStore(db)

    @storage_guard("compute_stats")
    async def compute_stats(self) -> ServiceResult[Dict[str, int]]:
        """
        Calcular estadísticas sobre todos los invitados

        Se recalcula en cada llamada, sin cache.

        Returns:
            ServiceResult con total_guests, entered_guests, pending_guests,
            vip_guests, general_guests, invitacion_guests y gifts_registered
        """
        counts = await self.store.aggregate_counts()
        return ServiceResult.success(counts)
