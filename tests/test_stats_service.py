"""Tests for aggregate guest statistics."""

from sqlalchemy.ext.asyncio import AsyncSession

from shared.auth.principal import Principal
from services.guest_management.services.guest_service import GuestService
from services.guest_management.services.stats_service import StatsService

from conftest import create_guest


class TestStatsService:
    async def test_empty_database(self, db: AsyncSession) -> None:
        result = await StatsService(db).compute_stats()

        assert result.value == {
            "total_guests": 0,
            "entered_guests": 0,
            "pending_guests": 0,
            "vip_guests": 0,
            "general_guests": 0,
            "invitacion_guests": 0,
            "gifts_registered": 0,
        }

    async def test_counts_across_all_creators(
        self, db: AsyncSession, guest_service: GuestService, admin: Principal, staff: Principal
    ) -> None:
        vip = await create_guest(guest_service, admin, ticket_type="vip")
        await create_guest(guest_service, staff, ticket_type="general")
        gifted = await create_guest(guest_service, staff, ticket_type="invitacion")
        await create_guest(guest_service, staff, ticket_type="invitacion")

        await guest_service.register_entry(admin, vip.id)
        await guest_service.register_gift(staff, gifted.id, "Vino")

        stats = (await StatsService(db).compute_stats()).value

        assert stats["total_guests"] == 4
        assert stats["entered_guests"] == 1
        assert stats["pending_guests"] == 3
        assert stats["vip_guests"] == 1
        assert stats["general_guests"] == 1
        assert stats["invitacion_guests"] == 2
        assert stats["gifts_registered"] == 1
