"""HTTP tests for /api/v1/guests."""

import typing as t
import uuid

import pytest
from httpx import AsyncClient
from sqlalchemy.exc import OperationalError

from shared.database.models import Guest, User
from services.guest_management.services.guest_store import GuestStore

from conftest import auth_headers

GUESTS_URL = "/api/v1/guests"


async def _create(client: AsyncClient, user: User, **overrides: t.Any) -> dict:
    payload = {"name": "Ana", "email": "ana@x.com", "ticketType": "general", **overrides}
    response = await client.post(GUESTS_URL, json=payload, headers=auth_headers(user))
    assert response.status_code == 201, response.text
    return response.json()["guest"]


class TestCreateGuestRoute:
    async def test_staff_creates_guest(self, client: AsyncClient, staff_user: User) -> None:
        response = await client.post(
            GUESTS_URL,
            json={"name": "Ana", "email": "ana@x.com", "ticketType": "general"},
            headers=auth_headers(staff_user),
        )

        assert response.status_code == 201
        body = response.json()
        assert body["guest"]["status"] == "pendiente"
        assert body["guest"]["qrCode"]
        assert body["guest"]["createdBy"] == str(staff_user.id)
        assert body["qrImage"].startswith("data:image/png;base64,")

    async def test_qr_codes_are_unique(self, client: AsyncClient, staff_user: User) -> None:
        first = await _create(client, staff_user)
        second = await _create(client, staff_user)
        assert first["qrCode"] != second["qrCode"]

    async def test_validation_error(self, client: AsyncClient, staff_user: User) -> None:
        response = await client.post(
            GUESTS_URL,
            json={"name": "Ana", "ticketType": "general"},
            headers=auth_headers(staff_user),
        )

        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"

    async def test_duplicate_qr_code_is_conflict(self, client: AsyncClient, admin_user: User) -> None:
        await _create(client, admin_user, qrCode="dup-qr")

        response = await client.post(
            GUESTS_URL,
            json={"name": "Bea", "email": "bea@x.com", "ticketType": "vip", "qrCode": "dup-qr"},
            headers=auth_headers(admin_user),
        )

        assert response.status_code == 409

    async def test_requires_token(self, client: AsyncClient) -> None:
        response = await client.post(GUESTS_URL, json={"name": "Ana"})

        assert response.status_code == 401
        assert response.json()["error"] == "unauthorized"

    async def test_invalid_token(self, client: AsyncClient) -> None:
        response = await client.get(GUESTS_URL, headers={"Authorization": "Bearer garbage"})
        assert response.status_code == 401


class TestLifecycleRoutes:
    async def test_entry_twice(self, client: AsyncClient, staff_user: User) -> None:
        guest = await _create(client, staff_user)
        headers = auth_headers(staff_user)

        first = await client.post(f"{GUESTS_URL}/{guest['id']}/entry", headers=headers)
        second = await client.post(f"{GUESTS_URL}/{guest['id']}/entry", headers=headers)

        assert first.status_code == 200
        assert first.json()["status"] == "ingresado"
        assert first.json()["entryTime"] is not None
        assert second.status_code == 400
        assert second.json()["error"] == "invalid_transition"

    async def test_gift_on_general_guest(self, client: AsyncClient, staff_user: User) -> None:
        guest = await _create(client, staff_user, ticketType="general")

        response = await client.post(
            f"{GUESTS_URL}/{guest['id']}/gift", json={"gift": "Book"}, headers=auth_headers(staff_user)
        )

        assert response.status_code == 400
        assert response.json()["error"] == "invalid_operation"

    async def test_gift_on_invitacion_guest(self, client: AsyncClient, staff_user: User) -> None:
        guest = await _create(client, staff_user, ticketType="invitacion")

        response = await client.post(
            f"{GUESTS_URL}/{guest['id']}/gift", json={"gift": "Book"}, headers=auth_headers(staff_user)
        )

        assert response.status_code == 200
        assert response.json()["gift"] == "Book"

    async def test_update_contact_fields(self, client: AsyncClient, staff_user: User) -> None:
        guest = await _create(client, staff_user)

        response = await client.put(
            f"{GUESTS_URL}/{guest['id']}", json={"phone": "555-0000"}, headers=auth_headers(staff_user)
        )

        assert response.status_code == 200
        assert response.json()["phone"] == "555-0000"
        assert response.json()["name"] == "Ana"

    async def test_update_immutable_field_is_rejected(self, client: AsyncClient, staff_user: User) -> None:
        guest = await _create(client, staff_user)

        response = await client.put(
            f"{GUESTS_URL}/{guest['id']}", json={"status": "ingresado"}, headers=auth_headers(staff_user)
        )

        assert response.status_code == 400

    async def test_delete(self, client: AsyncClient, staff_user: User) -> None:
        guest = await _create(client, staff_user)
        headers = auth_headers(staff_user)

        deleted = await client.delete(f"{GUESTS_URL}/{guest['id']}", headers=headers)
        fetched = await client.get(f"{GUESTS_URL}/{guest['id']}", headers=headers)

        assert deleted.status_code == 200
        assert fetched.status_code == 404
        assert fetched.json()["error"] == "not_found"

    async def test_verify_by_qr(self, client: AsyncClient, staff_user: User, other_staff_user: User) -> None:
        guest = await _create(client, staff_user)

        found = await client.get(f"{GUESTS_URL}/verify/{guest['qrCode']}", headers=auth_headers(other_staff_user))
        missing = await client.get(f"{GUESTS_URL}/verify/unknown-qr", headers=auth_headers(other_staff_user))

        assert found.status_code == 200
        assert found.json()["id"] == guest["id"]
        assert missing.status_code == 404


class TestOwnershipRoutes:
    async def test_other_staff_gets_403(self, client: AsyncClient, staff_user: User, other_staff_user: User) -> None:
        guest = await _create(client, staff_user)
        url = f"{GUESTS_URL}/{guest['id']}"
        headers = auth_headers(other_staff_user)

        responses = [
            await client.get(url, headers=headers),
            await client.put(url, json={"name": "Otro"}, headers=headers),
            await client.delete(url, headers=headers),
            await client.post(f"{url}/entry", headers=headers),
        ]

        assert [r.status_code for r in responses] == [403, 403, 403, 403]
        assert all(r.json()["error"] == "forbidden" for r in responses)
        assert "Ana" not in responses[0].text

    async def test_admin_can_act_on_any_guest(self, client: AsyncClient, staff_user: User, admin_user: User) -> None:
        guest = await _create(client, staff_user)

        response = await client.post(f"{GUESTS_URL}/{guest['id']}/entry", headers=auth_headers(admin_user))

        assert response.status_code == 200

    async def test_list_is_scoped_for_staff(
        self, client: AsyncClient, staff_user: User, other_staff_user: User, admin_user: User
    ) -> None:
        mine = await _create(client, staff_user, name="Mine")
        await _create(client, other_staff_user, name="Theirs", ticketType="vip")

        staff_list = await client.get(GUESTS_URL, headers=auth_headers(staff_user))
        admin_list = await client.get(GUESTS_URL, headers=auth_headers(admin_user))
        vip_only = await client.get(GUESTS_URL, params={"ticketType": "vip"}, headers=auth_headers(admin_user))

        assert [g["id"] for g in staff_list.json()] == [mine["id"]]
        assert len(admin_list.json()) == 2
        assert [g["name"] for g in vip_only.json()] == ["Theirs"]

    async def test_invalid_status_filter(self, client: AsyncClient, admin_user: User) -> None:
        response = await client.get(GUESTS_URL, params={"status": "perdido"}, headers=auth_headers(admin_user))
        assert response.status_code == 400


class TestStatsRoute:
    async def test_stats(self, client: AsyncClient, staff_user: User) -> None:
        await _create(client, staff_user, ticketType="vip")
        await _create(client, staff_user, ticketType="vip")
        general = await _create(client, staff_user, ticketType="general")
        await _create(client, staff_user, ticketType="invitacion")
        await client.post(f"{GUESTS_URL}/{general['id']}/entry", headers=auth_headers(staff_user))

        response = await client.get(f"{GUESTS_URL}/stats", headers=auth_headers(staff_user))

        assert response.status_code == 200
        body = response.json()
        assert body["totalGuests"] == 4
        assert body["vipGuests"] == 2
        assert body["generalGuests"] == 1
        assert body["invitacionGuests"] == 1
        assert body["enteredGuests"] == 1
        assert body["pendingGuests"] == 3
        assert body["giftsRegistered"] == 0


class TestStorageFailureRoute:
    async def test_database_error_is_500_without_detail(
        self, client: AsyncClient, staff_user: User, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        guest = await _create(client, staff_user)

        async def broken_get_by_id(self: GuestStore, guest_id: uuid.UUID) -> Guest:
            raise OperationalError("SELECT guests", {}, Exception("connection refused by db-host"))

        monkeypatch.setattr(GuestStore, "get_by_id", broken_get_by_id)

        response = await client.get(f"{GUESTS_URL}/{guest['id']}", headers=auth_headers(staff_user))

        assert response.status_code == 500
        assert response.json() == {"error": "internal_error", "detail": "Error del servidor"}
        assert "db-host" not in response.text


class TestHealth:
    async def test_health(self, client: AsyncClient) -> None:
        response = await client.get("/health")
        assert response.json()["status"] == "ok"

    async def test_ready(self, client: AsyncClient) -> None:
        response = await client.get("/ready")
        assert response.status_code == 200
        assert response.json()["database"] == "connected"
