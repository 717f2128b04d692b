"""
Fixtures compartidas: base de datos SQLite temporal, usuarios, principals y cliente HTTP.
"""

import os

# Antes de importar la app: la configuración se lee al importar
os.environ["APP_ENV"] = "development"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["RATE_LIMIT_STORAGE_URI"] = "memory://"
os.environ["DATABASE_CREATE_TABLES"] = "false"
os.environ["JWT_SECRET_KEY"] = "test-secret-key"

import typing as t
import uuid
from datetime import datetime, timezone
from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from main import app
from shared.auth.jwt_handler import create_user_token
from shared.auth.passwords import hash_password
from shared.auth.principal import Principal
from shared.database import connection
from shared.database.models import User
from services.guest_management.models.guest import GuestCreateRequest
from services.guest_management.services.guest_service import GuestService

TEST_PASSWORD = "testpass123"


@pytest.fixture
async def database(tmp_path: Path) -> t.AsyncIterator[None]:
    """Engine sobre un archivo SQLite nuevo por test."""
    await connection.init_db(f"sqlite+aiosqlite:///{tmp_path / 'guests.db'}")
    await connection.create_tables()
    yield
    await connection.close_db()


@pytest.fixture
async def db(database: None) -> t.AsyncIterator[AsyncSession]:
    async with connection.async_session_maker() as session:
        yield session


async def _create_user(db: AsyncSession, username: str, role: str) -> User:
    user = User(
        id=uuid.uuid4(),
        username=username,
        password_hash=hash_password(TEST_PASSWORD),
        role=role,
        created_at=datetime.now(timezone.utc),
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


@pytest.fixture
async def admin_user(db: AsyncSession) -> User:
    return await _create_user(db, "testadmin", "admin")


@pytest.fixture
async def staff_user(db: AsyncSession) -> User:
    return await _create_user(db, "teststaff", "staff")


@pytest.fixture
async def other_staff_user(db: AsyncSession) -> User:
    return await _create_user(db, "otherstaff", "staff")


def principal_for(user: User) -> Principal:
    return Principal(user_id=user.id, role=user.role, username=user.username)


@pytest.fixture
def admin(admin_user: User) -> Principal:
    return principal_for(admin_user)


@pytest.fixture
def staff(staff_user: User) -> Principal:
    return principal_for(staff_user)


@pytest.fixture
def other_staff(other_staff_user: User) -> Principal:
    return principal_for(other_staff_user)


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_user_token(str(user.id), user.role)}"}


@pytest.fixture
async def client(database: None) -> t.AsyncIterator[AsyncClient]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def guest_service(db: AsyncSession) -> GuestService:
    return GuestService(db)


async def create_guest(
    service: GuestService,
    principal: Principal,
    ticket_type: str = "general",
    name: str = "Ana",
    email: str = "ana@x.com",
    **extra: t.Any,
):
    """Crear invitado vía servicio y devolver el Guest (falla el test si no se crea)."""
    result = await service.create_guest(
        principal,
        GuestCreateRequest(name=name, email=email, ticket_type=ticket_type, **extra),
    )
    assert result.ok, result.error
    return result.value
