"""Rutas de gestión de invitados"""
from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from shared.auth.dependencies import get_current_user
from shared.auth.principal import Principal
from shared.database.connection import get_db
from shared.utils.qr_generator import render_qr_data_url
from shared.utils.rate_limiter import limiter, RATE_LIMITS
from shared.utils.results import unwrap
from services.guest_management.models.guest import (
    GiftRequest,
    GuestCreateRequest,
    GuestCreatedResponse,
    GuestResponse,
    GuestStatsResponse,
    GuestUpdateRequest,
    MessageResponse,
)
from services.guest_management.services.guest_service import GuestService
from services.guest_management.services.stats_service import StatsService


router = APIRouter()


# ==================== STATS & VERIFY ====================

@router.get("/stats", response_model=GuestStatsResponse)
@limiter.limit(RATE_LIMITS["read"])
async def get_guest_stats(
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: Principal = Depends(get_current_user)
):
    """
    Estadísticas de todos los invitados

    Requiere autenticación (cualquier rol)
    """
    service = StatsService(db)
    stats = unwrap(await service.compute_stats())
    return GuestStatsResponse(**stats)


@router.get("/verify/{qr_code}", response_model=GuestResponse)
@limiter.limit(RATE_LIMITS["checkin"])
async def verify_guest_by_qr(
    request: Request,
    qr_code: str,
    db: AsyncSession = Depends(get_db),
    current_user: Principal = Depends(get_current_user)
):
    """
    Verificar invitado por código QR (escaneo en puerta)

    Requiere autenticación (cualquier rol, sin restricción de propiedad)
    """
    service = GuestService(db)
    return unwrap(await service.verify_by_qr(current_user, qr_code))


# ==================== CRUD ====================

@router.post("", response_model=GuestCreatedResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(RATE_LIMITS["management"])
async def create_guest(
    request: Request,
    payload: GuestCreateRequest,
    db: AsyncSession = Depends(get_db),
    current_user: Principal = Depends(get_current_user)
):
    """
    Crear invitado y devolver su QR renderizado

    Requiere rol admin o staff
    """
    service = GuestService(db)
    guest = unwrap(await service.create_guest(current_user, payload))

    return GuestCreatedResponse(
        guest=GuestResponse.model_validate(guest),
        qr_image=render_qr_data_url(guest.qr_code)
    )


@router.get("", response_model=List[GuestResponse])
@limiter.limit(RATE_LIMITS["read"])
async def list_guests(
    request: Request,
    guest_status: Optional[str] = Query(None, alias="status", description="Filtrar por estado"),
    ticket_type: Optional[str] = Query(None, alias="ticketType", description="Filtrar por tipo de entrada"),
    db: AsyncSession = Depends(get_db),
    current_user: Principal = Depends(get_current_user)
):
    """
    Listar invitados, más recientes primero

    Admin ve todos; staff solo los que creó
    """
    service = GuestService(db)
    return unwrap(await service.list_guests(current_user, status=guest_status, ticket_type=ticket_type))


@router.get("/{guest_id}", response_model=GuestResponse)
@limiter.limit(RATE_LIMITS["read"])
async def get_guest(
    request: Request,
    guest_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: Principal = Depends(get_current_user)
):
    """
    Obtener invitado por ID

    Requiere ser admin o el creador del invitado
    """
    service = GuestService(db)
    return unwrap(await service.get_guest(current_user, guest_id))


@router.put("/{guest_id}", response_model=GuestResponse)
@limiter.limit(RATE_LIMITS["management"])
async def update_guest(
    request: Request,
    guest_id: str,
    payload: GuestUpdateRequest,
    db: AsyncSession = Depends(get_db),
    current_user: Principal = Depends(get_current_user)
):
    """
    Actualizar nombre, email o teléfono de un invitado

    Requiere ser admin o el creador del invitado
    """
    service = GuestService(db)
    patch = payload.model_dump(exclude_unset=True)
    return unwrap(await service.update_guest(current_user, guest_id, patch))


@router.delete("/{guest_id}", response_model=MessageResponse)
@limiter.limit(RATE_LIMITS["management"])
async def delete_guest(
    request: Request,
    guest_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: Principal = Depends(get_current_user)
):
    """
    Eliminar invitado

    Requiere ser admin o el creador del invitado
    """
    service = GuestService(db)
    unwrap(await service.delete_guest(current_user, guest_id))
    return MessageResponse(message="Invitado eliminado exitosamente")


# ==================== INGRESO & REGALO ====================

@router.post("/{guest_id}/entry", response_model=GuestResponse)
@limiter.limit(RATE_LIMITS["checkin"])
async def register_entry(
    request: Request,
    guest_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: Principal = Depends(get_current_user)
):
    """
    Registrar ingreso del invitado (pendiente -> ingresado)

    Requiere ser admin o el creador del invitado
    """
    service = GuestService(db)
    return unwrap(await service.register_entry(current_user, guest_id))


@router.post("/{guest_id}/gift", response_model=GuestResponse)
@limiter.limit(RATE_LIMITS["management"])
async def register_gift(
    request: Request,
    guest_id: str,
    payload: GiftRequest,
    db: AsyncSession = Depends(get_db),
    current_user: Principal = Depends(get_current_user)
):
    """
    Registrar regalo (solo entradas de tipo invitacion)

    Requiere ser admin o el creador del invitado
    """
    service = GuestService(db)
    return unwrap(await service.register_gift(current_user, guest_id, payload.gift))
