"""Modelos Pydantic para invitados"""
from pydantic import BaseModel
from pydantic.alias_generators import to_camel
from typing import Optional
from uuid import UUID
from datetime import datetime
from enum import Enum


class TicketType(str, Enum):
    VIP = "vip"
    GENERAL = "general"
    INVITACION = "invitacion"


class GuestStatus(str, Enum):
    PENDIENTE = "pendiente"
    INGRESADO = "ingresado"
    # Declarado pero sin transición que lo produzca
    CANCELADO = "cancelado"


class CamelModel(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True


# ==================== REQUESTS ====================

class GuestCreateRequest(CamelModel):
    """Request para crear invitado (la validación de dominio la hace el servicio)"""
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    ticket_type: Optional[str] = None
    qr_code: Optional[str] = None  # Se genera si no viene


class GuestUpdateRequest(CamelModel):
    """Request para actualizar invitado; solo campos de contacto"""
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        extra = "forbid"


class GiftRequest(CamelModel):
    gift: Optional[str] = None


# ==================== RESPONSES ====================

class GuestResponse(CamelModel):
    """Respuesta con información del invitado"""
    id: UUID
    name: str
    email: str
    phone: Optional[str] = None
    ticket_type: TicketType
    qr_code: str
    status: GuestStatus
    gift: Optional[str] = None
    entry_time: Optional[datetime] = None
    created_by: UUID
    created_at: datetime

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


class GuestCreatedResponse(CamelModel):
    """Invitado creado más la imagen de su QR"""
    guest: GuestResponse
    qr_image: str


class MessageResponse(BaseModel):
    message: str


class GuestStatsResponse(CamelModel):
    """Conteos agregados sobre todos los invitados"""
    total_guests: int = 0
    entered_guests: int = 0
    pending_guests: int = 0
    vip_guests: int = 0
    general_guests: int = 0
    invitacion_guests: int = 0
    gifts_registered: int = 0
