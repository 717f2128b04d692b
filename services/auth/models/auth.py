"""Modelos Pydantic para autenticación y usuarios"""
from pydantic import BaseModel
from pydantic.alias_generators import to_camel
from typing import Optional
from uuid import UUID
from datetime import datetime


class LoginRequest(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None


class RegisterUserRequest(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None
    role: Optional[str] = None  # staff por defecto


class UpdatePasswordRequest(BaseModel):
    current_password: Optional[str] = None
    new_password: Optional[str] = None

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class UpdateUserRoleRequest(BaseModel):
    role: Optional[str] = None


class UserResponse(BaseModel):
    """Respuesta con información de usuario"""
    id: UUID
    username: str
    role: str
    created_at: datetime

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserResponse


class DeleteUserResponse(BaseModel):
    message: str
    user_id: str
