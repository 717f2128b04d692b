"""Rutas de autenticación y administración de usuarios"""
from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from shared.auth.dependencies import get_current_user, get_current_admin
from shared.auth.principal import Principal
from shared.database.connection import get_db
from shared.utils.rate_limiter import limiter, RATE_LIMITS
from shared.utils.results import unwrap
from services.auth.models.auth import (
    DeleteUserResponse,
    LoginRequest,
    RegisterUserRequest,
    TokenResponse,
    UpdatePasswordRequest,
    UpdateUserRoleRequest,
    UserResponse,
)
from services.auth.services.auth_service import AuthService


router = APIRouter()


@router.post("/login", response_model=TokenResponse)
@limiter.limit(RATE_LIMITS["login"])
async def login(
    request: Request,
    payload: LoginRequest,
    db: AsyncSession = Depends(get_db)
):
    """Login con usuario y contraseña"""
    service = AuthService(db)
    token, user = unwrap(await service.login(payload.username, payload.password))
    return TokenResponse(access_token=token, user=UserResponse.model_validate(user))


@router.get("/me", response_model=UserResponse)
async def get_me(
    db: AsyncSession = Depends(get_db),
    current_user: Principal = Depends(get_current_user)
):
    """Usuario autenticado actual"""
    service = AuthService(db)
    return unwrap(await service.get_me(current_user))


@router.put("/updatepassword", response_model=TokenResponse)
@limiter.limit(RATE_LIMITS["login"])
async def update_password(
    request: Request,
    payload: UpdatePasswordRequest,
    db: AsyncSession = Depends(get_db),
    current_user: Principal = Depends(get_current_user)
):
    """Cambiar contraseña propia; devuelve un token nuevo"""
    service = AuthService(db)
    token = unwrap(await service.update_password(
        current_user,
        current_password=payload.current_password,
        new_password=payload.new_password
    ))
    user = unwrap(await service.get_me(current_user))
    return TokenResponse(access_token=token, user=UserResponse.model_validate(user))


# ==================== ADMIN ====================

@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(RATE_LIMITS["management"])
async def register_user(
    request: Request,
    payload: RegisterUserRequest,
    db: AsyncSession = Depends(get_db),
    current_user: Principal = Depends(get_current_admin)
):
    """
    Crear usuario (rol staff por defecto)

    Requiere autenticación de admin
    """
    service = AuthService(db)
    return unwrap(await service.register_user(payload.username, payload.password, payload.role))


@router.get("/users", response_model=List[UserResponse])
async def list_users(
    db: AsyncSession = Depends(get_db),
    current_user: Principal = Depends(get_current_admin)
):
    """
    Listar usuarios

    Requiere autenticación de admin
    """
    service = AuthService(db)
    return unwrap(await service.list_users())


@router.delete("/users/{user_id}", response_model=DeleteUserResponse)
@limiter.limit(RATE_LIMITS["management"])
async def delete_user(
    request: Request,
    user_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: Principal = Depends(get_current_admin)
):
    """
    Eliminar usuario

    Requiere autenticación de admin; no permite eliminar la propia cuenta
    """
    service = AuthService(db)
    user = unwrap(await service.delete_user(current_user, user_id))
    return DeleteUserResponse(message="Usuario eliminado exitosamente", user_id=str(user.id))


@router.put("/users/{user_id}/role", response_model=UserResponse)
@limiter.limit(RATE_LIMITS["management"])
async def update_user_role(
    request: Request,
    user_id: str,
    payload: UpdateUserRoleRequest,
    db: AsyncSession = Depends(get_db),
    current_user: Principal = Depends(get_current_admin)
):
    """
    Cambiar el rol de un usuario

    Requiere autenticación de admin; no permite cambiar el propio rol
    """
    service = AuthService(db)
    return unwrap(await service.update_user_role(current_user, user_id, payload.role))
