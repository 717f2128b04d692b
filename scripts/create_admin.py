"""
Script para crear el usuario admin inicial
Ejecuta: python scripts/create_admin.py

Usa BOOTSTRAP_ADMIN_USERNAME / BOOTSTRAP_ADMIN_PASSWORD. Si el usuario ya
existe no hace nada.
"""
import asyncio
import logging
import sys
from pathlib import Path

# Agregar el directorio raíz al path
root_dir = Path(__file__).parent.parent
sys.path.insert(0, str(root_dir))

from app.core.config import settings
from shared.database import connection
from services.auth.services.auth_service import AuthService

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


async def create_admin_user() -> bool:
    await connection.init_db()
    try:
        await connection.create_tables()
        async with connection.async_session_maker() as db:
            service = AuthService(db)

            if await service.get_user_by_username(settings.BOOTSTRAP_ADMIN_USERNAME):
                logger.info(f"El usuario admin '{settings.BOOTSTRAP_ADMIN_USERNAME}' ya existe")
                return True

            result = await service.register_user(
                settings.BOOTSTRAP_ADMIN_USERNAME,
                settings.BOOTSTRAP_ADMIN_PASSWORD,
                role="admin"
            )
            if not result.ok:
                logger.error(f"No se pudo crear el admin: {result.error.message}")
                return False

            logger.info(f"Usuario admin '{result.value.username}' creado")
            logger.warning("Cambia la contraseña del admin después del primer login")
            return True
    finally:
        await connection.close_db()


if __name__ == "__main__":
    success = asyncio.run(create_admin_user())
    sys.exit(0 if success else 1)
