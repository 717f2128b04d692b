"""API principal - Punto de entrada de la aplicación"""
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException
import logging
from contextlib import asynccontextmanager

from app.core.config import settings
from shared.database import connection
from shared.database.connection import init_db, close_db, create_tables
from shared.utils.rate_limiter import limiter, rate_limit_exceeded_handler
from shared.utils.results import ErrorCode, HTTP_STATUS_BY_CODE, INTERNAL_ERROR_MESSAGE

# Configurar logging
logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

CODE_BY_HTTP_STATUS = {status_code: code for code, status_code in HTTP_STATUS_BY_CODE.items()}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifecycle events de la aplicación"""
    logger.info("Iniciando aplicación...")
    await init_db()
    if settings.DATABASE_CREATE_TABLES:
        await create_tables()
    logger.info("Aplicación iniciada")
    yield
    logger.info("Cerrando aplicación...")
    await close_db()
    logger.info("Aplicación cerrada")


app = FastAPI(
    title="Crodify Guests API",
    description="Backend API para registro, QR, ingreso y regalos de invitados a eventos",
    version="1.0.0",
    lifespan=lifespan
)

if settings.APP_ENV == "development":
    logger.info("Modo desarrollo: CORS configurado para permitir todos los orígenes")
    allow_origins = ["*"]
    allow_credentials = False  # No se puede usar credentials con allow_origins=["*"]
else:
    allow_origins = [origin.strip() for origin in settings.CORS_ORIGINS.split(",") if origin.strip()]
    allow_credentials = True
    logger.info(f"CORS origins configurados: {allow_origins}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=allow_origins,
    allow_credentials=allow_credentials,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
    max_age=3600,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Cuerpo uniforme {"error", "detail"} para todos los errores HTTP"""
    if isinstance(exc.detail, dict) and "error" in exc.detail:
        content = exc.detail
    else:
        code = CODE_BY_HTTP_STATUS.get(exc.status_code)
        content = {"error": code.value if code else "http_error", "detail": exc.detail}
    return JSONResponse(status_code=exc.status_code, content=content, headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Errores de validación de request como 400 en lugar de 422"""
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        messages.append(f"{location}: {error.get('msg')}" if location else error.get("msg"))
    return JSONResponse(
        status_code=400,
        content={"error": ErrorCode.VALIDATION_ERROR.value, "detail": "Error de validación", "messages": messages},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {type(exc).__name__}", exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"error": ErrorCode.INTERNAL_ERROR.value, "detail": INTERNAL_ERROR_MESSAGE},
    )


# Incluir routers de cada servicio
from services.auth.routes.auth import router as auth_router
from services.guest_management.routes.guests import router as guests_router

app.include_router(auth_router, prefix="/api/v1/auth", tags=["auth"])
app.include_router(guests_router, prefix="/api/v1/guests", tags=["guests"])


@app.get("/health")
async def health():
    """Health check endpoint"""
    return {"status": "ok", "service": "crodify-guests-api"}


@app.get("/ready")
async def ready():
    """Ready check endpoint - verifica conexión a la base de datos"""
    try:
        from sqlalchemy import text
        async with connection.async_session_maker() as session:
            await session.execute(text("SELECT 1"))
        return {"status": "ready", "database": "connected"}
    except Exception as e:
        logger.error(f"Ready check failed: {e}")
        return JSONResponse(status_code=503, content={"status": "not ready", "database": "unavailable"})


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.APP_DEBUG
    )
