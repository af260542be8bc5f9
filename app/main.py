# ===================================
# app/main.py
# ===================================
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from contextlib import asynccontextmanager
import logging

from app.core.config import settings
from app.core.database import init_db, check_db_connection
from app.core.scheduler import init_scheduler, shutdown_scheduler

# Import des routes
from app.api.v1 import auth, users, sites, cpc, products, actifs, passifs
from app.api.v1 import stock, depot_items, notifications, audit
from app.api.v2 import users as users_v2

# Configuration des logs
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Gestionnaire de cycle de vie de l'application"""
    logger.info(f"Démarrage de {settings.PROJECT_NAME} ({settings.ENVIRONMENT})...")

    if not check_db_connection():
        logger.error("Impossible de se connecter à la base de données")
        raise RuntimeError("Database connection failed")

    init_db()

    if settings.SCHEDULER_ENABLED:
        init_scheduler()

    logger.info("Application démarrée avec succès")

    yield

    logger.info("Arrêt de l'application...")
    shutdown_scheduler()


def _error_response(status_code: int, message, headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"status": "error", "message": message, "data": None},
        headers=headers,
    )


def _validation_message(errors) -> str:
    parts = []
    for error in errors:
        location = ".".join(str(p) for p in error.get("loc", ()) if p not in ("body", "query", "path"))
        parts.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    return "; ".join(parts) or "Données invalides"


def create_app() -> FastAPI:
    """Factory pour créer l'application FastAPI"""

    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.PROJECT_VERSION,
        openapi_url=f"{settings.API_V1_STR}/openapi.json",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Routes API v1
    app.include_router(auth.router, prefix=f"{settings.API_V1_STR}/auth", tags=["Auth"])
    app.include_router(users.router, prefix=f"{settings.API_V1_STR}/users", tags=["Users"])
    app.include_router(sites.router, prefix=f"{settings.API_V1_STR}/sites", tags=["Sites"])
    app.include_router(cpc.router, prefix=f"{settings.API_V1_STR}/cpc", tags=["CPC"])
    app.include_router(products.router, prefix=f"{settings.API_V1_STR}/products", tags=["Products"])
    app.include_router(actifs.router, prefix=f"{settings.API_V1_STR}/actifs", tags=["Actifs"])
    app.include_router(passifs.router, prefix=f"{settings.API_V1_STR}/passifs", tags=["Passifs"])
    app.include_router(stock.router, prefix=f"{settings.API_V1_STR}/stock", tags=["Stock"])
    app.include_router(depot_items.router, prefix=f"{settings.API_V1_STR}/depot-items", tags=["Depot items"])
    app.include_router(notifications.router, prefix=f"{settings.API_V1_STR}/notifications", tags=["Notifications"])
    app.include_router(audit.router, prefix=f"{settings.API_V1_STR}/audit", tags=["Audit"])

    # Routes API v2
    app.include_router(users_v2.router, prefix=f"{settings.API_V2_STR}/users", tags=["Users v2"])

    # Route de santé
    @app.get("/health")
    async def health_check():
        """Vérification de la santé de l'API"""
        db_status = "ok" if check_db_connection() else "error"

        return {
            "status": "ok" if db_status == "ok" else "error",
            "version": settings.PROJECT_VERSION,
            "environment": settings.ENVIRONMENT,
            "database": db_status,
            "scheduler": "ok" if settings.SCHEDULER_ENABLED else "disabled"
        }

    # Route racine
    @app.get("/")
    async def root():
        return {
            "message": f"Bienvenue sur {settings.PROJECT_NAME}",
            "version": settings.PROJECT_VERSION,
            "docs": "/docs",
            "health": "/health"
        }

    # Gestion globale des erreurs
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return _error_response(exc.status_code, exc.detail, getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return _error_response(400, _validation_message(exc.errors()))

    @app.exception_handler(PydanticValidationError)
    async def pydantic_validation_handler(request: Request, exc: PydanticValidationError):
        return _error_response(400, _validation_message(exc.errors()))

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.error(f"Erreur non gérée: {exc}", exc_info=True)
        return _error_response(500, "Erreur interne du serveur")

    return app


# Créer l'instance de l'application
app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower()
    )
