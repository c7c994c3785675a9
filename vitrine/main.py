# vitrine/main.py
"""
Aplicação Principal - Vitrine API
=================================
Pedidos das vitrines e razão de comissões da plataforma.
"""

import logging
import sys
from contextlib import asynccontextmanager

import socketio
import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.cors import CORSMiddleware

from vitrine.api.admin import router as admin_router
from vitrine.api.admin.events.vitrine_namespace import VitrineNamespace
from vitrine.api.admin.socketio.emitters import NAMESPACE
from vitrine.api.app import router as app_router
from vitrine.core.config import config, validate_config
from vitrine.core.database import engine
from vitrine.core.exceptions import CommissionError
from vitrine.core.middleware.correlation import CorrelationIdMiddleware
from vitrine.core.models import Base
from vitrine.core.utils.time_utils import now_utc
from vitrine.socketio_instance import sio

logging.basicConfig(
    level=config.LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[logging.StreamHandler(sys.stdout)]
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Gerencia ciclo de vida da aplicação"""

    logger.info("=" * 60)
    logger.info("🚀 INICIANDO APLICAÇÃO VITRINE")
    logger.info("=" * 60)

    validate_config()

    # Em produção o schema vem das migrações; aqui só garante as tabelas locais
    if not config.is_production:
        Base.metadata.create_all(bind=engine)
        logger.info("✅ Tabelas verificadas")

    logger.info("✅ APLICAÇÃO PRONTA!")
    yield

    logger.info("🛑 DESLIGANDO APLICAÇÃO")
    engine.dispose()


# ✅ REGISTRA NAMESPACES
sio.register_namespace(VitrineNamespace(NAMESPACE))

# ✅ CRIA APLICAÇÃO
fast_app = FastAPI(
    title="Vitrine API",
    version="1.0.0",
    lifespan=lifespan
)

fast_app.add_middleware(CorrelationIdMiddleware)


# ═══════════════════════════════════════════════════════════
# ERROS DE NEGÓCIO
# ═══════════════════════════════════════════════════════════

@fast_app.exception_handler(CommissionError)
async def commission_error_handler(request: Request, exc: CommissionError):
    logger.warning(
        f"⚠️ {type(exc).__name__} em {request.method} {request.url.path}: {exc.message}"
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": type(exc).__name__, "message": exc.message},
    )


# ═══════════════════════════════════════════════════════════
# CORS
# ═══════════════════════════════════════════════════════════

if config.is_development:
    fast_app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
else:
    fast_app.add_middleware(
        CORSMiddleware,
        allow_origins=config.get_allowed_origins_list(),
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "x-correlation-id"],
        expose_headers=["x-correlation-id"],
        max_age=3600,
    )

logger.info(f"🌐 CORS configurado - Ambiente: {config.ENVIRONMENT.upper()}")


# ═══════════════════════════════════════════════════════════
# ROTAS
# ═══════════════════════════════════════════════════════════

fast_app.include_router(admin_router)
fast_app.include_router(app_router)


@fast_app.get("/health", tags=["Health"])
async def health_check() -> dict:
    return {
        "status": "healthy",
        "version": "1.0.0",
        "timestamp": now_utc().isoformat(),
    }


# ✅ CRIA ASGI APP
app = socketio.ASGIApp(sio, fast_app)

if __name__ == "__main__":
    uvicorn.run(app, host=config.HOST, port=config.PORT)

__all__ = ["app", "fast_app"]
