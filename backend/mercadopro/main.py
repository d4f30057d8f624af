"""MercadoPro API - Aplicação principal FastAPI."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from redis import Redis
from redis.exceptions import RedisError
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from . import __version__
from .config import settings
from .database import Base, engine
from .errors import AppError
from .rate_limit import limiter
from .routers import (
    auth,
    categories,
    dashboard,
    expenses,
    products,
    sales,
    subscription,
    suppliers,
    webhooks,
)
from .schemas import HealthResponse

# === Logging ===

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


# === Lifespan ===


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup e shutdown da API."""
    logger.info("Iniciando MercadoPro API...")

    # Em produção as tabelas vêm do Alembic
    if settings.is_development:
        logger.info("Ambiente de desenvolvimento: criando tabelas...")
        Base.metadata.create_all(bind=engine)

    logger.info("MercadoPro API pronta")
    yield

    logger.info("Encerrando MercadoPro API...")


# === App ===

app = FastAPI(
    title="MercadoPro API",
    description="API de gestão para pequenos comércios: estoque, vendas, despesas e relatórios",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs" if settings.is_development else None,
    redoc_url="/redoc" if settings.is_development else None,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


# === Middleware ===

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)


# === Exception Handlers ===


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Converte erros de domínio em respostas JSON."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path}: {exc.detail}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Qualquer outra exceção vira 500; a mensagem só aparece fora de produção."""
    logger.exception(f"Erro não tratado: {exc}")
    return JSONResponse(
        status_code=500,
        content={
            "detail": "Erro interno do servidor"
            if settings.is_production
            else str(exc)
        },
    )


# === Routers ===

app.include_router(auth.router, prefix="/auth", tags=["auth"])
app.include_router(products.router, prefix="/products", tags=["products"])
app.include_router(categories.router, prefix="/categories", tags=["categories"])
app.include_router(suppliers.router, prefix="/suppliers", tags=["suppliers"])
app.include_router(sales.router, prefix="/sales", tags=["sales"])
app.include_router(expenses.router, prefix="/expenses", tags=["expenses"])
app.include_router(dashboard.router, prefix="/dashboard", tags=["dashboard"])
app.include_router(subscription.router, prefix="/subscription", tags=["subscription"])
app.include_router(webhooks.router, prefix="/webhooks", tags=["webhooks"])


# === Health Check ===


@app.get("/health", response_model=HealthResponse, tags=["health"])
def health_check() -> HealthResponse:
    """Status do banco e, se configurado, do Redis."""
    db_ok = False
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        db_ok = True
    except SQLAlchemyError as e:
        logger.warning(f"Health check DB falhou: {e}")

    # Redis só é verificado quando configurado
    redis_ok = None
    if settings.redis_url:
        redis_ok = False
        try:
            Redis.from_url(settings.redis_url).ping()
            redis_ok = True
        except RedisError as e:
            logger.warning(f"Health check Redis falhou: {e}")

    if db_ok and redis_ok is not False:
        status = "ok"
    elif db_ok or redis_ok:
        status = "degraded"
    else:
        status = "down"

    return HealthResponse(status=status, db=db_ok, redis=redis_ok)


@app.get("/", tags=["root"])
def root() -> dict:
    """Nome e versão da API."""
    return {
        "app": "MercadoPro API",
        "version": __version__,
        "docs": "/docs" if settings.is_development else None,
        "health": "/health",
    }
