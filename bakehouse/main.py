# bakehouse/main.py
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from bakehouse import __version__
from bakehouse.api.errors import install_error_handlers
from bakehouse.api.routers.bake_slots import router as bake_slots_router
from bakehouse.api.routers.flavors import router as flavors_router
from bakehouse.api.routers.orders import router as orders_router
from bakehouse.api.routers.prep_sheets import router as prep_sheets_router
from bakehouse.api.routers.production import router as production_router
from bakehouse.core.config import get_settings
from bakehouse.core.logging import setup_logging
from bakehouse.db.session import close_engine, create_tables
from bakehouse.metrics import router as metrics_router
from bakehouse.obs.metrics import PrometheusMiddleware

logger = logging.getLogger("bakehouse")


@asynccontextmanager
async def lifespan(_app: FastAPI):
    settings = get_settings()
    setup_logging(settings.LOG_LEVEL, log_sql=settings.SQL_ECHO)
    if settings.CREATE_TABLES_ON_STARTUP:
        await create_tables()
        logger.info("tables ensured (create_all)")
    logger.info("bakehouse %s up (env=%s)", __version__, settings.ENV)
    yield
    await close_engine()


app = FastAPI(
    title="Bakehouse",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://127.0.0.1:5173",
        "http://localhost:5173",
        "http://127.0.0.1:8000",
        "http://localhost:8000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(PrometheusMiddleware)

install_error_handlers(app)

app.include_router(bake_slots_router)
app.include_router(flavors_router)
app.include_router(orders_router)
app.include_router(prep_sheets_router)
app.include_router(production_router)
app.include_router(metrics_router)


@app.get("/healthz")
async def healthz():
    return {"status": "ok"}
