# app/main.py
from contextlib import asynccontextmanager
import logging

from fastapi.middleware.cors import CORSMiddleware
from fastapi import FastAPI
from sqlmodel import Session

from app.core.config import get_settings
from app.core.deps import get_expiry_sweeper, get_order_service
from app.database import create_db_and_tables, engine
from app.services.expiry_sweeper import ExpirySweeperThread

# Import models so SQLModel metadata is populated before create_all()
from app.models import order as _order_models  # noqa: F401
from app.models import payment_setting as _payment_setting_models  # noqa: F401


# Routers
from app.routers.orders import router as orders_router
from app.routers.cron import router as cron_router
from app.routers.payment_settings import router as payment_settings_router

settings = get_settings()

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("uvicorn")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup:
      - Verify DB connectivity and create tables.
      - Start the in-process expiry sweeper if SWEEPER_ENABLED.

    Shutdown:
      - Stop and join the sweeper thread.
    """
    logger.info("🔄 Startup: Connecting to database...")
    try:
        create_db_and_tables()
        logger.info("✅ Startup: DB connection OK, tables verified.")
    except Exception as e:
        logger.error(f"❌ Startup: DB connection FAILED: {e}")
        raise

    sweeper_thread: ExpirySweeperThread | None = None
    if settings.SWEEPER_ENABLED:
        sweeper_thread = ExpirySweeperThread(
            get_expiry_sweeper(get_order_service()),
            session_factory=lambda: Session(engine),
            interval_seconds=settings.SWEEP_INTERVAL_SECONDS,
        )
        sweeper_thread.start()

    yield

    if sweeper_thread is not None:
        sweeper_thread.stop()


app = FastAPI(
    title=settings.PROJECT_NAME or "ZOGAMING Store API",
    version="0.1.0",
    lifespan=lifespan,
)


# --- CORS configuration ---
origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://0.0.0.0:3000",
    "http://[::1]:3000",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Versioned API prefix, e.g. /api/v1
app.include_router(orders_router, prefix=settings.API_V1_STR)
app.include_router(payment_settings_router, prefix=settings.API_V1_STR)
app.include_router(cron_router, prefix=settings.API_V1_STR)


@app.get("/")
def root():
    """Health check endpoint."""
    return {"status": "ok", "service": "zogaming-backend"}
