# backend/servicebook/main.py
import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from .config import settings
from .database import Base, engine
# every model module must be imported before create_all
from .models import booking, notification, password_reset, receipt, schedule, service, user  # noqa: F401
from .routers import auth as auth_router
from .routers import booking as booking_router
from .routers import notifications as notifications_router
from .routers import receipts as receipts_router
from .routers import services as services_router
from .routers import settings as settings_router
from .routers import users as users_router

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# chatty third-party loggers
logging.getLogger("googleapiclient.discovery_cache").setLevel(logging.ERROR)
logging.getLogger("urllib3").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    Base.metadata.create_all(bind=engine)
    logger.info("servicebook started (env=%s)", settings.APP_ENV)
    yield


app = FastAPI(title="servicebook", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- Request log ---
@app.middleware("http")
async def log_requests(request: Request, call_next):
    started = time.perf_counter()
    try:
        response = await call_next(request)
    except Exception:
        logger.exception("%s %s failed", request.method, request.url.path)
        raise
    elapsed_ms = (time.perf_counter() - started) * 1000
    logger.info("%s %s -> %s (%.1f ms)", request.method, request.url.path, response.status_code, elapsed_ms)
    return response


# --- API Routers ---
app.include_router(auth_router.router)
app.include_router(users_router.router)
app.include_router(services_router.router)
app.include_router(settings_router.router)
app.include_router(booking_router.router)
app.include_router(receipts_router.router)
app.include_router(notifications_router.router)


@app.get("/ping")
def ping():
    return {"ok": True}
