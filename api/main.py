import logging
import os
from contextlib import asynccontextmanager

import asyncpg
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from core import db
from pins import repository as pin_repository
from pins import router as pins_router
from pins.memory import InMemoryStorage
from pins.service import PinService
from tags import router as tags_router

logger = logging.getLogger(__name__)

DEFAULT_CORS_ORIGINS = "http://localhost:3000,http://127.0.0.1:3000"


def storage_backend() -> str:
    return os.environ.get("STORAGE_BACKEND", "postgres").strip().lower() or "postgres"


def cors_allow_origins() -> list[str]:
    raw = os.environ.get("CORS_ALLOW_ORIGINS", "").strip() or DEFAULT_CORS_ORIGINS
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


def configure_logging() -> None:
    level = os.environ.get("LOG_LEVEL", "INFO").strip().upper() or "INFO"
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    backend = storage_backend()
    if backend == "memory":
        app.state.pin_service = PinService(InMemoryStorage().unit_of_work)
        logger.info("storage_ready backend=memory")
        try:
            yield
        finally:
            app.state.pin_service = None
        return

    if backend != "postgres":
        raise RuntimeError(f"Unknown STORAGE_BACKEND '{backend}'. Use 'postgres' or 'memory'.")

    # Initialize the DB pool once per process.
    await db.init_pool()
    app.state.pin_service = PinService(pin_repository.unit_of_work)
    logger.info("storage_ready backend=postgres")
    try:
        yield
    finally:
        app.state.pin_service = None
        await db.close_pool()


app = FastAPI(title="mapstash", lifespan=lifespan)

# Allow the map frontend dev server to call this API from the browser.
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_allow_origins(),
    allow_credentials=False,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

app.include_router(pins_router.router, tags=["pins"])
app.include_router(tags_router.router, tags=["tags"])


@app.exception_handler(asyncpg.PostgresError)
async def storage_failure_handler(request: Request, exc: asyncpg.PostgresError) -> JSONResponse:
    logger.error("storage_failure method=%s path=%s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": "Storage failure."})


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}


@app.get("/")
def root() -> dict:
    return {"message": "mapstash api"}
