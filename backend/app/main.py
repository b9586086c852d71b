from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.config import get_settings
from app.api import auth, categories, favorites, health, images, movies, players, reactions, search, torrents, tv, webtorrent
from app.api import envelope
from app.exceptions import EnvelopeError, ServiceError
from app.services import background
from app.services.registry import close_providers
from app.services.scheduler import start_scheduler, stop_scheduler

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)
settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info(f"Starting {settings.app_name} ({settings.node_env})...")
    background.init_background(settings.background_concurrency)
    start_scheduler()
    yield
    # Shutdown
    stop_scheduler()
    await background.drain()
    await close_providers()
    logger.info("Shutdown complete")


app = FastAPI(
    title=settings.app_name,
    version=settings.api_version,
    lifespan=lifespan,
    docs_url="/",
    redoc_url=None,
    openapi_url="/openapi.json",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "Accept", "Origin", "X-Requested-With", "X-CSRF-Token", "X-Magnet-Link"],
)


@app.exception_handler(EnvelopeError)
async def envelope_error_handler(request: Request, exc: EnvelopeError):
    return JSONResponse(
        status_code=exc.status_code,
        content=envelope.unified_error(exc.message, exc.source, exc.started, exc.query),
    )


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(status_code=exc.status_code, content={"success": False, "error": exc.message})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    detail = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
    location = ".".join(str(part) for part in errors[0].get("loc", ())) if errors else ""
    message = f"{location}: {detail}" if location else detail
    return JSONResponse(status_code=400, content={"success": False, "error": message})


# Routers
app.include_router(health.router)
app.include_router(auth.router)
app.include_router(search.router)
app.include_router(movies.router)
app.include_router(tv.router)
app.include_router(categories.router)
app.include_router(images.router)
app.include_router(players.router)
app.include_router(players.stream_router)
app.include_router(torrents.router)
app.include_router(webtorrent.router)
app.include_router(favorites.router)
app.include_router(reactions.router)
