"""
Resource Monitor — FastAPI entrypoint
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator

from app.core.config import get_settings
from app.core.errors import HTTP_STATUS_BY_KIND, InvalidInput, ResourceError
from app.core.redis_client import close_redis
from app.db.database import engine, Base, SessionLocal
from app.db.seed import seed_catalog
from app.api import resources, stream, health

settings = get_settings()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: create tables and provision the catalog
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    if settings.SEED_CATALOG:
        async with SessionLocal() as session:
            await seed_catalog(session)
    yield
    await close_redis()
    await engine.dispose()


app = FastAPI(
    title="Outpost Resource Monitor",
    description="Tracks oxygen, water, food and spare parts levels with history, trends and live SSE updates.",
    version=settings.SERVICE_VERSION,
    lifespan=lifespan,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url=None,
)

app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_credentials=True,
                   allow_methods=["*"], allow_headers=["*"])

if settings.METRICS_ENABLED:
    Instrumentator().instrument(app).expose(app, endpoint="/metrics")


@app.exception_handler(ResourceError)
async def resource_error_handler(request: Request, exc: ResourceError):
    status_code = HTTP_STATUS_BY_KIND[exc.kind]
    if status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=status_code, content={"detail": exc.message, "error": exc.code})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Malformed bodies and parameters are reported as InvalidInput (400)."""
    first = exc.errors()[0] if exc.errors() else {}
    field = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path"))
    error = InvalidInput(f"Invalid {field or 'request'}: {first.get('msg', 'malformed request')}")
    return await resource_error_handler(request, error)


# /resources/stream must be registered before /resources/{resource_id}
app.include_router(stream.router)
app.include_router(resources.router)
app.include_router(health.router)


@app.get("/")
async def root():
    return {"service": settings.SERVICE_NAME, "version": settings.SERVICE_VERSION}
