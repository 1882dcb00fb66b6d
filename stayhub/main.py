# Application entrypoint: middleware, error envelopes, startup and API routers.
import logging
import os

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .db import Base, engine, is_sqlite
from .errors import InternalError, StayHubError
from .routes.auth import router as auth_router
from .routes.bookings import router as bookings_router
from .routes.listings import router as listings_router
from .routes.notifications import router as notifications_router

logger = logging.getLogger("stayhub.api")


# Parse CORS origins from a comma-separated env var.
# '*' cannot be combined with allow_credentials=True, so it maps to the localhost dev origins.
def _parse_cors_origins(env_value: str | None) -> list[str]:
    default_dev_origins = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]
    if not env_value:
        return default_dev_origins
    origins = [o.strip() for o in env_value.split(",") if o.strip()]
    if "*" in origins:
        return default_dev_origins
    return origins


app = FastAPI(title="StayHub API", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=_parse_cors_origins(os.getenv("CORS_ORIGINS")),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ----------------
# Error envelopes: every failure renders as {"message": ..., "error": ...}
# ----------------
@app.exception_handler(StayHubError)
async def stayhub_error_handler(request: Request, exc: StayHubError) -> JSONResponse:
    if isinstance(exc, InternalError):
        logger.error(
            "api.internal_error",
            extra={"path": request.url.path, "detail": exc.detail},
        )
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message, "error": exc.kind})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if isinstance(exc.detail, dict):
        content = {"message": str(exc.detail.get("message", "Request failed")), **exc.detail}
    else:
        content = {"message": str(exc.detail)}
    return JSONResponse(status_code=exc.status_code, content=content, headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content={
            "message": "Request validation failed",
            "error": "validation_error",
            "details": jsonable_encoder(exc.errors()),
        },
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    # Full traceback goes to the logs only
    logger.exception("api.unhandled_error", extra={"path": request.url.path})
    return JSONResponse(status_code=500, content={"message": "Internal server error", "error": "internal"})


@app.on_event("startup")
def on_startup() -> None:
    # SQLite gets its tables created on boot; server databases are migrated with Alembic.
    if is_sqlite():
        Base.metadata.create_all(bind=engine)


# Liveness endpoint for container orchestrators and uptime checks
@app.get("/healthz")
def healthz() -> dict:
    return {"status": "ok"}


app.include_router(auth_router, prefix="", tags=["auth"])
app.include_router(listings_router, prefix="/api/v1", tags=["listings"])
app.include_router(bookings_router, prefix="/api/v1", tags=["bookings"])
app.include_router(notifications_router, prefix="/api/v1", tags=["notifications"])
