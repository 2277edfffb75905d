import logging
from contextlib import asynccontextmanager

import asyncpg
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from auth import router as auth_router
from catalog import router as catalog_router
from contributions import router as contributions_router
from core import db, settings
from core.log import configure_logging
from favorites import router as favorites_router
from moderation import router as moderation_router
from notifications import router as notifications_router
from rankings import router as rankings_router
from reviews import router as reviews_router
from scan import router as scan_router

configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    # Initialize the DB pool once per process.
    await db.init_pool()
    try:
        yield
    finally:
        await db.close_pool()


app = FastAPI(title="serial-catalog api", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error_body(message: str) -> dict:
    return {"success": False, "error": message}


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(_: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(_: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    messages = []
    for err in errors:
        loc = ".".join(str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path"))
        messages.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=_error_body("; ".join(messages) or "Invalid request."),
    )


@app.exception_handler(asyncpg.PostgresError)
async def database_error_handler(request: Request, exc: asyncpg.PostgresError) -> JSONResponse:
    logger.exception("database_error path=%s", request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body(f"Database error: {exc}"),
    )


app.include_router(auth_router.router, tags=["auth"])
app.include_router(contributions_router.router, tags=["contributions"])
app.include_router(moderation_router.router, tags=["moderation"])
app.include_router(catalog_router.router, tags=["catalog"])
app.include_router(scan_router.router, tags=["scan"])
app.include_router(scan_router.cron_router, tags=["scan"])
app.include_router(reviews_router.router, tags=["reviews"])
app.include_router(favorites_router.router, tags=["favorites"])
app.include_router(notifications_router.router, tags=["notifications"])
app.include_router(rankings_router.router, tags=["rankings"])


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}


@app.get("/")
def root() -> dict:
    return {"message": "serial-catalog api"}
