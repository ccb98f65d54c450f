import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from catalog.router import router as catalog_router
from catalog.service import DatabaseCatalog, build_catalog
from core import db, settings
from core.drive import DriveError
from core.errors import ServiceError, UnsupportedBackend
from core.object_store import ObjectStoreError
from uploads import service as upload_service
from uploads.router import router as uploads_router
from uploads.stores import build_artifact_store

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    catalog = build_catalog()
    if isinstance(catalog, DatabaseCatalog):
        await db.init_pool()
    app.state.catalog = catalog

    try:
        app.state.artifact_store = build_artifact_store()
    except (UnsupportedBackend, DriveError, ObjectStoreError) as e:
        # Search keeps working; /api/upload answers with the reason.
        logger.error("artifact_store_unavailable reason=%s", e)
        app.state.artifact_store = None

    try:
        yield
    finally:
        app.state.catalog = None
        app.state.artifact_store = None
        await db.close_pool()


app = FastAPI(lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins(),
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error_body(message: str, code: str) -> dict:
    return {"success": False, "error": message, "code": code}


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    logger.warning(
        "request_failed path=%s code=%s message=%s",
        request.url.path,
        exc.code,
        exc.message,
    )
    return JSONResponse(status_code=exc.status_code, content=_error_body(exc.message, exc.code))


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("request_failed path=%s code=internal_error", request.url.path)
    return JSONResponse(
        status_code=500,
        content=_error_body("Unexpected error while processing the request.", "internal_error"),
    )


@app.middleware("http")
async def reject_oversized_uploads(request: Request, call_next):
    # Checked on the declared size, before the multipart body is read.
    if request.method == "POST" and request.url.path == "/api/upload":
        try:
            upload_service.check_declared_size(
                request.headers.get("content-length"),
                settings.max_upload_bytes(),
            )
        except ServiceError as exc:
            return JSONResponse(status_code=exc.status_code, content=_error_body(exc.message, exc.code))
    return await call_next(request)


app.include_router(catalog_router, tags=["catalog"])
app.include_router(uploads_router, tags=["uploads"])


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}


# Registered last so API routes win over the front-end files.
if os.path.isdir(settings.static_dir()):
    app.mount("/", StaticFiles(directory=settings.static_dir(), html=True), name="static")
