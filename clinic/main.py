# clinic/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from clinic.core.config import settings
from clinic.core.logging import configure_logging
from clinic.core.middleware import RequestLogMiddleware
from clinic.db.sql import init_db
from clinic.routers import (
    appointments,
    auth,
    health,
    invoices,
    line_items,
    patients,
    rooms,
    treatments,
)

configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Create the tables on startup outside production;
    production schema is managed by Alembic.
    """
    if settings.APP_ENV in ("dev", "test"):
        await init_db()
    logger.info("clinic api started", extra={"env": settings.APP_ENV})
    yield


app = FastAPI(
    title="Dental Clinic Management API",
    version="1.0.0",
    lifespan=lifespan,
)
app.add_middleware(RequestLogMiddleware)


# Every error leaves the API as {"success": false, "error": "..."}
@app.exception_handler(HTTPException)
async def http_exception_handler(request, exc: HTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(p) for p in first.get("loc", ())[1:])
    message = f"{field}: {first.get('msg')}" if field else str(first.get("msg", "Invalid request"))
    return JSONResponse(status_code=400, content={"success": False, "error": message})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request, exc: Exception):
    logger.exception("unhandled error", extra={"path": request.url.path})
    return JSONResponse(
        status_code=500, content={"success": False, "error": "Internal server error"}
    )


# Routing
app.include_router(health.router, prefix=settings.API_PREFIX, tags=["health"])
app.include_router(auth.router, prefix=settings.API_PREFIX)
app.include_router(patients.router, prefix=settings.API_PREFIX)
app.include_router(rooms.router, prefix=settings.API_PREFIX)
app.include_router(appointments.router, prefix=settings.API_PREFIX)
app.include_router(treatments.router, prefix=settings.API_PREFIX)
app.include_router(invoices.router, prefix=settings.API_PREFIX)
app.include_router(line_items.router, prefix=settings.API_PREFIX)


@app.get("/")
def root():
    return {"message": "Dental clinic API running successfully"}
