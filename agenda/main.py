# agenda/main.py

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from agenda.config import settings
from agenda.db import create_db_and_tables
from agenda.errors import AgendaError, BackendError
from agenda.logging_config import setup_logging
from agenda.routers import (
    appointments_routes,
    auth_routes,
    catalog_routes,
    shops_routes,
    users_routes,
)

setup_logging(
    "agenda",
    log_level=settings.log_level,
    log_file=settings.log_file,
    log_dir=settings.log_dir,
    max_bytes=settings.log_max_bytes,
    backup_count=settings.log_backup_count,
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    create_db_and_tables()
    yield


app = FastAPI(title="Agenda booking API", lifespan=lifespan)


@app.exception_handler(AgendaError)
async def agenda_error_handler(request: Request, exc: AgendaError):
    if isinstance(exc, BackendError):
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


@app.get("/health")
def health_check():
    return {"status": "ok"}


app.include_router(auth_routes.router)
app.include_router(users_routes.router)
app.include_router(shops_routes.router)
app.include_router(catalog_routes.router)
app.include_router(appointments_routes.router)
