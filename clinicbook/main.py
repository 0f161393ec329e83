# clinicbook/main.py
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from clinicbook.core.config import settings
from clinicbook.core.errors import ClinicError
from clinicbook.db.sql import make_store
from clinicbook.db.store import KeyValueStore
from clinicbook.routers import admin, appointments, auth, doctors, health
from clinicbook.seed import ensure_admin, seed_initial_data

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def create_app(store: Optional[KeyValueStore] = None) -> FastAPI:
    """
    Build the API. Without an explicit store the durable SQL store from
    STORE_DSN is opened at start-up.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Open the store and seed first-run data (or repair the admin account).
        """
        if getattr(app.state, "store", None) is None:
            app.state.store = make_store()
        if settings.SEED_SAMPLE_DATA:
            seed_initial_data(app.state.store)
        else:
            ensure_admin(app.state.store)
        logger.info("Clinic booking API ready (%s)", type(app.state.store).__name__)
        yield

    app = FastAPI(
        title="Clinic Appointment Booking",
        lifespan=lifespan,
    )
    app.state.store = store

    @app.exception_handler(ClinicError)
    async def clinic_error_handler(request: Request, exc: ClinicError):
        return JSONResponse(
            {"detail": exc.code, "message": exc.message},
            status_code=exc.status_code,
        )

    # Routing
    app.include_router(health.router, prefix=settings.API_PREFIX, tags=["health"])
    app.include_router(auth.router, prefix=settings.API_PREFIX, tags=["auth"])
    app.include_router(doctors.router, prefix=settings.API_PREFIX, tags=["doctors"])
    app.include_router(appointments.router, prefix=settings.API_PREFIX, tags=["appointments"])
    app.include_router(admin.router, prefix=settings.API_PREFIX, tags=["admin"])

    @app.get("/")
    def root():
        return {"message": "Clinic booking API running successfully"}

    return app


app = create_app()
