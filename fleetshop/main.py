"""FastAPI application entry point."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI

from fleetshop import __version__
from fleetshop.api.router import api_router
from fleetshop.config import configure_logging
from fleetshop.db.engine import create_all, engine
from fleetshop.dependencies import planning_sessions


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    await create_all()
    yield
    await planning_sessions.close_all()
    await engine.dispose()


app = FastAPI(
    title="Fleetshop",
    description="Fleet maintenance work orders across workshop, warehouse and purchasing, with mechanic planning.",
    version=__version__,
    lifespan=lifespan,
)

app.include_router(api_router)
