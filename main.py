"""
Storefront customer auth service — application entry point.
"""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.middleware import register_exception_handlers, register_middleware
from auth.dependencies import build_auth_engine
from auth.flows import AuthFlowEngine
from auth.routes import router as auth_router
from config.settings import config
from database.session import create_tables, dispose_engine

logging.basicConfig(
    level=logging.DEBUG if config.debug else logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(name)s — %(message)s",
    stream=sys.stdout,
)
for _noisy in ("sqlalchemy.engine", "asyncio"):
    logging.getLogger(_noisy).setLevel(logging.WARNING)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Ensuring customer tables exist…")
    await create_tables()
    logger.info("Application ready to accept requests.")
    yield
    await app.state.auth_engine.wait_for_notifications()
    await dispose_engine()


def create_app(engine: AuthFlowEngine | None = None) -> FastAPI:
    app = FastAPI(
        title="Storefront Customer Auth",
        version="1.0.0",
        description="Customer registration, verification, login and password reset.",
        lifespan=lifespan,
    )
    app.state.auth_engine = engine or build_auth_engine(config)

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_middleware(app)
    register_exception_handlers(app)

    app.include_router(auth_router, prefix="/store/custom/auth")
    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=config.host,
        port=config.port,
        reload=config.debug,
        log_level="debug" if config.debug else "info",
    )
