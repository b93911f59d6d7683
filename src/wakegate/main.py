"""WakeGate main application."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI

from wakegate.api import router
from wakegate.api.deps import validate_auth_config
from wakegate.config import settings
from wakegate.db.base import close_db, init_db
from wakegate.runtime import WakeGate

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger("wakegate")


def create_app(gate: Optional[WakeGate] = None) -> FastAPI:
    """Build the API around a runtime; handlers and alarms are registered on ``gate``."""
    gate = gate or WakeGate()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting WakeGate server...")
        logger.info(f"Environment: {settings.env.value}")

        # Fail fast if authentication is misconfigured
        validate_auth_config()

        await init_db()
        logger.info("Database initialized")

        await gate.start()

        yield

        logger.info("Shutting down WakeGate server...")
        await gate.stop()
        await close_db()
        logger.info("Shutdown complete")

    app = FastAPI(
        title="WakeGate",
        description="Wakeful background work under a process-wide resource hold",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.gate = gate
    app.include_router(router)
    return app


app = create_app()


def main():
    """Entry point for the application."""
    uvicorn.run(
        "wakegate.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
