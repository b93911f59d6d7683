"""API dependencies."""

import logging
import secrets

from fastapi import Header, HTTPException, Request

from wakegate.config import Environment, settings
from wakegate.runtime import WakeGate

logger = logging.getLogger("wakegate.api")


def get_gate(request: Request) -> WakeGate:
    """Return the runtime attached to the application."""
    gate = getattr(request.app.state, "gate", None)
    if gate is None:
        raise HTTPException(status_code=503, detail="WakeGate runtime not available")
    return gate


async def verify_api_key(
    authorization: str | None = Header(None),
    x_api_key: str | None = Header(None, alias="X-API-Key"),
) -> None:
    """
    Verify the shared API key.

    Fails closed: without a configured key every request is rejected unless
    insecure dev mode is explicitly enabled.
    """
    if settings.allow_insecure_dev and settings.env == Environment.DEVELOPMENT:
        return

    if not settings.api_key:
        logger.error("No API key configured and insecure dev mode is off; rejecting request")
        raise HTTPException(status_code=401, detail="Authentication not configured")

    api_key = None
    if authorization and authorization.startswith("Bearer "):
        api_key = authorization[len("Bearer "):]
    elif x_api_key:
        api_key = x_api_key

    if not api_key or not secrets.compare_digest(api_key, settings.api_key):
        raise HTTPException(status_code=401, detail="Invalid or missing API key")


def validate_auth_config() -> None:
    """Fail fast at startup when authentication is not configured safely."""
    if settings.env in (Environment.STAGING, Environment.PRODUCTION) and not settings.api_key:
        raise RuntimeError(f"WAKEGATE_API_KEY is required in {settings.env.value}")
    if not settings.api_key and not settings.allow_insecure_dev:
        logger.warning("No API key configured; all API requests will be rejected")
