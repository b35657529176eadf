"""FastAPI authentication dependency."""

import secrets

from fastapi import HTTPException, Request

from shared.errors import ConfigurationError


async def verify_api_key(request: Request) -> None:
    """Verify the X-API-Key header against APP_API_KEY.

    Args:
        request (Request): The incoming FastAPI request.

    Raises:
        HTTPException: 500 if no API key is configured, 401 if the key is missing or invalid.
    """
    config = request.app.state.config
    try:
        expected_key = config.get_string_val("APP_API_KEY")
    except ConfigurationError:
        request.app.state.logging.error("APP_API_KEY is not set; rejecting request to %s", request.url.path)
        raise HTTPException(status_code=500, detail="API key is not configured.")
    provided_key = request.headers.get("X-API-Key")
    if not provided_key or not secrets.compare_digest(provided_key, expected_key):
        raise HTTPException(status_code=401, detail="Invalid or missing API key.")
