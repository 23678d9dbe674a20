"""
API authentication using X-API-KEY header.

Keys come from the comma-separated API_KEYS setting. With no keys
configured the API runs open (development mode).
"""

import secrets

from fastapi import HTTPException, Security, status
from fastapi.security import APIKeyHeader

from context_sync.config.settings import get_settings

api_key_header = APIKeyHeader(name="X-API-KEY", auto_error=False)


def configured_keys(raw: str | None) -> list[str]:
    """Split the API_KEYS setting, ignoring blanks."""
    if not raw:
        return []
    return [k.strip() for k in raw.split(",") if k.strip()]


async def verify_api_key(api_key: str | None = Security(api_key_header)) -> str:
    """
    Verify the X-API-KEY header against the configured keys.

    Returns:
        The validated API key ("dev-mode" when no keys are configured)

    Raises:
        HTTPException: 401 if the key is missing or unknown
    """
    valid_keys = configured_keys(get_settings().api_keys)
    if not valid_keys:
        return "dev-mode"

    if api_key is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing API key. Provide X-API-KEY header.",
        )

    if not any(secrets.compare_digest(api_key, key) for key in valid_keys):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key",
        )

    return api_key
