"""
Internal Service Authentication

API key authentication for the scheduler and operator tooling that
trigger sweeps and queue runs.

Settings:
    INTERNAL_API_KEY: Valid key, or a comma-separated list during rotation

Usage:
    from middleware.internal_auth import require_internal_service

    @router.post("/run")
    async def run(service: InternalService = Depends(require_internal_service)):
        ...

Headers:
    X-Internal-Api-Key: <api_key>
    X-Service-Name: <service_name> (optional, for logging)
"""

import secrets
import logging
from dataclasses import dataclass
from typing import Optional, Set

from fastapi import Request, HTTPException, status, Depends
from fastapi.security import APIKeyHeader

from config import get_settings

logger = logging.getLogger(__name__)

API_KEY_HEADER = "X-Internal-Api-Key"
SERVICE_NAME_HEADER = "X-Service-Name"


@dataclass
class InternalService:
    """An authenticated internal caller"""
    name: str
    api_key_hash: str  # Last 8 chars of key for logging
    is_authenticated: bool = True


def _get_valid_api_keys() -> Set[str]:
    raw = get_settings().INTERNAL_API_KEY or ""
    return {key.strip() for key in raw.split(",") if key.strip()}


def is_internal_auth_configured() -> bool:
    return len(_get_valid_api_keys()) > 0


def validate_internal_key(api_key: Optional[str]) -> bool:
    """Constant-time check of a key against the configured set."""
    if not api_key:
        return False

    valid_keys = _get_valid_api_keys()
    if not valid_keys:
        logger.warning("No internal API keys configured")
        return False

    for valid_key in valid_keys:
        if secrets.compare_digest(api_key, valid_key):
            return True

    return False


api_key_header = APIKeyHeader(name=API_KEY_HEADER, auto_error=False)


async def get_internal_service(
    request: Request,
    api_key: Optional[str] = Depends(api_key_header)
) -> InternalService:
    """
    FastAPI dependency authenticating internal callers.

    Raises:
        HTTPException: 503 when no key is configured, 401 on a missing or bad key
    """
    service_name = request.headers.get(SERVICE_NAME_HEADER, "unknown")

    if not is_internal_auth_configured():
        logger.warning("Internal API key not configured - rejecting internal call")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Internal authentication not configured"
        )

    if not api_key:
        logger.warning(f"Missing API key from service: {service_name}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing internal API key",
            headers={"WWW-Authenticate": "ApiKey"}
        )

    if not validate_internal_key(api_key):
        logger.warning(f"Invalid API key from service: {service_name}, key ending: ...{api_key[-8:]}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid internal API key",
            headers={"WWW-Authenticate": "ApiKey"}
        )

    logger.info(f"Internal service authenticated: {service_name}")

    return InternalService(
        name=service_name,
        api_key_hash=f"...{api_key[-8:]}"
    )


# Convenience alias
require_internal_service = get_internal_service
