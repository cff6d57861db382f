"""
Operator token for the ledger-mutating routes.

/relay, /deposit and /fund move value, so when API_TOKEN is configured they
require it in the X-API-Key header. Read-only routes stay open. With no
API_TOKEN configured every route is open, which is only meant for a local
ledger.
"""

import secrets
from typing import Optional

import structlog
from fastapi import Depends, HTTPException, status
from fastapi.security import APIKeyHeader

from .config import Settings, get_settings

logger = structlog.get_logger()

operator_token_header = APIKeyHeader(name="X-API-Key", auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "X-API-Key"},
    )


def token_matches(presented: str, expected: str) -> bool:
    """Constant-time comparison of an operator token."""
    return secrets.compare_digest(presented.encode(), expected.encode())


async def verify_api_token(
    api_key: Optional[str] = Depends(operator_token_header),
    settings: Settings = Depends(get_settings),
) -> bool:
    """
    Gate a ledger-mutating route on the operator token.

    Raises:
        HTTPException: 401 when a token is configured and the request
            carries none, or a different one
    """
    if not settings.api_token:
        return True

    if not api_key:
        logger.warning("operator_token_missing")
        raise _unauthorized("Operator token required in the X-API-Key header")

    if not token_matches(api_key, settings.api_token):
        logger.warning("operator_token_rejected")
        raise _unauthorized("Invalid operator token")

    return True
