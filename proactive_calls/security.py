"""
Security utilities.
- Shared-secret bearer authentication for the cron trigger endpoint
"""

import hmac
from typing import Optional

from fastapi import HTTPException, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from proactive_calls.config import config
from proactive_calls.logging_config import get_logger

logger = get_logger(__name__)

# Bearer token authentication scheme
bearer_scheme = HTTPBearer(auto_error=False)


def verify_cron_secret(secret: Optional[str], expected: Optional[str], allow_unset: bool = False) -> bool:
    """
    Constant-time comparison of a presented secret against the configured one.

    With no secret configured, access is only granted when ``allow_unset``
    (development mode).
    """
    if not expected:
        return allow_unset
    if not secret:
        return False
    return hmac.compare_digest(secret.encode("utf-8"), expected.encode("utf-8"))


async def require_cron_secret(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme),
) -> str:
    """
    FastAPI dependency guarding the trigger endpoint.

    Usage:
        @router.get("/cron/proactive-calls")
        def run(_: str = Depends(require_cron_secret)):
            ...
    """
    token = credentials.credentials if credentials else None
    if not verify_cron_secret(token, config.CRON_SECRET, allow_unset=config.DEBUG):
        logger.warning("cron_authentication_failed", provided=bool(token))
        raise HTTPException(status_code=401, detail="Unauthorized")

    return token or "development"
