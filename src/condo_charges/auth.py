"""Authentication and rate limiting helpers for the API."""

import os
import secrets
import logging

from fastapi import HTTPException, Security
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from slowapi import Limiter
from slowapi.util import get_remote_address

logger = logging.getLogger(__name__)

security = HTTPBearer()

# Statements are recomputed on every call, so reads are throttled per client.
RATE_LIMIT = os.getenv("CHARGES_RATE_LIMIT", "60/minute")

limiter = Limiter(key_func=get_remote_address)


async def verify_api_key(credentials: HTTPAuthorizationCredentials = Security(security)) -> str:
    """Check the bearer token against the API_KEY environment variable.

    Raises:
        HTTPException: 500 if API_KEY is not configured, 401 if it does not match.
    """
    expected_key = os.getenv("API_KEY")
    if not expected_key:
        logger.error("API_KEY environment variable is not configured")
        raise HTTPException(status_code=500, detail="Server configuration error")
    if not secrets.compare_digest(credentials.credentials, expected_key):
        logger.warning("Rejected request with invalid API key")
        raise HTTPException(status_code=401, detail="Invalid API key")
    return credentials.credentials
