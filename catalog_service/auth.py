import logging
import os
import secrets
from typing import Optional

from fastapi import Header, HTTPException

logger= logging.getLogger(__name__)

BEARER_PREFIX= "Bearer "


def verify_token(authorization: Optional[str] = Header(default=None)):
    """Dependency that checks the ``Authorization: Bearer <token>`` header against SECRET_KEY.

    :raises HTTPException: 401 for a missing, malformed or wrong token,
        500 when the server has no SECRET_KEY configured
    """
    if not authorization:
        raise HTTPException(status_code=401, detail="No token provided")
    if not authorization.startswith(BEARER_PREFIX):
        raise HTTPException(status_code=401, detail="Invalid token format")
    token= authorization[len(BEARER_PREFIX):].strip()
    if not token:
        raise HTTPException(status_code=401, detail="Token is empty")

    secret= os.getenv("SECRET_KEY")
    if not secret:
        logger.error("SECRET_KEY environment variable is missing")
        raise HTTPException(status_code=500, detail="SECRET_KEY environment variable is missing")
    if not secrets.compare_digest(token.encode("utf-8"), secret.encode("utf-8")):
        raise HTTPException(status_code=401, detail="Invalid token")
