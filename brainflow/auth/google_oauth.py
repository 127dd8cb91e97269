"""Google ID token verification."""

import os

import structlog
from fastapi import HTTPException, status
from google.auth.transport import requests
from google.oauth2 import id_token

logger = structlog.get_logger()

DEBUG_TOKEN = "test-token"


async def verify_google_token(token: str) -> dict:
    """
    Verify a Google ID token and return the identity claims BrainFlow stores.

    Returns:
        Dict with google_id, email, name, profile_picture.

    Raises:
        HTTPException: 401 if the token is invalid or expired.
    """
    if os.getenv("DEBUG") == "true" and token == DEBUG_TOKEN:
        return {
            "google_id": "debug-google-id",
            "email": "debug@brainflow.local",
            "name": "Debug User",
            "profile_picture": None,
        }

    try:
        claims = id_token.verify_oauth2_token(
            token,
            requests.Request(),
            os.getenv("GOOGLE_CLIENT_ID"),
        )
    except ValueError as e:
        logger.warning("Auth: Invalid Google token", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return {
        "google_id": claims["sub"],
        "email": claims.get("email", ""),
        "name": claims.get("name"),
        "profile_picture": claims.get("picture"),
    }
