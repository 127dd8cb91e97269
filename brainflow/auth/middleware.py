import structlog
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from brainflow.auth.google_oauth import verify_google_token
from brainflow.db.postgres_client import get_postgres_client

logger = structlog.get_logger()
security = HTTPBearer()


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> dict:
    """
    FastAPI dependency resolving the bearer token to a BrainFlow user row.

    The user is created on first sight and last_login refreshed otherwise.
    Every note, edge and vault query is scoped by the returned user's id.
    """
    user_info = await verify_google_token(credentials.credentials)

    pg_client = await get_postgres_client()
    try:
        rows = await pg_client.execute_query(
            """
            INSERT INTO users (google_id, email, name, profile_picture)
            VALUES (:google_id, :email, :name, :profile_picture)
            ON CONFLICT (google_id) DO UPDATE SET last_login = NOW()
            RETURNING id, google_id, email, name, profile_picture
            """,
            user_info,
        )
    except Exception as e:
        logger.error("Auth: Database error in get_current_user", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error during authentication",
        )

    if not rows:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Could not load user",
        )
    user = rows[0]
    user["id"] = str(user["id"])
    return user
