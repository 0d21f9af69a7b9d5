# app/api/deps.py
"""
FastAPI dependencies for identity and database access.
Tokens are issued by the main backend; only the caller's user id is needed here.
"""
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.errors import unauthorized_error
from app.core.jwt_auth import JWTAuth

# auto_error off so a missing token renders through AppError like every other failure
security = HTTPBearer(auto_error=False)


def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> str:
    """
    Resolve the caller's user id from `Authorization: Bearer <jwt>`.

    Raises:
        AppError: 401 when the token is missing, invalid or carries no user id
    """
    if not credentials or not credentials.credentials:
        raise unauthorized_error("Authentication token not provided")

    payload = JWTAuth.decode_token(credentials.credentials)
    user_id = JWTAuth.get_user_id(payload)
    if not user_id:
        raise unauthorized_error("Invalid token")
    return user_id
