# app/core/jwt_auth.py
"""
JWT decoding for the HTTP API.
Tokens are issued by the main backend; this service only needs the user id.
"""
import jwt
from typing import Optional, Dict, Any

from app.core.config import JWT_SECRET_KEY, JWT_ALGORITHM
from app.core.errors import unauthorized_error


class JWTAuth:
    """JWT Authentication handler"""

    @staticmethod
    def decode_token(token: str) -> Dict[str, Any]:
        """
        Decode and validate JWT token.

        Raises:
            AppError: 401 if token is invalid or expired
        """
        try:
            return jwt.decode(
                token,
                JWT_SECRET_KEY,
                algorithms=[JWT_ALGORITHM]
            )
        except jwt.ExpiredSignatureError:
            raise unauthorized_error("Token has expired")
        except jwt.InvalidTokenError:
            raise unauthorized_error("Invalid token")

    @staticmethod
    def get_user_id(payload: Dict[str, Any]) -> Optional[str]:
        """Extract user id from JWT payload (main backend signs it as `id`)"""
        user_id = (
            payload.get('id') or
            payload.get('user_id') or
            payload.get('sub')
        )
        return str(user_id) if user_id else None
