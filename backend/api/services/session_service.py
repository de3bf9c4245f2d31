"""Session token verification.

Sessions are issued by Supabase Auth; the API only verifies the HS256
access token with the project's JWT secret and reads the user id.
"""

import logging

import jwt

logger = logging.getLogger(__name__)


class SessionService:
    """Validate session JWTs"""

    def __init__(self, secret_key: str, algorithm: str = "HS256", audience: str = "") -> None:
        if not secret_key:
            raise ValueError("JWT secret key cannot be empty")

        self.secret_key = secret_key
        self.algorithm = algorithm
        self.audience = audience

    def verify_token(self, token: str) -> dict | None:
        """Verify a JWT token and return the payload if valid"""
        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                audience=self.audience or None,
                options={"verify_aud": bool(self.audience)},
            )
        except jwt.ExpiredSignatureError:
            logger.warning("Token expired")
            return None
        except jwt.InvalidTokenError as e:
            logger.warning(f"Invalid token: {e}")
            return None

        if not payload.get("sub"):
            logger.warning("Token missing sub")
            return None
        return payload

    def get_user_id(self, token: str | None) -> str | None:
        """Return the user id (``sub``) of a valid token, else None"""
        if not token:
            return None
        payload = self.verify_token(token)
        return str(payload["sub"]) if payload else None
