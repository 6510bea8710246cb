"""Password hashing and JWT issuing for the GroupBuy API.

Access and refresh tokens are signed with different secrets and carry a
``type`` claim so one can never stand in for the other. Each token gets a
random ``jti`` so two tokens issued in the same second still differ, which
refresh-token rotation depends on.
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Dict

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from groupbuy.api.exceptions import AuthenticationError
from groupbuy.config import AuthSettings

# Configure module logger
logger = logging.getLogger(__name__)

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


class TokenService:
    """Hashes passwords and issues/verifies access and refresh tokens."""

    def __init__(self, settings: AuthSettings):
        self.settings = settings
        self.pwd_context = CryptContext(
            schemes=["bcrypt"],
            deprecated="auto",
            bcrypt__rounds=settings.bcrypt_rounds,
        )

    def hash_password(self, password: str) -> str:
        return self.pwd_context.hash(password)

    def verify_password(self, plain_password: str, hashed_password: str) -> bool:
        if not hashed_password:
            return False
        return self.pwd_context.verify(plain_password, hashed_password)

    def _encode(self, user_id: str, token_type: str, lifetime: timedelta, secret: str) -> str:
        now = datetime.now(timezone.utc)
        claims = {
            "sub": user_id,
            "type": token_type,
            "jti": uuid.uuid4().hex,
            "iat": now,
            "exp": now + lifetime,
        }
        return jwt.encode(claims, secret, algorithm=self.settings.algorithm)

    def _decode(self, token: str, token_type: str, secret: str) -> str:
        try:
            payload = jwt.decode(token, secret, algorithms=[self.settings.algorithm])
        except ExpiredSignatureError:
            raise AuthenticationError("Token has expired")
        except JWTError:
            raise AuthenticationError("Invalid token")

        user_id = payload.get("sub")
        if payload.get("type") != token_type or not user_id:
            raise AuthenticationError("Invalid token")
        return user_id

    def create_access_token(self, user_id: str) -> str:
        return self._encode(
            user_id,
            ACCESS_TOKEN_TYPE,
            timedelta(minutes=self.settings.access_token_expire_minutes),
            self.settings.secret_key,
        )

    def create_refresh_token(self, user_id: str) -> str:
        return self._encode(
            user_id,
            REFRESH_TOKEN_TYPE,
            timedelta(days=self.settings.refresh_token_expire_days),
            self.settings.refresh_secret_key,
        )

    def issue_tokens(self, user_id: str) -> Dict[str, str]:
        """Create a fresh access/refresh token pair for a user."""
        return {
            "accessToken": self.create_access_token(user_id),
            "refreshToken": self.create_refresh_token(user_id),
        }

    def decode_access_token(self, token: str) -> str:
        """Return the user id in a valid access token.

        Raises:
            AuthenticationError: If the token is expired, malformed, signed
                with the wrong key or is not an access token.
        """
        return self._decode(token, ACCESS_TOKEN_TYPE, self.settings.secret_key)

    def decode_refresh_token(self, token: str) -> str:
        """Return the user id in a valid refresh token."""
        return self._decode(token, REFRESH_TOKEN_TYPE, self.settings.refresh_secret_key)
