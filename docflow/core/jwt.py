"""JWT verification for access tokens issued to docflow users.

Tokens are HS256-signed with the shared ``JWT_SECRET``. The subject is the
user id; ``role`` and ``company_id`` claims describe the principal.
"""

from typing import Optional

import jwt

from docflow.core.config import AuthSettings
from docflow.schemas.auth import JWTClaims
from docflow.utils.logging import get_logger

LOGGER = get_logger(__name__)


class JWTVerifier:
    """JWT verifier for docflow access tokens.

    This class handles:
    - JWT decoding with signature verification
    - Claims validation (exp, iat and, when configured, iss)
    """

    def __init__(self, jwt_secret: str, algorithm: str = "HS256", issuer: Optional[str] = None):
        """Initialize JWT verifier.

        Args:
            jwt_secret: Shared secret used to sign tokens
            algorithm: Signing algorithm
            issuer: Expected ``iss`` claim; not checked when ``None``
        """
        self.jwt_secret = jwt_secret
        self.algorithm = algorithm
        self.expected_issuer = issuer

    @classmethod
    def from_settings(cls, auth_settings: AuthSettings) -> "JWTVerifier":
        return cls(auth_settings.jwt_secret, auth_settings.jwt_algorithm, auth_settings.jwt_issuer)

    def verify_token(self, token: str) -> JWTClaims:
        """Verify and decode a JWT token.

        Args:
            token: JWT access token from Authorization header

        Returns:
            Decoded and validated JWT claims

        Raises:
            jwt.InvalidTokenError: If token is invalid, expired or has bad claims
        """
        if not self.jwt_secret:
            raise jwt.InvalidTokenError("JWT_SECRET is not configured")

        try:
            payload = jwt.decode(
                token,
                self.jwt_secret,
                algorithms=[self.algorithm],
                issuer=self.expected_issuer,
                options={
                    "verify_exp": True,
                    "verify_iat": True,
                    "verify_iss": self.expected_issuer is not None,
                    "require": ["sub", "email", "exp", "iat"],
                },
            )
        except jwt.ExpiredSignatureError as e:
            LOGGER.warning(f"Token expired: {e}")
            raise jwt.InvalidTokenError("Token has expired") from e

        try:
            claims = JWTClaims(**payload)
        except ValueError as e:
            raise jwt.InvalidTokenError(f"Invalid token claims: {e}") from e

        LOGGER.debug(f"Successfully verified token for user: {claims.sub}")
        return claims
