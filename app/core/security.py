"""Security related functions."""

import logging

import jwt
from jwt import InvalidTokenError

from app.core.config import Settings, settings
from app.exceptions.base import UnauthenticatedError

logger = logging.getLogger(__name__)


class IdentityProviderAuthenticator:
    """
    Verifies access tokens issued by the hosted identity provider.

    Tokens are HS256 JWTs signed with the project's JWT secret. The subject
    claim (``sub``) is the user identifier used everywhere in the API.

    :ivar jwt_secret: Shared secret used to verify token signatures.
    :type jwt_secret: str
    :ivar audience: Expected ``aud`` claim.
    :type audience: str
    """

    algorithms = ["HS256"]

    def __init__(self, config: Settings = settings):
        self.jwt_secret = config.supabase_jwt_secret
        self.audience = config.supabase_jwt_audience
        # Only local environments may read tokens without a secret
        self.allow_unverified = config.is_development or config.is_testing

    async def verify_token(self, token: str) -> dict:
        """
        Verify a token and return its claims.

        :param token: The raw bearer token.
        :return: The decoded claims, guaranteed to contain ``sub``.
        :raises UnauthenticatedError: If the token is invalid, expired or cannot be verified.
        """
        if not token:
            raise UnauthenticatedError("Authentication token is required")

        try:
            if self.jwt_secret:
                payload = jwt.decode(
                    token,
                    self.jwt_secret,
                    algorithms=self.algorithms,
                    audience=self.audience,
                )
            elif self.allow_unverified:
                logger.warning("No JWT secret configured; accepting token without signature verification")
                payload = jwt.decode(
                    token,
                    options={"verify_signature": False, "verify_aud": False, "verify_exp": False},
                )
            else:
                logger.error("Token verification is not configured")
                raise UnauthenticatedError("Token verification is not configured")
        except InvalidTokenError as e:
            logger.info(f"Rejected authentication token: {str(e)}")
            raise UnauthenticatedError("Invalid authentication token") from e

        if not payload.get("sub"):
            raise UnauthenticatedError("Invalid token payload - missing user ID")

        return payload
