"""
Identity token extraction for the Shutterfly Session Keeper.

The identity token is the Cognito id token Shutterfly keeps in a cookie.
"""

import logging
import time
from typing import Callable, Iterable, Optional

from jose import jwt, JWTError

from sfly_shared.interfaces import ITokenExtractor
from sfly_shared.models import Cookie

logger = logging.getLogger(__name__)

COGNITO_ID_TOKEN_COOKIE = 'CognitoIdentityToken'


class CognitoTokenExtractor(ITokenExtractor):
    """
    Extracts the Cognito id token from session cookies.

    Tokens that decode as JWTs are additionally checked against their ``exp``
    claim; opaque token values are returned as they are.
    """

    def __init__(
        self,
        cookie_name: str = COGNITO_ID_TOKEN_COOKIE,
        skew_seconds: float = 60.0,
        clock: Callable[[], float] = time.time
    ):
        self.cookie_name = cookie_name
        self.skew_seconds = skew_seconds
        self._clock = clock

    def extract(self, cookies: Iterable[Cookie]) -> Optional[str]:
        token = next((c.value for c in cookies if c.name == self.cookie_name), None)
        if not token:
            logger.debug(f"No {self.cookie_name} cookie in session")
            return None

        expires_at = self._parse_token_expiration(token)
        if expires_at is not None and expires_at - self.skew_seconds <= self._clock():
            logger.debug(f"{self.cookie_name} token is expired")
            return None

        return token

    def _parse_token_expiration(self, token: str) -> Optional[float]:
        """
        Parse expiration time from a JWT token.

        Returns:
            Expiration as epoch seconds, or None if the token is not a JWT
            or carries no usable ``exp`` claim
        """
        try:
            # Decode without verification to get expiration
            claims = jwt.get_unverified_claims(token)
        except JWTError:
            return None

        exp = claims.get('exp')
        if isinstance(exp, (int, float)) and not isinstance(exp, bool):
            return float(exp)
        return None
