"""
Session validation for the Shutterfly Session Keeper.
"""

import logging
import time
from typing import Callable, Iterable, Optional

from sfly_shared.interfaces import ISessionValidator
from sfly_shared.models import Session

logger = logging.getLogger(__name__)


class CookieExpiryValidator(ISessionValidator):
    """
    Decides whether a session is still usable from its cookie expiries.

    A session is valid when it holds at least one cookie, carries every
    required cookie, and none of its cookies expires within ``skew_seconds``
    of the current time.
    """

    def __init__(
        self,
        skew_seconds: float = 60.0,
        required_cookies: Optional[Iterable[str]] = None,
        clock: Callable[[], float] = time.time
    ):
        self.skew_seconds = skew_seconds
        self.required_cookies = tuple(required_cookies or ())
        self._clock = clock

    def validate(self, session: Session) -> bool:
        if not session.cookies:
            logger.debug("Session has no cookies")
            return False

        names = set(session.cookie_names())
        missing = [name for name in self.required_cookies if name not in names]
        if missing:
            logger.debug(f"Session is missing required cookies: {', '.join(missing)}")
            return False

        now = self._clock()
        expired = [c.name for c in session.cookies if c.is_expired(now, self.skew_seconds)]
        if expired:
            logger.debug(f"Session has expired cookies: {', '.join(expired)}")
            return False

        return True
