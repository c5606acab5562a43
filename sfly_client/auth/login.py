"""
Remote login procedure for the Shutterfly Session Keeper.

This module performs the full credential login against the remote service
over HTTP and turns the cookies it sets into a Session.
"""

import asyncio
import logging
import time
from email.utils import parsedate_to_datetime
from http.cookies import Morsel
from typing import Optional, Dict

import aiohttp
from aiohttp import ClientSession, ClientTimeout, ClientError

from sfly_shared.interfaces import ILoginProcedure
from sfly_shared.models import Cookie, Session

logger = logging.getLogger(__name__)


def _morsel_expiry(morsel: Morsel, received_at: float) -> Optional[float]:
    """Get a cookie's expiry as epoch seconds from its Max-Age or Expires attribute."""
    max_age = morsel['max-age']
    if max_age:
        try:
            return received_at + int(max_age)
        except ValueError:
            logger.warning(f"Ignoring invalid Max-Age on cookie {morsel.key}: {max_age}")

    expires = morsel['expires']
    if expires:
        try:
            return parsedate_to_datetime(expires).timestamp()
        except (TypeError, ValueError):
            logger.warning(f"Ignoring invalid Expires on cookie {morsel.key}: {expires}")

    return None


def morsel_to_cookie(morsel: Morsel, received_at: float) -> Cookie:
    """Convert a cookie held by an aiohttp cookie jar to a Cookie."""
    return Cookie(
        name=morsel.key,
        value=morsel.value,
        domain=morsel['domain'] or None,
        path=morsel['path'] or '/',
        expires=_morsel_expiry(morsel, received_at),
        http_only=bool(morsel['httponly']),
        secure=bool(morsel['secure']),
        same_site=morsel['samesite'] or None
    )


class HttpLoginProcedure(ILoginProcedure):
    """
    Logs in by posting credentials to the login endpoint.

    Each login uses a fresh client session and cookie jar; the cookies the
    jar holds after a successful response become the new Session. Any
    failure to authenticate is reported by returning None.
    """

    def __init__(
        self,
        login_url: str,
        username: Optional[str],
        password: Optional[str],
        timeout: float = 30.0,
        user_agent: str = 'SflySessionKeeper/1.0',
        unsafe_cookies: bool = False
    ):
        self.login_url = login_url
        self.username = username
        self.password = password
        self.timeout = ClientTimeout(total=timeout)
        self.user_agent = user_agent
        # aiohttp refuses cookies from IP-address hosts unless the jar is unsafe
        self.unsafe_cookies = unsafe_cookies

    def _get_form_data(self) -> Dict[str, str]:
        return {
            'username': self.username,
            'password': self.password
        }

    async def login(self) -> Optional[Session]:
        if not self.username or not self.password:
            logger.error("Cannot log in: no credentials configured")
            return None

        logger.info(f"Logging in to {self.login_url} as {self.username}")

        jar = aiohttp.CookieJar(unsafe=self.unsafe_cookies)
        try:
            async with ClientSession(
                cookie_jar=jar,
                timeout=self.timeout,
                headers={'User-Agent': self.user_agent}
            ) as session:
                async with session.post(self.login_url, data=self._get_form_data()) as response:
                    received_at = time.time()
                    if response.status >= 400:
                        logger.error(f"Login rejected ({response.status})")
                        return None
                    await response.read()

                cookies = [morsel_to_cookie(morsel, received_at) for morsel in jar]

        except (ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Login request failed: {e}")
            return None

        if not cookies:
            logger.error("Login response set no cookies")
            return None

        logger.info(f"Login successful, received {len(cookies)} cookies")
        return Session.from_cookies(cookies, loggedInAt=received_at)
