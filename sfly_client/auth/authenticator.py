"""
Session Resolver for the Shutterfly Session Keeper.

This module keeps one authenticated Shutterfly session for the running
process and produces the Cognito identity token from it on demand. Sources
are consulted in order of cost: the session already held in memory, the
session persisted on disk, and finally a fresh remote login.
"""

import asyncio
import logging
from typing import Optional

from sfly_shared.exceptions import (
    LoginFailure, StoreReadFailure, TokenExtractionFailure
)
from sfly_shared.interfaces import (
    ILoginProcedure, ISessionStore, ISessionValidator, ITokenExtractor
)
from sfly_shared.logging_config import ResolutionLogger, log_structured_error
from sfly_shared.models import ResolutionState, ResolutionTier, Session

from sfly_client.auth.login import HttpLoginProcedure
from sfly_client.auth.session_store import JsonFileSessionStore
from sfly_client.auth.session_validator import CookieExpiryValidator
from sfly_client.auth.token_extractor import CognitoTokenExtractor

logger = logging.getLogger(__name__)


class Authenticator:
    """
    Maintains an authenticated web session with Shutterfly.

    One instance is meant to live for the whole process: the session it
    holds in memory spares a disk read on every later call. Calls to
    ``resolve`` are serialized, so overlapping callers wait for the
    in-flight resolution and then reuse whatever session it left behind.
    """

    def __init__(
        self,
        store: ISessionStore,
        validator: ISessionValidator,
        extractor: ITokenExtractor,
        login_procedure: ILoginProcedure,
        strict_store_reads: bool = False
    ):
        self.store = store
        self.validator = validator
        self.extractor = extractor
        self.login_procedure = login_procedure
        self.strict_store_reads = strict_store_reads

        self._session: Optional[Session] = None
        self._state = ResolutionState.EMPTY
        self._lock = asyncio.Lock()
        self._events = ResolutionLogger()

    @classmethod
    def from_config(cls, config) -> 'Authenticator':
        """
        Build an authenticator with the default collaborators.

        Args:
            config: AuthenticatorConfiguration to read settings from
        """
        skew = config.get_clock_skew_seconds()
        username, password = config.get_credentials()

        return cls(
            store=JsonFileSessionStore(config.get_session_file()),
            validator=CookieExpiryValidator(
                skew_seconds=skew,
                required_cookies=config.get_required_cookies()
            ),
            extractor=CognitoTokenExtractor(
                cookie_name=config.get_token_cookie_name(),
                skew_seconds=skew
            ),
            login_procedure=HttpLoginProcedure(
                login_url=config.get_login_url(),
                username=username,
                password=password,
                timeout=config.get_login_timeout(),
                user_agent=config.get_user_agent()
            ),
            strict_store_reads=config.is_strict_store_reads()
        )

    @property
    def session(self) -> Optional[Session]:
        """Session currently held in memory."""
        return self._session

    @property
    def state(self) -> ResolutionState:
        """State the last (or current) resolution is in."""
        return self._state

    async def resolve(self, verbose: bool = False) -> str:
        """
        Get a valid identity token, logging in only when no held or persisted
        session yields one.

        Args:
            verbose: Narrate every tier at INFO instead of DEBUG

        Returns:
            Cognito identity token

        Raises:
            LoginFailure: The remote login produced no session
            StoreWriteFailure: The fresh session could not be persisted
            TokenExtractionFailure: The fresh session yields no token
            StoreReadFailure: Persisted session is corrupt (strict reads only)
        """
        async with self._lock:
            try:
                return await self._resolve(logging.INFO if verbose else logging.DEBUG)
            except Exception:
                self._state = ResolutionState.FAILED
                raise

    async def _resolve(self, level: int) -> str:
        if self._session is not None:
            self._state = ResolutionState.MEMORY_HELD
            tier = ResolutionTier.MEMORY
            self._events.log_event(
                "Using session held in memory", self._state, tier, 'hit', level=level
            )
        else:
            self._state = ResolutionState.EMPTY
            tier = ResolutionTier.DISK
            self._session = await self._hydrate(level)
            if self._session is not None:
                self._state = ResolutionState.MEMORY_HELD

        if self._session is not None:
            token = self._validate_held_session(tier, level)
            if token is not None:
                self._state = ResolutionState.DONE
                return token

        session = await self._log_in(level)
        await self._persist(session, level)

        self._events.log_event(
            "Validating new Cognito idToken", self._state, ResolutionTier.LOGIN, level=level
        )
        token = self.extractor.extract(session.cookies)
        if token is None:
            raise TokenExtractionFailure(
                "New Cognito idToken is invalid", cookie_names=session.cookie_names()
            )

        self._state = ResolutionState.DONE
        self._events.log_event(
            "Resolved token from new session", self._state, ResolutionTier.LOGIN, 'token', level=level
        )
        return token

    async def _hydrate(self, level: int) -> Optional[Session]:
        """Load the persisted session, treating a missing file as a miss."""
        self._events.log_event(
            "Hydrating session from file", self._state, ResolutionTier.DISK, level=level
        )
        try:
            session = await self.store.read()
        except StoreReadFailure as e:
            if self.strict_store_reads:
                raise
            log_structured_error(logger, e, level=logging.WARNING)
            self._events.log_event(
                "Persisted session is unreadable, falling back to login",
                self._state, ResolutionTier.DISK, 'corrupt', level=level
            )
            return None

        outcome = 'miss' if session is None else 'hit'
        self._events.log_event(
            f"Session file {outcome}", self._state, ResolutionTier.DISK, outcome, level=level
        )
        return session

    def _validate_held_session(self, tier: ResolutionTier, level: int) -> Optional[str]:
        """Get the token from the held session, or None if it has to be replaced."""
        self._state = ResolutionState.VALIDATING
        self._events.log_event("Validating existing session", self._state, tier, level=level)

        if not self.validator.validate(self._session):
            self._events.log_event(
                "Existing session is invalid", self._state, tier, 'invalid', level=level
            )
            return None

        token = self.extractor.extract(self._session.cookies)
        if token is None:
            self._events.log_event(
                "Existing Cognito idToken is invalid", self._state, tier, 'no_token', level=level
            )
            return None

        self._events.log_event(
            "Existing Cognito idToken is valid", self._state, tier, 'token', level=level
        )
        return token

    async def _log_in(self, level: int) -> Session:
        """Replace the held session with a freshly logged-in one."""
        self._state = ResolutionState.LOGGING_IN
        self._events.log_event(
            "Logging in to Shutterfly", self._state, ResolutionTier.LOGIN, level=level
        )

        session = await self.login_procedure.login()
        if session is None:
            raise LoginFailure("Failed to log in to Shutterfly")

        self._session = session
        self._events.log_event(
            "Logged in to Shutterfly", self._state, ResolutionTier.LOGIN, 'session',
            detail={'cookies': len(session.cookies)}, level=level
        )
        return session

    async def _persist(self, session: Session, level: int) -> None:
        self._state = ResolutionState.PERSISTING
        self._events.log_event(
            "Writing session to file", self._state, ResolutionTier.LOGIN, level=level
        )
        await self.store.write(session)
