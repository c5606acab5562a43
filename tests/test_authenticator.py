#!/usr/bin/env python3
"""
Unit tests for the Authenticator session resolver.

Tests the memory, disk and login tiers, the persist-before-extract ordering,
failure propagation and serialization of overlapping calls.
"""

import asyncio
import logging
import pytest
from unittest.mock import AsyncMock, Mock, MagicMock

from sfly_client.auth.authenticator import Authenticator
from sfly_client.auth.session_validator import CookieExpiryValidator
from sfly_client.auth.token_extractor import CognitoTokenExtractor
from sfly_shared.exceptions import (
    LoginFailure, StoreReadFailure, StoreWriteFailure, TokenExtractionFailure
)
from sfly_shared.interfaces import ILoginProcedure, ISessionStore
from sfly_shared.models import Cookie, ResolutionState, Session

NOW = 1_700_000_000.0
PAST = NOW - 3600
FUTURE = NOW + 3600


def make_session(token=None, expires=FUTURE, sid='X'):
    cookies = [Cookie(name='sid', value=sid, expires=expires)]
    if token is not None:
        cookies.append(Cookie(name='CognitoIdentityToken', value=token))
    return Session.from_cookies(cookies)


def make_authenticator(persisted=None, fresh=None, strict=False):
    """Build an authenticator with mocked store/login and real predicates on a fixed clock."""
    store = Mock(spec=ISessionStore)
    store.read = AsyncMock(return_value=persisted)
    store.write = AsyncMock(return_value=None)

    login = Mock(spec=ILoginProcedure)
    login.login = AsyncMock(return_value=fresh)

    authenticator = Authenticator(
        store=store,
        validator=CookieExpiryValidator(skew_seconds=0, clock=lambda: NOW),
        extractor=CognitoTokenExtractor(skew_seconds=0, clock=lambda: NOW),
        login_procedure=login,
        strict_store_reads=strict
    )
    return authenticator, store, login


class TestFastPaths:
    """Test resolution from the memory and disk tiers."""

    @pytest.mark.asyncio
    async def test_memory_tier_skips_store_and_login(self):
        """A valid held session is used without touching the store or logging in."""
        authenticator, store, login = make_authenticator(persisted=make_session('tok-disk'))

        assert await authenticator.resolve() == 'tok-disk'
        store.read.reset_mock()

        assert await authenticator.resolve() == 'tok-disk'
        store.read.assert_not_awaited()
        store.write.assert_not_awaited()
        login.login.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_disk_hydration(self):
        """A valid persisted session is loaded once and no login or write happens."""
        persisted = make_session('tok-disk')
        authenticator, store, login = make_authenticator(persisted=persisted)

        token = await authenticator.resolve()

        assert token == 'tok-disk'
        store.read.assert_awaited_once()
        login.login.assert_not_awaited()
        store.write.assert_not_awaited()
        assert authenticator.session is persisted
        assert authenticator.state == ResolutionState.DONE

    @pytest.mark.asyncio
    async def test_repeated_calls_return_same_token(self):
        """Sequential calls on a valid cached session agree and never log in."""
        authenticator, store, login = make_authenticator(persisted=make_session('tok-1'))

        first = await authenticator.resolve()
        second = await authenticator.resolve(verbose=True)

        assert first == second == 'tok-1'
        login.login.assert_not_awaited()
        assert store.read.await_count == 1


class TestLoginTier:
    """Test fallback to a fresh login."""

    @pytest.mark.asyncio
    async def test_cold_start(self):
        """No held or persisted session: log in once, write once, return the token."""
        fresh = make_session('tok-new')
        authenticator, store, login = make_authenticator(persisted=None, fresh=fresh)

        calls = MagicMock()
        calls.attach_mock(login.login, 'login')
        calls.attach_mock(store.write, 'write')

        token = await authenticator.resolve()

        assert token == 'tok-new'
        login.login.assert_awaited_once()
        store.write.assert_awaited_once_with(fresh)
        assert [c[0] for c in calls.mock_calls] == ['login', 'write']
        assert authenticator.session is fresh

    @pytest.mark.asyncio
    async def test_expired_persisted_session_triggers_login(self):
        """Stale cookie on disk is replaced by the logged-in session."""
        persisted = Session.from_cookies([Cookie(name='sid', value='X', expires=PAST)])
        fresh = Session.from_cookies([
            Cookie(name='sid', value='Y', expires=FUTURE),
            Cookie(name='CognitoIdentityToken', value='tok-123'),
        ])
        authenticator, store, login = make_authenticator(persisted=persisted, fresh=fresh)

        token = await authenticator.resolve()

        assert token == 'tok-123'
        login.login.assert_awaited_once()
        store.write.assert_awaited_once_with(fresh)

    @pytest.mark.asyncio
    async def test_valid_session_without_token_triggers_login(self):
        """A session that validates but carries no token is treated as stale."""
        authenticator, store, login = make_authenticator(
            persisted=make_session(token=None),
            fresh=make_session('tok-new', sid='Y')
        )

        assert await authenticator.resolve() == 'tok-new'
        login.login.assert_awaited_once()
        store.write.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_fresh_session_is_not_revalidated(self):
        """A logged-in session is trusted even if its other cookies look expired."""
        fresh = make_session('tok-new', expires=PAST)
        authenticator, store, login = make_authenticator(persisted=None, fresh=fresh)

        assert await authenticator.resolve() == 'tok-new'


class TestFailures:
    """Test failure propagation and the state left behind."""

    @pytest.mark.asyncio
    async def test_login_failure_does_not_write(self):
        """A login that yields no session fails the call without persisting anything."""
        authenticator, store, login = make_authenticator(persisted=None, fresh=None)

        with pytest.raises(LoginFailure):
            await authenticator.resolve()

        store.write.assert_not_awaited()
        assert authenticator.state == ResolutionState.FAILED
        assert authenticator.session is None

    @pytest.mark.asyncio
    async def test_login_failure_keeps_stale_session(self):
        """The held session is only replaced once a new one is produced."""
        stale = make_session('tok-old', expires=PAST)
        authenticator, store, login = make_authenticator(persisted=stale, fresh=None)

        with pytest.raises(LoginFailure):
            await authenticator.resolve()

        assert authenticator.session is stale

    @pytest.mark.asyncio
    async def test_extraction_failure_after_write(self):
        """A fresh session without a token is persisted before the call fails."""
        fresh = make_session(token=None)
        authenticator, store, login = make_authenticator(persisted=None, fresh=fresh)

        with pytest.raises(TokenExtractionFailure) as exc_info:
            await authenticator.resolve()

        store.write.assert_awaited_once_with(fresh)
        assert exc_info.value.context['cookie_names'] == ['sid']
        assert authenticator.session is fresh

    @pytest.mark.asyncio
    async def test_write_failure_propagates_and_keeps_session(self):
        """A persist error aborts the call but the fresh session stays in memory."""
        fresh = make_session('tok-new')
        authenticator, store, login = make_authenticator(persisted=None, fresh=fresh)
        store.write.side_effect = StoreWriteFailure("disk full", path='/tmp/session.json')

        with pytest.raises(StoreWriteFailure):
            await authenticator.resolve()

        assert authenticator.session is fresh
        assert authenticator.state == ResolutionState.FAILED

        # Next call validates the resident session instead of logging in again
        store.write.side_effect = None
        assert await authenticator.resolve() == 'tok-new'
        login.login.assert_awaited_once()
        store.read.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_corrupt_store_falls_back_to_login(self):
        """In lenient mode an unreadable session file is treated as a miss."""
        authenticator, store, login = make_authenticator(fresh=make_session('tok-new'))
        store.read.side_effect = StoreReadFailure("Malformed session file", path='/tmp/s.json')

        assert await authenticator.resolve() == 'tok-new'
        login.login.assert_awaited_once()
        store.write.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_corrupt_store_fails_in_strict_mode(self):
        """In strict mode an unreadable session file fails the call."""
        authenticator, store, login = make_authenticator(
            fresh=make_session('tok-new'), strict=True
        )
        store.read.side_effect = StoreReadFailure("Malformed session file")

        with pytest.raises(StoreReadFailure):
            await authenticator.resolve()

        login.login.assert_not_awaited()
        assert authenticator.state == ResolutionState.FAILED


class TestConcurrency:
    """Test serialization of overlapping resolve calls."""

    @pytest.mark.asyncio
    async def test_overlapping_calls_log_in_once(self):
        """Callers arriving during a login reuse the session it produced."""
        fresh = make_session('tok-new')
        authenticator, store, login = make_authenticator(persisted=None)

        async def slow_login():
            await asyncio.sleep(0.01)
            return fresh

        login.login.side_effect = slow_login

        tokens = await asyncio.gather(*(authenticator.resolve() for _ in range(5)))

        assert tokens == ['tok-new'] * 5
        login.login.assert_awaited_once()
        store.write.assert_awaited_once()

    def test_instance_built_outside_event_loop(self):
        """An authenticator created before the loop starts still serializes callers."""
        fresh = make_session('tok-new')
        authenticator, store, login = make_authenticator(persisted=None)

        async def slow_login():
            await asyncio.sleep(0.01)
            return fresh

        login.login.side_effect = slow_login

        async def contend():
            return await asyncio.gather(authenticator.resolve(), authenticator.resolve())

        assert asyncio.run(contend()) == ['tok-new', 'tok-new']
        login.login.assert_awaited_once()


class TestEventLogging:
    """Test the resolution event stream."""

    @pytest.mark.asyncio
    async def test_verbose_narrates_at_info(self, caplog):
        authenticator, store, login = make_authenticator(persisted=make_session('tok'))

        with caplog.at_level(logging.DEBUG, logger='sfly_client.resolution'):
            await authenticator.resolve(verbose=True)

        events = [r for r in caplog.records if hasattr(r, 'resolution_event')]
        assert events
        assert all(r.levelno == logging.INFO for r in events)
        assert events[0].resolution_event['tier'] == 'disk'
        assert events[-1].resolution_event['outcome'] == 'token'

    @pytest.mark.asyncio
    async def test_quiet_narrates_at_debug(self, caplog):
        authenticator, store, login = make_authenticator(persisted=make_session('tok'))

        with caplog.at_level(logging.DEBUG, logger='sfly_client.resolution'):
            await authenticator.resolve()

        events = [r for r in caplog.records if hasattr(r, 'resolution_event')]
        assert events
        assert all(r.levelno == logging.DEBUG for r in events)


class TestFromConfig:
    """Test building the default collaborators from configuration."""

    def test_from_config_wires_defaults(self, tmp_path, monkeypatch):
        from sfly_client.auth.login import HttpLoginProcedure
        from sfly_client.auth.session_store import JsonFileSessionStore
        from sfly_client.config import AuthenticatorConfiguration

        monkeypatch.setenv('SFLY_SESSION_DIRECTORY', str(tmp_path))
        monkeypatch.setenv('SFLY_USERNAME', 'user@example.com')
        monkeypatch.setenv('SFLY_PASSWORD', 'secret')
        monkeypatch.setenv('SFLY_STRICT_STORE_READS', 'true')

        config = AuthenticatorConfiguration(str(tmp_path / 'missing.conf'))
        authenticator = Authenticator.from_config(config)

        assert isinstance(authenticator.store, JsonFileSessionStore)
        assert authenticator.store.path == tmp_path / 'session.json'
        assert isinstance(authenticator.login_procedure, HttpLoginProcedure)
        assert authenticator.login_procedure.username == 'user@example.com'
        assert authenticator.extractor.cookie_name == 'CognitoIdentityToken'
        assert authenticator.strict_store_reads is True
        assert authenticator.session is None
        assert authenticator.state == ResolutionState.EMPTY
