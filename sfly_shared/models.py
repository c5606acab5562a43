"""
Core data models for the Shutterfly Session Keeper.

This module defines the session entity persisted between runs, the cookies it
carries, and the enumerations used to describe a session resolution.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple


class ResolutionState(Enum):
    """States of the session resolution state machine."""
    EMPTY = "empty"
    MEMORY_HELD = "memory_held"
    VALIDATING = "validating"
    LOGGING_IN = "logging_in"
    PERSISTING = "persisting"
    DONE = "done"
    FAILED = "failed"


class ResolutionTier(Enum):
    """Ordered sources of a usable session."""
    MEMORY = "memory"
    DISK = "disk"
    LOGIN = "login"


# Keys of the serialized cookie that map onto Cookie attributes
_COOKIE_KEYS = {
    'name', 'value', 'domain', 'path', 'expires', 'expiresAt',
    'httpOnly', 'secure', 'sameSite'
}


def _parse_expiry(raw: Any) -> Optional[float]:
    """Convert a serialized expiry marker to epoch seconds."""
    if raw is None or raw == '':
        return None
    if isinstance(raw, bool):
        raise ValueError(f"Invalid cookie expiry: {raw!r}")
    if isinstance(raw, (int, float)):
        # Browsers use -1 for cookies that end with the browsing session
        return None if raw < 0 else float(raw)
    if isinstance(raw, str):
        try:
            return _parse_expiry(float(raw))
        except ValueError:
            return datetime.fromisoformat(raw.replace('Z', '+00:00')).timestamp()
    raise ValueError(f"Invalid cookie expiry: {raw!r}")


@dataclass(frozen=True)
class Cookie:
    """A single credential artifact issued by the remote service."""
    name: str
    value: str
    domain: Optional[str] = None
    path: str = '/'
    expires: Optional[float] = None
    http_only: bool = False
    secure: bool = False
    same_site: Optional[str] = None
    extra: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not self.name:
            raise ValueError("Cookie name cannot be empty")
        if not isinstance(self.value, str):
            raise ValueError(f"Cookie value must be a string: {self.name}")

    def is_expired(self, now: float, skew_seconds: float = 0.0) -> bool:
        """Check whether the cookie has expired at ``now`` (epoch seconds)."""
        if self.expires is None:
            return False
        return self.expires - skew_seconds <= now

    def to_dict(self) -> Dict[str, Any]:
        data = dict(self.extra)
        data.update({
            'name': self.name,
            'value': self.value,
            'domain': self.domain,
            'path': self.path,
            'expires': self.expires if self.expires is not None else -1,
            'httpOnly': self.http_only,
            'secure': self.secure,
        })
        if self.same_site is not None:
            data['sameSite'] = self.same_site
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'Cookie':
        """
        Build a cookie from its serialized form.

        Accepts either ``expires`` (epoch seconds, -1 for none) or
        ``expiresAt`` (epoch seconds or ISO-8601 string). Unknown keys are
        kept in ``extra``.
        """
        if not isinstance(data, Mapping):
            raise ValueError(f"Cookie must be an object, got {type(data).__name__}")
        if 'name' not in data or 'value' not in data:
            raise ValueError("Cookie requires 'name' and 'value'")

        # expires of -1 marks a session cookie, so expiresAt still applies
        expires = _parse_expiry(data.get('expires'))
        if expires is None:
            expires = _parse_expiry(data.get('expiresAt'))

        return cls(
            name=data['name'],
            value=data['value'],
            domain=data.get('domain'),
            path=data.get('path') or '/',
            expires=expires,
            http_only=bool(data.get('httpOnly', False)),
            secure=bool(data.get('secure', False)),
            same_site=data.get('sameSite'),
            extra={k: v for k, v in data.items() if k not in _COOKIE_KEYS}
        )


@dataclass(frozen=True)
class Session:
    """
    An authenticated session with the remote service.

    Sessions are immutable; a newer session replaces an older one as a whole.
    Fields other than ``cookies`` are carried in ``extra`` untouched.
    """
    cookies: Tuple[Cookie, ...] = ()
    extra: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        # Allow any iterable of cookies while keeping the stored value immutable
        if not isinstance(self.cookies, tuple):
            object.__setattr__(self, 'cookies', tuple(self.cookies))

    def get_cookie(self, name: str) -> Optional[Cookie]:
        """Get the first cookie with the given name."""
        for cookie in self.cookies:
            if cookie.name == name:
                return cookie
        return None

    def cookie_names(self) -> Tuple[str, ...]:
        return tuple(cookie.name for cookie in self.cookies)

    def to_dict(self) -> Dict[str, Any]:
        data = dict(self.extra)
        data['cookies'] = [cookie.to_dict() for cookie in self.cookies]
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'Session':
        """Build a session from its serialized form."""
        if not isinstance(data, Mapping):
            raise ValueError(f"Session must be an object, got {type(data).__name__}")

        raw_cookies = data.get('cookies')
        if not isinstance(raw_cookies, list):
            raise ValueError("Session requires a 'cookies' list")

        return cls(
            cookies=tuple(Cookie.from_dict(item) for item in raw_cookies),
            extra={k: v for k, v in data.items() if k != 'cookies'}
        )

    @classmethod
    def from_cookies(cls, cookies: Iterable[Cookie], **extra: Any) -> 'Session':
        return cls(cookies=tuple(cookies), extra=extra)
