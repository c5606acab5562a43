"""
Core interfaces for the Shutterfly Session Keeper.

This module defines the abstract collaborators the session resolver is
composed of, so that persistence, validation, token extraction and login can
be replaced independently.
"""

from abc import ABC, abstractmethod
from typing import Iterable, Optional

from .models import Cookie, Session


class ISessionStore(ABC):
    """Interface for session persistence."""

    @abstractmethod
    async def read(self) -> Optional[Session]:
        """
        Load the persisted session.

        Returns None when nothing has been persisted yet. Raises
        StoreReadFailure when persisted data exists but cannot be used.
        """
        pass

    @abstractmethod
    async def write(self, session: Session) -> None:
        """Persist the session, replacing any previous copy. Raises StoreWriteFailure."""
        pass


class ISessionValidator(ABC):
    """Interface for deciding whether a session is still usable."""

    @abstractmethod
    def validate(self, session: Session) -> bool:
        """Check a session without side effects."""
        pass


class ITokenExtractor(ABC):
    """Interface for deriving the identity token from session cookies."""

    @abstractmethod
    def extract(self, cookies: Iterable[Cookie]) -> Optional[str]:
        """Get the identity token, or None if the cookies carry no usable token."""
        pass


class ILoginProcedure(ABC):
    """Interface for the full remote authentication."""

    @abstractmethod
    async def login(self) -> Optional[Session]:
        """Log in to the remote service. Returns None if authentication failed."""
        pass
