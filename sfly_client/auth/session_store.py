"""
Session Storage for the Shutterfly Session Keeper.

This module persists the authenticated session as human-readable JSON at a
single fixed path, replacing the whole file on every write.
"""

import asyncio
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional, Union

from sfly_shared.exceptions import StoreReadFailure, StoreWriteFailure
from sfly_shared.interfaces import ISessionStore
from sfly_shared.models import Session

logger = logging.getLogger(__name__)


class JsonFileSessionStore(ISessionStore):
    """
    Session store backed by one JSON file.

    A missing file is a normal empty result. Writes go through a temporary
    file in the same directory and are moved into place, so readers never
    see a partially written session.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path).expanduser()

    async def read(self) -> Optional[Session]:
        return await asyncio.to_thread(self._read_sync)

    async def write(self, session: Session) -> None:
        await asyncio.to_thread(self._write_sync, session)

    def _read_sync(self) -> Optional[Session]:
        """Load the session from disk."""
        try:
            raw = self.path.read_text(encoding='utf-8')
        except FileNotFoundError:
            logger.debug(f"No persisted session at {self.path}")
            return None
        except (OSError, UnicodeDecodeError) as e:
            raise StoreReadFailure(
                f"Failed to read session file: {e}", path=str(self.path), cause=e
            )

        try:
            session = Session.from_dict(json.loads(raw))
        except (ValueError, TypeError) as e:
            # json.JSONDecodeError is a ValueError
            raise StoreReadFailure(
                f"Malformed session file: {e}", path=str(self.path), cause=e
            )

        logger.debug(f"Loaded session with {len(session.cookies)} cookies from {self.path}")
        return session

    def _write_sync(self, session: Session) -> None:
        """Write the session to disk, replacing any previous copy."""
        temp_path = None

        try:
            data = json.dumps(session.to_dict(), indent=4)
            self.path.parent.mkdir(parents=True, exist_ok=True)

            fd, temp_path = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix='.tmp', dir=str(self.path.parent)
            )
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                f.write(data)

            # Set restrictive permissions
            os.chmod(temp_path, 0o600)
            os.replace(temp_path, self.path)
            temp_path = None

        except OSError as e:
            raise StoreWriteFailure(
                f"Failed to write session file: {e}", path=str(self.path), cause=e
            )
        except (TypeError, ValueError) as e:
            raise StoreWriteFailure(
                f"Session cannot be serialized: {e}", path=str(self.path), cause=e
            )
        finally:
            if temp_path is not None and os.path.exists(temp_path):
                os.unlink(temp_path)

        logger.info(f"Session written to {self.path}")
