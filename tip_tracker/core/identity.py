"""
User identity providers.

The store is only ever called with an id produced here.
"""

import logging
import uuid
from pathlib import Path
from typing import Optional, Protocol

from .errors import AuthenticationError

logger = logging.getLogger("tip_tracker.identity")


class IdentityProvider(Protocol):
    def current_user_id(self) -> str:
        ...


class StaticIdentity:
    """A fixed, externally supplied user id."""

    def __init__(self, user_id: Optional[str]):
        if not user_id or not user_id.strip():
            raise AuthenticationError("user_id is required and cannot be empty")
        self.user_id = user_id.strip()

    def current_user_id(self) -> str:
        return self.user_id


class LocalAnonymousIdentity:
    """Anonymous identity generated once and kept in a local file.

    The same id is returned for the lifetime of the file, so tips logged
    anonymously stay attached to this device.
    """

    def __init__(self, path: str):
        self.path = Path(path)
        self._user_id: Optional[str] = None

    def current_user_id(self) -> str:
        """Return the stored anonymous id, creating it on first use.

        Raises:
            AuthenticationError: If the identity file cannot be read or written
        """
        if self._user_id is not None:
            return self._user_id

        try:
            if self.path.exists():
                user_id = self.path.read_text(encoding='utf-8').strip()
                if not user_id:
                    raise AuthenticationError(f"Identity file {self.path} is empty")
            else:
                user_id = f"anon-{uuid.uuid4().hex}"
                self.path.parent.mkdir(parents=True, exist_ok=True)
                self.path.write_text(user_id + "\n", encoding='utf-8')
                logger.info("Created anonymous identity at %s", self.path)
        except OSError as e:
            raise AuthenticationError(f"Cannot establish identity from {self.path}: {e}") from e

        self._user_id = user_id
        return user_id


def identity_path_for(db_path: str) -> str:
    """Identity file kept alongside the tip database."""
    db = Path(db_path)
    return str(db.with_name(db.name + ".identity"))
