"""
Cloud Files Interface

Core abstraction for cloud file providers. Adapters implement this interface
to link an account and read/write one named file in the provider's private
application-data area (Google Drive appDataFolder, Dropbox app folder, ...).
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import FrozenSet, Optional, Type, Union

from .errors import AuthorizeError, CloudFilesError, MissingScopesError
from .identity.interface import IdentityClient, Presenter, User

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Metadata:
    """Current state of a remote file, as returned by fetch."""
    id: str
    size: float
    last_modified: datetime


@dataclass(frozen=True)
class UploadMetadata:
    """State of a remote file right after upload."""
    size: float
    last_modified: datetime


@dataclass(frozen=True)
class Found:
    metadata: Metadata

    def __bool__(self) -> bool:
        return True


@dataclass(frozen=True)
class NotFound:
    def __bool__(self) -> bool:
        return False


FetchResult = Union[Found, NotFound]


class CloudFilesAdapter(ABC):
    """
    Base class for cloud files adapters.

    The identity client owns all session state; adapters only ask it who is
    signed in and which scopes were granted. Callers must not run two
    operations concurrently on the same adapter.
    """

    adapter_type: str = "base"
    required_scopes: FrozenSet[str] = frozenset()

    def __init__(self, identity: IdentityClient):
        self.identity = identity

    @abstractmethod
    async def link(self, presenting: Presenter) -> None:
        """Sign in if needed, then authorize the required scopes."""
        pass

    @abstractmethod
    async def fetch(self, file_name: str) -> FetchResult:
        """Look up a file by name in the application-data area."""
        pass

    @abstractmethod
    async def download(self, file_id: str) -> bytes:
        """Download the raw content of a file by identifier."""
        pass

    @abstractmethod
    async def upload(self, file_name: str, data: bytes) -> UploadMetadata:
        """Upload raw content as a file in the application-data area."""
        pass

    def _on_authorized(self, user: User) -> None:
        """Hook for adapters that bind a transport to the user's credentials."""
        pass

    def _current_user(self) -> Optional[User]:
        """Session lookup for is_linked, which must never raise."""
        try:
            return self.identity.current_user()
        except Exception as e:
            logger.warning(f"Could not read {self.adapter_type} session: {e}")
            return None

    async def _lookup_user(self, error: Type[CloudFilesError]) -> Optional[User]:
        """
        Read the session off the event loop; refreshing a token is a network call.

        A missing session is None. Any failure to read one is raised as
        ``error`` so callers can tell a network problem from a missing grant.
        """
        try:
            return await asyncio.to_thread(self.identity.current_user)
        except Exception as e:
            raise error(e) from e

    async def _require_user(self, error: Type[CloudFilesError]) -> User:
        """Return the signed-in user, or raise if any required scope is missing."""
        user = await self._lookup_user(error)
        if user is None or not user.has_scopes(self.required_scopes):
            raise MissingScopesError()
        return user

    def is_linked(self) -> bool:
        user = self._current_user()
        return user is not None and user.has_scopes(self.required_scopes)

    async def authorize(self, presenting: Presenter) -> None:
        """
        Make sure the signed-in user granted every required scope.

        Asks the identity provider for the missing scopes only when needed, so
        repeated calls on an authorized session never prompt again.
        """
        user = await self._lookup_user(AuthorizeError)
        if user is None:
            raise MissingScopesError()

        if not user.has_scopes(self.required_scopes):
            missing = sorted(self.required_scopes - user.granted_scopes)
            logger.info(f"Requesting {self.adapter_type} scopes: {', '.join(missing)}")
            try:
                user = await asyncio.to_thread(
                    self.identity.add_scopes, sorted(self.required_scopes), presenting
                )
            except Exception as e:
                raise AuthorizeError(e) from e

            # The consent screen lets the user untick scopes, so check again.
            if user is None or not user.has_scopes(self.required_scopes):
                raise MissingScopesError("required scopes were not granted")

        self._on_authorized(user)
        logger.info(f"✅ Authorized {self.adapter_type}")

    def unlink(self) -> None:
        """End the local session. Server-side grants are left in place."""
        try:
            self.identity.sign_out()
        except Exception as e:
            logger.warning(f"Failed to clear {self.adapter_type} session: {e}")
        logger.info(f"Unlinked {self.adapter_type}")
