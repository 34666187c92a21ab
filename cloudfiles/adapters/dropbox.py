"""
Dropbox Cloud Files Adapter

Implements CloudFilesAdapter for a Dropbox "App folder" app. Paths are
relative to the app folder, which plays the part of the application-data
area. Uploads overwrite in place and never use upload sessions.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from dropbox.exceptions import ApiError
from dropbox.files import FileMetadata, WriteMode

from ..errors import (
    DownloadError,
    FetchError,
    SignInError,
    UnknownError,
    UploadError,
)
from ..identity.interface import IdentityClient, Presenter, User
from ..interface import (
    CloudFilesAdapter,
    FetchResult,
    Found,
    Metadata,
    NotFound,
    UploadMetadata,
)

logger = logging.getLogger(__name__)

SCOPE_METADATA_READ = "files.metadata.read"
SCOPE_CONTENT_READ = "files.content.read"
SCOPE_CONTENT_WRITE = "files.content.write"
SIGN_IN_SCOPES = ["account_info.read"]

ClientFactory = Callable[[Any], Any]


def build_dropbox_client(credentials: dict):
    """Create a Dropbox client that refreshes its own access token."""
    import dropbox
    return dropbox.Dropbox(
        oauth2_refresh_token=credentials["refresh_token"],
        app_key=credentials["app_key"]
    )


def _remote_path(file_name: str) -> str:
    return "/" + file_name.lstrip("/")


def _is_not_found(error: ApiError) -> bool:
    err = error.error
    if err is None or not hasattr(err, "is_path") or not err.is_path():
        return False
    return err.get_path().is_not_found()


def _as_utc(value: datetime) -> datetime:
    # Dropbox timestamps are naive UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class DropboxAdapter(CloudFilesAdapter):
    """Dropbox cloud files adapter."""

    adapter_type = "dropbox"
    required_scopes = frozenset({SCOPE_METADATA_READ, SCOPE_CONTENT_READ, SCOPE_CONTENT_WRITE})

    def __init__(
        self,
        identity: IdentityClient,
        app_key: Optional[str] = None,
        client_factory: Optional[ClientFactory] = None
    ):
        super().__init__(identity)
        self.app_key = app_key
        self._client_factory = client_factory or build_dropbox_client
        self._client = None
        self._client_credentials = None

    def _bind(self, user: User):
        if self._client is None or self._client_credentials is not user.credentials:
            self._client = self._client_factory(user.credentials)
            self._client_credentials = user.credentials
        return self._client

    def _on_authorized(self, user: User) -> None:
        self._bind(user)

    async def _require_client(self, error):
        return self._bind(await self._require_user(error))

    async def sign_in(self, app_key: str, presenting: Presenter) -> None:
        self.app_key = app_key
        self._client = None

        try:
            user = await asyncio.to_thread(
                self.identity.sign_in, app_key, SIGN_IN_SCOPES, presenting
            )
        except Exception as e:
            raise SignInError(e) from e

        if user is None:
            raise UnknownError("sign-in completed without a refresh token")

    async def link(self, presenting: Presenter) -> None:
        if await self._lookup_user(SignInError) is None:
            if not self.app_key:
                raise ValueError("app_key is required to sign in to Dropbox")
            await self.sign_in(self.app_key, presenting)
        await self.authorize(presenting)

    async def fetch(self, file_name: str) -> FetchResult:
        client = await self._require_client(FetchError)

        try:
            meta = await asyncio.to_thread(client.files_get_metadata, _remote_path(file_name))
        except ApiError as e:
            if _is_not_found(e):
                return NotFound()
            raise FetchError(e) from e
        except Exception as e:
            raise FetchError(e) from e

        if not isinstance(meta, FileMetadata) or not meta.id:
            raise UnknownError(f"{file_name} is not a file")

        try:
            metadata = Metadata(
                id=meta.id,
                size=float(meta.size),
                last_modified=_as_utc(meta.server_modified)
            )
        except (AttributeError, TypeError, ValueError):
            raise UnknownError("file is missing size or server_modified")

        return Found(metadata)

    async def download(self, file_id: str) -> bytes:
        """Download by Dropbox file id ("id:...") or by path."""
        client = await self._require_client(DownloadError)

        try:
            _, response = await asyncio.to_thread(client.files_download, file_id)
            data = response.content
        except Exception as e:
            raise DownloadError(e) from e

        if not isinstance(data, (bytes, bytearray)):
            raise UnknownError("download returned no content")

        return bytes(data)

    async def upload(self, file_name: str, data: bytes) -> UploadMetadata:
        client = await self._require_client(UploadError)

        try:
            meta = await asyncio.to_thread(
                client.files_upload, data, _remote_path(file_name), mode=WriteMode.overwrite
            )
        except Exception as e:
            raise UploadError(e) from e

        try:
            return UploadMetadata(
                size=float(meta.size),
                last_modified=_as_utc(meta.server_modified)
            )
        except (AttributeError, TypeError, ValueError):
            raise UnknownError("uploaded file is missing size or server_modified")

    def unlink(self) -> None:
        super().unlink()
        self._client = None
        self._client_credentials = None
