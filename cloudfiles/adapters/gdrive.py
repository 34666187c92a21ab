"""
Google Drive Cloud Files Adapter

Implements CloudFilesAdapter for Google Drive. Files live in the
appDataFolder space, which only this application can see. Drive indexes
files by id and does not keep names unique, so callers resolve a name to
an id with fetch before downloading.
"""

import asyncio
import io
import logging
from datetime import datetime
from typing import Any, Callable, Optional

from googleapiclient.errors import HttpError
from googleapiclient.http import MediaIoBaseUpload

from ..config import BINARY_MIME_TYPE
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

SCOPE_DRIVE_FILE = "https://www.googleapis.com/auth/drive.file"
SCOPE_DRIVE_APPDATA = "https://www.googleapis.com/auth/drive.appdata"
SIGN_IN_SCOPES = ["openid", "https://www.googleapis.com/auth/userinfo.email"]

APP_DATA_FOLDER = "appDataFolder"

ServiceFactory = Callable[[Any, Optional[str]], Any]


def build_drive_service(credentials, api_key: Optional[str] = None):
    """Build a Drive v3 service bound to the given credentials."""
    from googleapiclient.discovery import build
    return build("drive", "v3", credentials=credentials, developerKey=api_key, cache_discovery=False)


def _escape_query_value(value: str) -> str:
    return value.replace("\\", "\\\\").replace("'", "\\'")


def _parse_time(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


class GDriveAdapter(CloudFilesAdapter):
    """Google Drive cloud files adapter."""

    adapter_type = "gdrive"
    required_scopes = frozenset({SCOPE_DRIVE_FILE, SCOPE_DRIVE_APPDATA})

    def __init__(
        self,
        identity: IdentityClient,
        api_key: Optional[str] = None,
        client_id: Optional[str] = None,
        service_factory: Optional[ServiceFactory] = None
    ):
        super().__init__(identity)
        self.api_key = api_key
        self.client_id = client_id
        self._service_factory = service_factory or build_drive_service
        self._service = None
        self._service_credentials = None

    def _bind(self, user: User):
        """Return a Drive service for the user, rebuilding it if the session changed."""
        if self._service is None or self._service_credentials is not user.credentials:
            self._service = self._service_factory(user.credentials, self.api_key)
            self._service_credentials = user.credentials
        return self._service

    def _on_authorized(self, user: User) -> None:
        self._bind(user)

    async def _require_service(self, error):
        return self._bind(await self._require_user(error))

    async def sign_in(self, api_key: Optional[str], client_id: str, presenting: Presenter) -> None:
        """Run Google sign-in. Scopes for Drive are requested later by authorize."""
        self.api_key = api_key
        self.client_id = client_id
        self._service = None

        try:
            user = await asyncio.to_thread(
                self.identity.sign_in, client_id, SIGN_IN_SCOPES, presenting
            )
        except Exception as e:
            raise SignInError(e) from e

        if user is None:
            raise UnknownError("sign-in completed without a user")

        logger.info("✅ Signed in to Google Drive")

    async def link(self, presenting: Presenter) -> None:
        if await self._lookup_user(SignInError) is None:
            if not self.client_id:
                raise ValueError("client_id is required to sign in to Google Drive")
            await self.sign_in(self.api_key, self.client_id, presenting)
        await self.authorize(presenting)

    async def fetch(self, file_name: str) -> FetchResult:
        """Find a file by name in appDataFolder, newest first."""
        service = await self._require_service(FetchError)

        try:
            request = service.files().list(
                q=f"name = '{_escape_query_value(file_name)}'",
                spaces=APP_DATA_FOLDER,
                fields="files(id, size, modifiedTime)",
                orderBy="modifiedTime desc"
            )
            result = await asyncio.to_thread(request.execute)
        except HttpError as e:
            if e.resp.status == 404:
                return NotFound()
            raise FetchError(e) from e
        except Exception as e:
            raise FetchError(e) from e

        if not isinstance(result, dict) or not isinstance(result.get("files"), list):
            raise UnknownError("file list response has no files")

        if not result["files"]:
            return NotFound()

        item = result["files"][0]
        try:
            metadata = Metadata(
                id=item["id"],
                size=float(item["size"]),
                last_modified=_parse_time(item["modifiedTime"])
            )
        except (KeyError, TypeError, ValueError):
            raise UnknownError("file is missing id, size or modifiedTime")

        return Found(metadata)

    async def download(self, file_id: str) -> bytes:
        service = await self._require_service(DownloadError)

        try:
            request = service.files().get_media(fileId=file_id)
            data = await asyncio.to_thread(request.execute)
        except Exception as e:
            raise DownloadError(e) from e

        if not isinstance(data, (bytes, bytearray)):
            raise UnknownError("download returned no content")

        return bytes(data)

    async def upload(self, file_name: str, data: bytes) -> UploadMetadata:
        """Create a file in appDataFolder with a single, non-resumable request."""
        service = await self._require_service(UploadError)

        metadata = {
            "name": file_name,
            "parents": [APP_DATA_FOLDER],
            "mimeType": BINARY_MIME_TYPE,
        }
        media = MediaIoBaseUpload(io.BytesIO(data), mimetype=BINARY_MIME_TYPE, resumable=False)

        try:
            request = service.files().create(
                body=metadata,
                media_body=media,
                fields="size, modifiedTime"
            )
            result = await asyncio.to_thread(request.execute)
        except Exception as e:
            raise UploadError(e) from e

        try:
            return UploadMetadata(
                size=float(result["size"]),
                last_modified=_parse_time(result["modifiedTime"])
            )
        except (KeyError, TypeError, ValueError):
            raise UnknownError("uploaded file is missing size or modifiedTime")

    def unlink(self) -> None:
        super().unlink()
        self._service = None
        self._service_credentials = None
