"""cloudfiles - one contract for a single app-private file on Google Drive or Dropbox."""

from .errors import (
    AuthorizeError,
    CloudFilesError,
    DownloadError,
    FetchError,
    MissingScopesError,
    SignInError,
    UnknownError,
    UploadError,
)
from .identity import Presenter
from .interface import (
    CloudFilesAdapter,
    FetchResult,
    Found,
    Metadata,
    NotFound,
    UploadMetadata,
)
from .manager import AccountManager, CloudAccount, CloudFilesManager

__all__ = [
    "AccountManager",
    "AuthorizeError",
    "CloudAccount",
    "CloudFilesAdapter",
    "CloudFilesError",
    "CloudFilesManager",
    "DownloadError",
    "FetchError",
    "FetchResult",
    "Found",
    "Metadata",
    "MissingScopesError",
    "NotFound",
    "Presenter",
    "SignInError",
    "UnknownError",
    "UploadError",
    "UploadMetadata",
]
