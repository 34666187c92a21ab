"""Provider adapters."""

from .gdrive import GDriveAdapter
from .dropbox import DropboxAdapter

__all__ = [
    "GDriveAdapter",
    "DropboxAdapter",
]
