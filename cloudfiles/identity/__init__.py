"""
Identity Clients

Session plumbing for adapters: who is signed in and which scopes they
granted. Each provider keeps its session in a token file under CONFIG_DIR.

Usage:
    from cloudfiles.identity import GoogleSignIn, Presenter

    identity = GoogleSignIn()
    user = identity.current_user()
"""

from .interface import IdentityClient, Presenter, User
from .google_signin import GoogleSignIn
from .dropbox_oauth import DropboxOAuth

__all__ = [
    "IdentityClient",
    "Presenter",
    "User",
    "GoogleSignIn",
    "DropboxOAuth",
]
