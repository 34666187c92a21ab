"""
Dropbox OAuth

Implements IdentityClient with the Dropbox SDK's PKCE no-redirect flow.
The session is a small JSON file holding the refresh token and the scopes
Dropbox reported as granted.
"""

import json
import logging
import webbrowser
from pathlib import Path
from typing import Iterable, Optional, Tuple

from ..config import DROPBOX_TOKEN_PATH
from .interface import IdentityClient, Presenter, User

logger = logging.getLogger(__name__)


class DropboxOAuth(IdentityClient):
    """Dropbox identity provider backed by a token file."""

    provider = "dropbox"

    def __init__(self, token_path: Optional[Path] = None):
        self._token_path = Path(token_path or DROPBOX_TOKEN_PATH)
        self._user: Optional[User] = None
        self._loaded_stamp: Optional[Tuple[int, int]] = None

    def _token_stamp(self) -> Optional[Tuple[int, int]]:
        try:
            stat = self._token_path.stat()
        except FileNotFoundError:
            return None
        return stat.st_mtime_ns, stat.st_size

    def current_user(self) -> Optional[User]:
        # Re-read whenever the file changed, including a link or unlink by the CLI.
        stamp = self._token_stamp()
        if stamp is None:
            self._user = None
            return None
        if self._user is not None and stamp == self._loaded_stamp:
            return self._user

        self._user = None
        self._loaded_stamp = stamp
        try:
            info = json.loads(self._token_path.read_text())
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to load token file {self._token_path}: {e}")
            return None

        if not info.get("refresh_token") or not info.get("app_key"):
            logger.warning(f"Token file {self._token_path} has no refresh token")
            return None

        self._user = User(
            credentials=info,
            granted_scopes=frozenset(info.get("scopes") or []),
            account_id=info.get("account_id")
        )
        return self._user

    def _run_flow(
        self,
        app_key: str,
        scopes: Iterable[str],
        presenting: Presenter,
        include_granted_scopes: Optional[str] = None
    ) -> Optional[User]:
        from dropbox import DropboxOAuth2FlowNoRedirect

        flow = DropboxOAuth2FlowNoRedirect(
            app_key,
            use_pkce=True,
            token_access_type="offline",
            scope=sorted(scopes),
            include_granted_scopes=include_granted_scopes
        )
        auth_url = flow.start()

        if not presenting.manual and presenting.open_browser:
            webbrowser.open(auth_url)

        code = presenting.prompt(
            f"Open this URL in a browser and click 'Allow':\n\n{auth_url}\n\n"
            "Paste the authorization code here: "
        ).strip()
        if not code:
            raise ValueError("No authorization code provided")

        result = flow.finish(code)
        if not result.refresh_token:
            return None

        info = {
            "app_key": app_key,
            "refresh_token": result.refresh_token,
            "account_id": result.account_id,
            "scopes": sorted((result.scope or "").split()),
        }
        self._token_path.parent.mkdir(parents=True, exist_ok=True)
        self._token_path.write_text(json.dumps(info, indent=2))
        self._loaded_stamp = self._token_stamp()

        self._user = User(
            credentials=info,
            granted_scopes=frozenset(info["scopes"]),
            account_id=result.account_id
        )
        return self._user

    def sign_in(self, client_id: str, scopes: Iterable[str], presenting: Presenter) -> Optional[User]:
        user = self._run_flow(client_id, scopes, presenting)
        if user is not None:
            logger.info(f"✅ Signed in to Dropbox: {user.account_id}")
        return user

    def add_scopes(self, scopes: Iterable[str], presenting: Presenter) -> Optional[User]:
        user = self.current_user()
        if user is None:
            raise RuntimeError("No active Dropbox session")

        return self._run_flow(
            user.credentials["app_key"],
            set(scopes) | user.granted_scopes,
            presenting,
            include_granted_scopes="user"
        )

    def sign_out(self) -> None:
        self._user = None
        if self._token_path.exists():
            self._token_path.unlink()
            logger.info(f"Removed token file: {self._token_path}")
