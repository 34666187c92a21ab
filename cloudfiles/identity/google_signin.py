"""
Google Sign-In

Implements IdentityClient with google-auth-oauthlib. The session is an
authorized-user token file; refreshing an expired token rewrites the file.

Supports both automatic (browser, loopback redirect) and manual (headless,
paste the redirect URL) consent flows.
"""

import json
import logging
import os
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from ..config import GDRIVE_TOKEN_PATH
from .interface import IdentityClient, Presenter, User

logger = logging.getLogger(__name__)

# Incremental grants come back with more scopes than were requested.
os.environ.setdefault("OAUTHLIB_RELAX_TOKEN_SCOPE", "1")

AUTH_URI = "https://accounts.google.com/o/oauth2/auth"
TOKEN_URI = "https://oauth2.googleapis.com/token"


def _granted_scopes(creds) -> List[str]:
    return sorted(getattr(creds, "granted_scopes", None) or creds.scopes or [])


class GoogleSignIn(IdentityClient):
    """Google identity provider backed by a token file."""

    provider = "google"

    def __init__(self, token_path: Optional[Path] = None, client_secret: Optional[str] = None):
        self._token_path = Path(token_path or GDRIVE_TOKEN_PATH)
        self._client_secret = client_secret
        self._user: Optional[User] = None
        self._loaded_stamp: Optional[Tuple[int, int]] = None

    def _token_stamp(self) -> Optional[Tuple[int, int]]:
        try:
            stat = self._token_path.stat()
        except FileNotFoundError:
            return None
        return stat.st_mtime_ns, stat.st_size

    def _client_config(self, client_id: str, client_secret: Optional[str]) -> dict:
        return {
            "installed": {
                "client_id": client_id,
                "client_secret": client_secret or "",
                "auth_uri": AUTH_URI,
                "token_uri": TOKEN_URI,
                "redirect_uris": ["http://localhost"],
            }
        }

    def _save(self, creds) -> User:
        info = json.loads(creds.to_json())
        info["scopes"] = _granted_scopes(creds)

        self._token_path.parent.mkdir(parents=True, exist_ok=True)
        self._token_path.write_text(json.dumps(info, indent=2))
        self._loaded_stamp = self._token_stamp()

        self._user = User(credentials=creds, granted_scopes=frozenset(info["scopes"]))
        return self._user

    def _load(self) -> Optional[User]:
        from google.oauth2.credentials import Credentials

        if not self._token_path.exists():
            return None

        try:
            info = json.loads(self._token_path.read_text())
            creds = Credentials.from_authorized_user_info(info)
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to load token file {self._token_path}: {e}")
            return None

        return User(credentials=creds, granted_scopes=frozenset(info.get("scopes") or []))

    def current_user(self) -> Optional[User]:
        from google.auth.exceptions import RefreshError
        from google.auth.transport.requests import Request

        # The CLI may link or unlink from another process; follow the file.
        stamp = self._token_stamp()
        if stamp is None:
            self._user = None
            return None
        if self._user is None or stamp != self._loaded_stamp:
            self._user = self._load()
            self._loaded_stamp = stamp
            if self._user is None:
                return None

        creds = self._user.credentials
        if creds.expired and creds.refresh_token:
            try:
                creds.refresh(Request())
            except RefreshError as e:
                logger.warning(f"Session expired and could not be refreshed: {e}")
                self._user = None
                return None
            self._save(creds)
            logger.info("Token refreshed and saved")

        return self._user

    def _run_flow(self, config: dict, scopes: List[str], presenting: Presenter):
        if presenting.manual:
            from google_auth_oauthlib.flow import Flow

            flow = Flow.from_client_config(
                config,
                scopes=scopes,
                redirect_uri=f"http://localhost:{presenting.port}"
            )
            auth_url, _ = flow.authorization_url(
                access_type="offline",
                include_granted_scopes="true",
                prompt="consent"
            )
            response = presenting.prompt(
                f"Open this URL in a browser and authorize:\n\n{auth_url}\n\n"
                "Paste the full redirect URL here: "
            ).strip()
            if not response:
                raise ValueError("No redirect URL provided")

            # The loopback page never loads, so the pasted URL is plain http.
            flow.fetch_token(authorization_response=response.replace("http://", "https://", 1))
            return flow.credentials

        from google_auth_oauthlib.flow import InstalledAppFlow

        flow = InstalledAppFlow.from_client_config(config, scopes)
        return flow.run_local_server(
            port=presenting.port,
            open_browser=presenting.open_browser,
            prompt="consent",
            access_type="offline",
            include_granted_scopes="true"
        )

    def sign_in(self, client_id: str, scopes: Iterable[str], presenting: Presenter) -> Optional[User]:
        config = self._client_config(client_id, self._client_secret)
        creds = self._run_flow(config, sorted(scopes), presenting)
        if creds is None:
            return None

        user = self._save(creds)
        logger.info(f"✅ Signed in to Google, token saved: {self._token_path}")
        return user

    def add_scopes(self, scopes: Iterable[str], presenting: Presenter) -> Optional[User]:
        user = self.current_user()
        if user is None:
            raise RuntimeError("No active Google session")

        creds = user.credentials
        config = self._client_config(creds.client_id, creds.client_secret or self._client_secret)
        wanted = sorted(set(scopes) | user.granted_scopes)

        new_creds = self._run_flow(config, wanted, presenting)
        if new_creds is None:
            return None
        return self._save(new_creds)

    def sign_out(self) -> None:
        self._user = None
        if self._token_path.exists():
            self._token_path.unlink()
            logger.info(f"Removed token file: {self._token_path}")
