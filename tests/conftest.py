"""
Pytest configuration and shared fakes.

The fakes stand in for the identity provider and the Drive REST client so
adapters can be exercised without network access.
Run from project root: python -m pytest tests/ -v
"""

import itertools
import re
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Dict, Iterable, List, Optional

import pytest

PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from cloudfiles.adapters.gdrive import SCOPE_DRIVE_APPDATA, SCOPE_DRIVE_FILE  # noqa: E402
from cloudfiles.identity.interface import IdentityClient, Presenter, User  # noqa: E402

DRIVE_SCOPES = frozenset({SCOPE_DRIVE_FILE, SCOPE_DRIVE_APPDATA})
BASE_SCOPES = frozenset({"openid", "https://www.googleapis.com/auth/userinfo.email"})


class FakeIdentity(IdentityClient):
    """In-memory identity provider that records every consent prompt."""

    provider = "fake"

    def __init__(
        self,
        user: Optional[User] = None,
        grant: Optional[Iterable[str]] = None,
        sign_in_error: Optional[Exception] = None,
        add_scopes_error: Optional[Exception] = None,
        sign_in_returns_user: bool = True
    ):
        self.user = user
        self.grant = None if grant is None else frozenset(grant)
        self.sign_in_error = sign_in_error
        self.add_scopes_error = add_scopes_error
        self.sign_in_returns_user = sign_in_returns_user
        self.sign_in_calls: List[tuple] = []
        self.add_scopes_calls: List[list] = []
        self.sign_out_calls = 0

    def current_user(self) -> Optional[User]:
        return self.user

    def sign_in(self, client_id: str, scopes: Iterable[str], presenting: Presenter) -> Optional[User]:
        self.sign_in_calls.append((client_id, list(scopes)))
        if self.sign_in_error is not None:
            raise self.sign_in_error
        if not self.sign_in_returns_user:
            return None
        self.user = User(credentials=object(), granted_scopes=frozenset(scopes))
        return self.user

    def add_scopes(self, scopes: Iterable[str], presenting: Presenter) -> Optional[User]:
        scopes = list(scopes)
        self.add_scopes_calls.append(scopes)
        if self.add_scopes_error is not None:
            raise self.add_scopes_error
        granted = self.grant if self.grant is not None else frozenset(scopes)
        self.user = User(
            credentials=object(),
            granted_scopes=self.user.granted_scopes | granted
        )
        return self.user

    def sign_out(self) -> None:
        self.sign_out_calls += 1
        self.user = None


class FakeRequest:
    def __init__(self, run):
        self._run = run

    def execute(self):
        return self._run()


class FakeFiles:
    """Mimics ``service.files()`` for the calls the Drive adapter makes."""

    def __init__(self, service: "FakeDriveService"):
        self._service = service

    def _maybe_fail(self, op: str):
        error = self._service.errors.get(op)
        if error is not None:
            raise error

    def list(self, **kwargs):
        self._service.calls.append(("list", kwargs))

        def run():
            self._maybe_fail("list")
            if "list" in self._service.responses:
                return self._service.responses["list"]
            match = re.fullmatch(r"name = '(.*)'", kwargs["q"])
            name = match.group(1).replace("\\'", "'").replace("\\\\", "\\")
            found = [f for f in self._service.stored if f["name"] == name]
            found.sort(key=lambda f: f["modifiedTime"], reverse=True)
            return {"files": [
                {"id": f["id"], "size": str(len(f["data"])), "modifiedTime": f["modifiedTime"]}
                for f in found
            ]}

        return FakeRequest(run)

    def get_media(self, fileId):
        self._service.calls.append(("get_media", {"fileId": fileId}))

        def run():
            self._maybe_fail("get_media")
            if "get_media" in self._service.responses:
                return self._service.responses["get_media"]
            for f in self._service.stored:
                if f["id"] == fileId:
                    return f["data"]
            raise KeyError(fileId)

        return FakeRequest(run)

    def create(self, body, media_body, fields):
        self._service.calls.append(("create", {"body": body, "media_body": media_body, "fields": fields}))

        def run():
            self._maybe_fail("create")
            if "create" in self._service.responses:
                return self._service.responses["create"]
            data = media_body.getbytes(0, media_body.size())
            record = {
                "id": f"file-{next(self._service.ids)}",
                "name": body["name"],
                "parents": body["parents"],
                "data": data,
                "modifiedTime": self._service.next_time(),
            }
            self._service.stored.append(record)
            return {"size": str(len(data)), "modifiedTime": record["modifiedTime"]}

        return FakeRequest(run)


class FakeDriveService:
    """In-memory Drive appDataFolder."""

    def __init__(self):
        self.stored: List[dict] = []
        self.calls: List[tuple] = []
        self.errors: Dict[str, Exception] = {}
        self.responses: Dict[str, object] = {}
        self.ids = itertools.count(1)
        self._clock = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def next_time(self) -> str:
        self._clock += timedelta(seconds=1)
        return self._clock.strftime("%Y-%m-%dT%H:%M:%S.000Z")

    def files(self):
        return FakeFiles(self)


class ServiceFactory:
    """Records which credentials and API key each Drive service was built with."""

    def __init__(self, service: FakeDriveService):
        self.service = service
        self.builds: List[tuple] = []

    def __call__(self, credentials, api_key):
        self.builds.append((credentials, api_key))
        return self.service


def make_user(scopes: Iterable[str] = DRIVE_SCOPES) -> User:
    return User(credentials=object(), granted_scopes=frozenset(scopes))


@pytest.fixture()
def drive_service():
    return FakeDriveService()


@pytest.fixture()
def service_factory(drive_service):
    return ServiceFactory(drive_service)


@pytest.fixture()
def presenter():
    return Presenter(manual=True, prompt=lambda message: "")
