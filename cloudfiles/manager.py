"""
Cloud Files Manager

CloudFilesManager is the provider-agnostic facade: one adapter plus the one
remote file it addresses. AccountManager keeps named account configurations
and builds a CloudFilesManager for each.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from .adapters.dropbox import ClientFactory, DropboxAdapter
from .adapters.gdrive import GDriveAdapter, ServiceFactory
from .config import ACCOUNTS_FILE
from .identity import DropboxOAuth, GoogleSignIn, IdentityClient, Presenter
from .interface import CloudFilesAdapter, FetchResult, UploadMetadata

logger = logging.getLogger(__name__)


class UnimplementedAdapter(CloudFilesAdapter):
    """Adapter whose every operation raises; stands in where no provider is wired yet."""

    adapter_type = "unimplemented"

    def __init__(self):
        super().__init__(identity=None)

    async def link(self, presenting: Presenter) -> None:
        raise NotImplementedError("link")

    async def authorize(self, presenting: Presenter) -> None:
        raise NotImplementedError("authorize")

    def is_linked(self) -> bool:
        raise NotImplementedError("is_linked")

    async def fetch(self, file_name: str) -> FetchResult:
        raise NotImplementedError("fetch")

    async def download(self, file_id: str) -> bytes:
        raise NotImplementedError("download")

    async def upload(self, file_name: str, data: bytes) -> UploadMetadata:
        raise NotImplementedError("upload")

    def unlink(self) -> None:
        raise NotImplementedError("unlink")


@dataclass(frozen=True)
class CloudFilesManager:
    """
    Provider-agnostic access to one remote file.

    Build one with a factory (``drive``, ``dropbox``); construction does no
    I/O. Issue one operation at a time per manager.
    """
    adapter: CloudFilesAdapter
    file_name: str

    @classmethod
    def drive(
        cls,
        api_key: Optional[str],
        client_id: str,
        file_name: str,
        client_secret: Optional[str] = None,
        token_path: Optional[Path] = None,
        identity: Optional[IdentityClient] = None,
        service_factory: Optional[ServiceFactory] = None
    ) -> "CloudFilesManager":
        identity = identity or GoogleSignIn(token_path=token_path, client_secret=client_secret)
        adapter = GDriveAdapter(
            identity,
            api_key=api_key,
            client_id=client_id,
            service_factory=service_factory
        )
        return cls(adapter=adapter, file_name=file_name)

    @classmethod
    def dropbox(
        cls,
        app_key: str,
        file_name: str,
        token_path: Optional[Path] = None,
        identity: Optional[IdentityClient] = None,
        client_factory: Optional[ClientFactory] = None
    ) -> "CloudFilesManager":
        identity = identity or DropboxOAuth(token_path=token_path)
        adapter = DropboxAdapter(identity, app_key=app_key, client_factory=client_factory)
        return cls(adapter=adapter, file_name=file_name)

    @classmethod
    def unimplemented(cls, file_name: str = "") -> "CloudFilesManager":
        return cls(adapter=UnimplementedAdapter(), file_name=file_name)

    @property
    def provider(self) -> str:
        return self.adapter.adapter_type

    async def link(self, presenting: Optional[Presenter] = None) -> None:
        await self.adapter.link(presenting or Presenter())

    def is_linked(self) -> bool:
        return self.adapter.is_linked()

    async def fetch(self) -> FetchResult:
        return await self.adapter.fetch(self.file_name)

    async def download(self, file_id: Optional[str] = None) -> Optional[bytes]:
        """
        Download the managed file.

        Without a file id the file is looked up by name first; returns None
        when it does not exist yet.
        """
        if file_id is None:
            result = await self.fetch()
            if not result:
                return None
            file_id = result.metadata.id
        return await self.adapter.download(file_id)

    async def upload(self, data: bytes) -> UploadMetadata:
        return await self.adapter.upload(self.file_name, data)

    def unlink(self) -> None:
        self.adapter.unlink()


@dataclass
class CloudAccount:
    """A named cloud files account configuration."""
    name: str
    adapter: str
    file_name: str
    config: Dict[str, Any] = field(default_factory=dict)

    # Adapter names written by older configs
    ADAPTER_ALIASES = {"drive": "gdrive", "google_drive": "gdrive"}

    @classmethod
    def from_entry(cls, name: str, entry: Dict[str, Any]) -> "CloudAccount":
        adapter = entry.get("adapter") or entry.get("provider", "")
        return cls(
            name=name,
            adapter=cls.ADAPTER_ALIASES.get(adapter, adapter),
            file_name=entry.get("file_name", ""),
            config=dict(entry.get("config") or {})
        )

    def to_entry(self) -> Dict[str, Any]:
        return {"adapter": self.adapter, "file_name": self.file_name, "config": self.config}


ManagerBuilder = Callable[[CloudAccount], CloudFilesManager]


def _optional_path(value: Optional[str]) -> Optional[Path]:
    return Path(value) if value else None


def build_drive_manager(account: CloudAccount) -> CloudFilesManager:
    config = account.config
    return CloudFilesManager.drive(
        api_key=config.get("api_key"),
        client_id=config.get("client_id", ""),
        file_name=account.file_name,
        client_secret=config.get("client_secret"),
        token_path=_optional_path(config.get("token_path"))
    )


def build_dropbox_manager(account: CloudAccount) -> CloudFilesManager:
    config = account.config
    return CloudFilesManager.dropbox(
        app_key=config.get("app_key", ""),
        file_name=account.file_name,
        token_path=_optional_path(config.get("token_path"))
    )


class AccountManager:
    """
    Manages cloud files accounts and their managers.

    Provides a unified way to reach any configured account without knowing
    the underlying provider.
    """

    def __init__(self, config_path: Optional[Path] = None):
        self.config_path = Path(config_path or ACCOUNTS_FILE)
        self.accounts: Dict[str, CloudAccount] = {}
        self.managers: Dict[str, CloudFilesManager] = {}
        self.builders: Dict[str, ManagerBuilder] = {}

        self.register_adapter_type(GDriveAdapter.adapter_type, build_drive_manager)
        self.register_adapter_type(DropboxAdapter.adapter_type, build_dropbox_manager)
        self._load_accounts()

    def register_adapter_type(self, adapter_type: str, builder: ManagerBuilder) -> None:
        """Register how managers are built for an adapter type."""
        self.builders[adapter_type] = builder
        logger.debug(f"Registered cloud files adapter: {adapter_type}")

    def _load_accounts(self) -> None:
        if not self.config_path.exists():
            logger.info("No cloud files accounts config found, starting fresh")
            return

        try:
            entries = json.loads(self.config_path.read_text()).get("accounts", {})
        except (OSError, ValueError, AttributeError) as e:
            logger.error(f"❌ Failed to load accounts from {self.config_path}: {e}")
            return

        self.accounts = {name: CloudAccount.from_entry(name, entry) for name, entry in entries.items()}
        logger.info(f"✅ Loaded {len(self.accounts)} cloud files accounts")

    def _save_accounts(self) -> None:
        entries = {name: account.to_entry() for name, account in self.accounts.items()}
        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        self.config_path.write_text(json.dumps({"accounts": entries}, indent=2))

    def add_account(
        self,
        name: str,
        adapter: str,
        file_name: str,
        config: Optional[Dict[str, Any]] = None
    ) -> str:
        """Add a new account."""
        if name in self.accounts:
            return f"❌ Account '{name}' already exists"

        if adapter not in self.builders:
            available = ", ".join(self.builders.keys()) or "none"
            return f"❌ Unknown adapter '{adapter}'. Available: {available}"

        if not file_name:
            return "❌ A file name is required"

        self.accounts[name] = CloudAccount(
            name=name,
            adapter=adapter,
            file_name=file_name,
            config=config or {}
        )
        self._save_accounts()

        return f"✅ Added cloud files account: {name} ({adapter}, {file_name})"

    def remove_account(self, name: str) -> str:
        """Remove an account. Its session token is left alone; unlink first to drop it."""
        if name not in self.accounts:
            return f"❌ Account '{name}' not found"

        self.managers.pop(name, None)
        del self.accounts[name]
        self._save_accounts()

        return f"✅ Removed cloud files account: {name}"

    def get_manager(self, name: str) -> CloudFilesManager:
        """
        Get or build the manager for an account.

        Raises:
            KeyError: If the account is not configured
            ValueError: If the account's adapter type is not registered
        """
        if name in self.managers:
            return self.managers[name]

        if name not in self.accounts:
            raise KeyError(f"Account not found: {name}")

        account = self.accounts[name]
        builder = self.builders.get(account.adapter)
        if builder is None:
            raise ValueError(f"Adapter not registered: {account.adapter}")

        manager = builder(account)
        self.managers[name] = manager
        return manager

    def list_accounts(self) -> str:
        """List all configured accounts with their link state."""
        if not self.accounts:
            return "☁️ No cloud files accounts configured"

        lines = ["☁️ Cloud Files Accounts", "─" * 40]
        for name, account in self.accounts.items():
            try:
                linked = self.get_manager(name).is_linked()
            except ValueError as e:
                lines.append(f"⚠️ {name} ({account.adapter}): {e}")
                continue
            icon = "🟢" if linked else "⚪"
            lines.append(f"{icon} {name} ({account.adapter})")
            lines.append(f"   File: {account.file_name}")

        return "\n".join(lines)
