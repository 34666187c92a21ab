"""
Cloud Files MCP Server

Exposes configured cloud files accounts as MCP tools:
- Status: accounts and link state
- Files: fetch metadata, download, upload the account's file
- Session: unlink

Linking needs a consent screen, so it is done with the ``cloudfiles`` CLI.
"""

import logging
from pathlib import Path
from typing import Optional

from fastmcp import FastMCP
from fastmcp.tools import Tool

from .errors import CloudFilesError, MissingScopesError
from .manager import AccountManager, CloudFilesManager

logger = logging.getLogger(__name__)

mcp = FastMCP("Cloud Files")

_accounts: Optional[AccountManager] = None


def get_accounts() -> AccountManager:
    """Return the process-wide account manager, loading it on first use."""
    global _accounts
    if _accounts is None:
        _accounts = AccountManager()
    return _accounts


def _manager(account: str) -> CloudFilesManager:
    return get_accounts().get_manager(account)


def _describe_error(account: str, error: Exception) -> str:
    if isinstance(error, MissingScopesError):
        return f"❌ Not linked: {account} (run: cloudfiles link {account})"
    if isinstance(error, KeyError):
        return f"❌ Account not found: {account}"
    return f"❌ {error}"


# =============================================================================
# STATUS TOOLS
# =============================================================================
def cloud_accounts() -> str:
    """List configured cloud files accounts and whether each is linked."""
    return get_accounts().list_accounts()


def cloud_status(account: str) -> str:
    """
    Show whether an account is linked.

    Args:
        account: Account name from the accounts config
    """
    try:
        manager = _manager(account)
    except (KeyError, ValueError) as e:
        return _describe_error(account, e)

    if manager.is_linked():
        return f"🟢 {account} ({manager.provider}) linked → {manager.file_name}"
    return f"⚪ {account} ({manager.provider}) not linked"


# =============================================================================
# FILE TOOLS
# =============================================================================
async def cloud_fetch(account: str) -> str:
    """
    Get metadata of the account's file.

    Args:
        account: Account name from the accounts config

    Returns:
        File id, size and modification time, or a note that it does not exist
    """
    try:
        manager = _manager(account)
        result = await manager.fetch()
    except (KeyError, ValueError, CloudFilesError) as e:
        logger.error(f"Fetch failed for {account}: {e}")
        return _describe_error(account, e)

    if not result:
        return f"📭 {manager.file_name} does not exist yet"

    metadata = result.metadata
    return (
        f"📄 {manager.file_name} ({metadata.size:.0f} bytes)\n"
        f"   Modified: {metadata.last_modified.isoformat()}\n"
        f"   ID: {metadata.id}"
    )


async def cloud_download(account: str, local_path: str) -> str:
    """
    Download the account's file to a local path.

    Args:
        account: Account name from the accounts config
        local_path: Where to write the content. Parent directories are created.
    """
    try:
        manager = _manager(account)
        data = await manager.download()
    except (KeyError, ValueError, CloudFilesError) as e:
        logger.error(f"Download failed for {account}: {e}")
        return _describe_error(account, e)

    if data is None:
        return f"📭 {manager.file_name} does not exist yet"

    target = Path(local_path)
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
    except OSError as e:
        logger.error(f"Could not write {target}: {e}")
        return f"❌ Could not write {target}: {e}"

    return f"✅ Downloaded: {manager.file_name} → {target} ({len(data)} bytes)"


async def cloud_upload(account: str, local_path: str) -> str:
    """
    Upload a local file as the account's file.

    Args:
        account: Account name from the accounts config
        local_path: File to upload
    """
    source = Path(local_path)
    if not source.is_file():
        return f"❌ File does not exist: {local_path}"

    try:
        manager = _manager(account)
        metadata = await manager.upload(source.read_bytes())
    except (KeyError, ValueError, CloudFilesError) as e:
        logger.error(f"Upload failed for {account}: {e}")
        return _describe_error(account, e)

    return f"✅ Uploaded: {source} → {manager.file_name} ({metadata.size:.0f} bytes)"


# =============================================================================
# SESSION TOOLS
# =============================================================================
def cloud_unlink(account: str) -> str:
    """
    Forget the local session for an account. Server-side grants remain.

    Args:
        account: Account name from the accounts config
    """
    try:
        manager = _manager(account)
    except (KeyError, ValueError) as e:
        return _describe_error(account, e)

    manager.unlink()
    return f"✅ Unlinked: {account}"


TOOLS = [
    cloud_accounts,
    cloud_status,
    cloud_fetch,
    cloud_download,
    cloud_upload,
    cloud_unlink,
]

for _tool in TOOLS:
    mcp.add_tool(Tool.from_function(
        fn=_tool,
        name=_tool.__name__,
        description=_tool.__doc__.strip().split("\n")[0]
    ))


# =============================================================================
# MAIN
# =============================================================================
def main() -> None:
    mcp.run(transport="http", host="0.0.0.0", port=8000)


if __name__ == "__main__":
    main()
