"""
Cloud Files Setup - Link accounts interactively

Supports both automatic (browser) and manual (headless) consent flows.

Usage:
    cloudfiles status                                  # Show all accounts
    cloudfiles add notes gdrive notes.json -o client_id=... -o client_secret=...
    cloudfiles link notes                              # Link (tries browser)
    cloudfiles link notes --manual                     # Link (headless/manual)
    cloudfiles link notes --force                      # Drop the session and re-link
    cloudfiles unlink notes                            # Forget the local session
"""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import List, Optional

from .errors import CloudFilesError
from .identity import Presenter
from .manager import AccountManager


def _parse_options(pairs: List[str]) -> dict:
    options = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise ValueError(f"Expected key=value, got: {pair}")
        options[key] = value
    return options


def status_all(accounts: AccountManager) -> int:
    """Show link state of every account."""
    print("🔐 Cloud Files Account Status\n")
    print(f"   Config file: {accounts.config_path}")
    print(f"   Exists: {'✅' if accounts.config_path.exists() else '❌'}\n")
    print(accounts.list_accounts())
    return 0


def add_account(accounts: AccountManager, name: str, adapter: str, file_name: str, options: List[str]) -> int:
    try:
        config = _parse_options(options)
    except ValueError as e:
        print(f"❌ {e}")
        return 1

    message = accounts.add_account(name, adapter, file_name, config)
    print(message)
    return 0 if message.startswith("✅") else 1


def link_account(accounts: AccountManager, name: str, force: bool = False, manual: bool = False) -> int:
    """Link an account, running the consent flow only when needed."""
    try:
        manager = accounts.get_manager(name)
    except (KeyError, ValueError) as e:
        print(f"❌ {e}")
        return 1

    if manager.is_linked() and not force:
        print(f"✅ Already linked: {name}")
        return 0

    if force:
        print("🔄 Dropping existing session...")
        manager.unlink()

    mode = "manual" if manual else "browser"
    print(f"🔧 Linking {name} ({manager.provider}, {mode} flow)")

    try:
        asyncio.run(manager.link(Presenter(manual=manual)))
    except (CloudFilesError, ValueError) as e:
        print(f"\n❌ Link failed: {e}")
        return 1

    print(f"\n✅ Linked: {name} → {manager.file_name}")
    return 0


def unlink_account(accounts: AccountManager, name: str) -> int:
    try:
        manager = accounts.get_manager(name)
    except (KeyError, ValueError) as e:
        print(f"❌ {e}")
        return 1

    manager.unlink()
    print(f"✅ Unlinked: {name}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="cloudfiles",
        description="Cloud Files Setup - link Google Drive and Dropbox accounts",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Adapters:
  gdrive    Google Drive appDataFolder (options: client_id, client_secret, api_key, token_path)
  dropbox   Dropbox app folder (options: app_key, token_path)

Examples:
  %(prog)s status                 Show all accounts
  %(prog)s link notes             Link an account (browser)
  %(prog)s link notes --manual    Link an account (headless)
"""
    )
    parser.add_argument("--config", type=Path, help="Accounts config file")
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("status", help="Show all accounts")

    add = sub.add_parser("add", help="Add an account")
    add.add_argument("name")
    add.add_argument("adapter")
    add.add_argument("file_name")
    add.add_argument("-o", "--option", action="append", default=[], help="Adapter option key=value")

    link = sub.add_parser("link", help="Sign in and grant scopes")
    link.add_argument("name")
    link.add_argument("--force", action="store_true", help="Re-link even if already linked")
    link.add_argument("--manual", action="store_true", help="Use manual flow (for headless environments)")

    unlink = sub.add_parser("unlink", help="Forget the local session")
    unlink.add_argument("name")

    args = parser.parse_args(argv)
    accounts = AccountManager(config_path=args.config)

    if args.command == "add":
        return add_account(accounts, args.name, args.adapter, args.file_name, args.option)
    if args.command == "link":
        return link_account(accounts, args.name, args.force, args.manual)
    if args.command == "unlink":
        return unlink_account(accounts, args.name)
    return status_all(accounts)


if __name__ == "__main__":
    sys.exit(main())
