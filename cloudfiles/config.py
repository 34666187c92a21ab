"""
Shared configuration constants for cloudfiles.

Import from here to avoid duplication across the adapters, the CLI and the
MCP server.
"""

import os
from pathlib import Path

# Base paths
CONFIG_DIR = Path(os.getenv("CLOUDFILES_CONFIG_DIR", "/data/config"))

# Account config
ACCOUNTS_FILE = CONFIG_DIR / "cloudfiles_accounts.json"

# Per-provider session tokens
GDRIVE_TOKEN_PATH = CONFIG_DIR / "gdrive_token.json"
DROPBOX_TOKEN_PATH = CONFIG_DIR / "dropbox_token.json"

# Loopback redirect for OAuth consent
OAUTH_REDIRECT_PORT = 8085

# Content type for every upload
BINARY_MIME_TYPE = "application/octet-stream"
