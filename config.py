"""Shared configuration constants for wpsync.

Centralizes defaults used by modules. Project-specific paths come from
composer.json (extra/config sections); these are only the fallbacks.
"""

import os

WP_CLI_PATH = os.environ.get("WP_CLI_PATH", "")
WP_TIMEOUT = int(os.environ.get("WP_TIMEOUT", "600"))  # seconds
HTTP_TIMEOUT = int(os.environ.get("WPSYNC_HTTP_TIMEOUT", "30"))  # seconds

PACKAGE_VENDOR_PREFIX = "wpackagist"

INSTALL_DIR_KEY = "wordpress-install-dir"
CONTENT_DIR_KEY = "wordpress-content-dir"
DEFAULT_INSTALL_DIR = "wordpress"
DEFAULT_CONTENT_DIR = "content"
DEFAULT_VENDOR_DIR = "vendor"
DEFAULT_BIN_DIR = "vendor/bin"
MANIFEST_FILE = "composer.json"
INSTALLED_FILE = "composer/installed.json"  # relative to vendor dir
UPLOADS_DIR = "uploads"

HIDDEN_PREFIX = "."

LOG_DIR = os.environ.get("WPSYNC_LOG_DIR", "")
CONSOLE_LOG_LEVEL = os.environ.get("WPSYNC_CONSOLE_LEVEL", "INFO")
RUN_ID_ENV = "WPSYNC_RID"
