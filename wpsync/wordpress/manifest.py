"""composer.json access: read, content hash, atomic write."""

from __future__ import annotations

import hashlib
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from wpsync.utils import log


def load_manifest(path: Path) -> dict[str, Any] | None:
    """Return the decoded manifest, or None if missing or not a JSON object."""
    if not path.is_file():
        logging.warning("%s is not found", path)
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as err:
        logging.warning("%s is not valid: %s", path, err)
        return None
    if not isinstance(data, dict):
        logging.warning("%s is not a JSON object", path)
        return None
    return data


def manifest_hash(data: dict[str, Any]) -> str:
    blob = json.dumps(data, sort_keys=True, ensure_ascii=False, separators=(",", ":"))
    return hashlib.sha1(blob.encode("utf-8")).hexdigest()


def dump_manifest(data: dict[str, Any]) -> str:
    # composer.json convention: 4-space indent, unescaped unicode and slashes
    return json.dumps(data, indent=4, ensure_ascii=False) + "\n"


def save_manifest(path: Path, data: dict[str, Any]) -> bool:
    tmp_path = None
    try:
        with tempfile.NamedTemporaryFile(
            mode="w", encoding="utf-8", delete=False, dir=str(path.parent), suffix=".tmp"
        ) as tmp:
            tmp_path = tmp.name
            tmp.write(dump_manifest(data))
            tmp.flush()
            os.fsync(tmp.fileno())
        if path.exists():
            os.chmod(tmp_path, path.stat().st_mode)
        os.replace(tmp_path, str(path))
    except OSError as err:
        logging.error("Failed to update %s: %s", path, err)
        if tmp_path and os.path.exists(tmp_path):
            os.unlink(tmp_path)
        return False
    log(f"PASS: Wrote {path}")
    return True


def require_section(data: dict[str, Any]) -> dict[str, str]:
    """The manifest's "require" mapping, created if absent."""
    section = data.get("require")
    if not isinstance(section, dict):
        section = {}
        data["require"] = section
    return section
