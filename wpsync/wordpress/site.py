"""Project layout, module type descriptors and module state queries.

- ModuleType / MODULE_TYPES: immutable plugin/theme descriptors.
- ProjectLayout: directories resolved from composer.json extra/config.
- discover_modules: real module directories inside a directory.
- visible_modules: modules WordPress itself reports through WP-CLI.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

from config import (
    CONTENT_DIR_KEY,
    DEFAULT_BIN_DIR,
    DEFAULT_CONTENT_DIR,
    DEFAULT_INSTALL_DIR,
    DEFAULT_VENDOR_DIR,
    INSTALL_DIR_KEY,
    INSTALLED_FILE,
    MANIFEST_FILE,
    PACKAGE_VENDOR_PREFIX,
    UPLOADS_DIR,
)
from wpsync.fsutil import is_hidden, list_entries
from wpsync.utils import parse_json_relaxed
from .wp_json import extract_json_value, parse_table


@dataclass(frozen=True)
class ModuleType:
    key: str
    name: str
    wpcli_command: str
    src_dir: str
    project_dir: str
    custom_dir: str
    composer_dir: str

    @property
    def package_prefix(self) -> str:
        return f"{PACKAGE_VENDOR_PREFIX}-{self.key}/"


PLUGIN = ModuleType(
    key="plugin",
    name="plugin",
    wpcli_command="plugin",
    src_dir="plugins",
    project_dir="plugins",
    custom_dir="wp-plugins",
    composer_dir="composer-plugins",
)
THEME = ModuleType(
    key="theme",
    name="theme",
    wpcli_command="theme",
    src_dir="themes",
    project_dir="themes",
    custom_dir="wp-themes",
    composer_dir="composer-themes",
)
MODULE_TYPES: tuple[ModuleType, ...] = (PLUGIN, THEME)


def module_type_by_key(key: str) -> ModuleType | None:
    for module_type in MODULE_TYPES:
        if module_type.key == key:
            return module_type
    return None


@dataclass(frozen=True)
class ModuleDirs:
    src: Path        # wp-content/<dir> as WordPress sees it
    project: Path    # symlink farm exposed to WordPress
    custom: Path     # modules installed through WordPress itself
    composer: Path   # modules installed by Composer


@dataclass(frozen=True)
class ProjectLayout:
    root: Path
    install_dir: str = DEFAULT_INSTALL_DIR
    content_dir: str = DEFAULT_CONTENT_DIR
    vendor_dir: str = DEFAULT_VENDOR_DIR
    bin_dir: str = DEFAULT_BIN_DIR

    @classmethod
    def from_manifest(cls, root: Path, manifest: Mapping[str, Any] | None) -> "ProjectLayout":
        manifest = manifest or {}
        extra = manifest.get("extra") or {}
        settings = manifest.get("config") or {}
        vendor_dir = str(settings.get("vendor-dir") or DEFAULT_VENDOR_DIR)
        bin_dir = str(settings.get("bin-dir") or f"{vendor_dir}/bin")
        return cls(
            root=Path(os.path.abspath(root)),
            install_dir=str(extra.get(INSTALL_DIR_KEY) or DEFAULT_INSTALL_DIR),
            content_dir=str(extra.get(CONTENT_DIR_KEY) or DEFAULT_CONTENT_DIR),
            vendor_dir=vendor_dir,
            bin_dir=bin_dir,
        )

    @property
    def manifest_path(self) -> Path:
        return self.root / MANIFEST_FILE

    @property
    def wordpress_root(self) -> Path:
        return self.root / self.install_dir

    @property
    def wp_content(self) -> Path:
        return self.wordpress_root / "wp-content"

    @property
    def project_content(self) -> Path:
        return self.root / self.content_dir

    @property
    def vendor_path(self) -> Path:
        return self.root / self.vendor_dir

    @property
    def bin_path(self) -> Path:
        return self.root / self.bin_dir

    @property
    def installed_json(self) -> Path:
        return self.vendor_path / INSTALLED_FILE

    @property
    def uploads_src(self) -> Path:
        return self.wp_content / UPLOADS_DIR

    @property
    def uploads_project(self) -> Path:
        return self.project_content / UPLOADS_DIR

    def module_dirs(self, module_type: ModuleType) -> ModuleDirs:
        return ModuleDirs(
            src=self.wp_content / module_type.src_dir,
            project=self.project_content / module_type.project_dir,
            custom=self.project_content / module_type.custom_dir,
            composer=self.project_content / module_type.composer_dir,
        )


def discover_modules(directory: Path) -> list[str]:
    """Installed modules: real, non-hidden subdirectories of directory.

    Links are skipped, so a rebuilt farm never reports its own entries.
    """
    return [
        entry.name
        for entry in list_entries(directory)
        if entry.is_dir and not entry.is_link and not is_hidden(entry.name)
    ]


def _rows_to_versions(rows: list) -> dict[str, str | None] | None:
    visible: dict[str, str | None] = {}
    for row in rows:
        if not isinstance(row, dict) or "name" not in row:
            return None
        name = str(row.get("name") or "").strip()
        if not name:
            continue
        version = row.get("version")
        version = str(version).strip() if version is not None else ""
        visible[name] = version or None
    return visible


def parse_module_list(lines: list[str]) -> dict[str, str | None] | None:
    """Parse `wp <type> list` output into {name: version}.

    JSON output is preferred; table/column output is accepted when it has
    "name" and "version" headers. Returns None for anything else.
    """
    text = "\n".join(lines).strip()
    if not text:
        return {}
    data = parse_json_relaxed(text, default=None)
    if not isinstance(data, list):
        data = extract_json_value(text)
    if isinstance(data, list):
        return _rows_to_versions(data)
    rows = parse_table(lines, ("name", "version"))
    if rows is None:
        return None
    return _rows_to_versions(rows)


def visible_modules(runner, module_type: ModuleType) -> dict[str, str | None] | None:
    """Ask WordPress which modules of this type it knows, with versions.

    Returns None when the list command fails or its output can't be read.
    """
    result = runner.run(
        module_type.wpcli_command,
        "list",
        {"format": "json", "fields": "name,version"},
    )
    if not result.ok:
        logging.error("Failed to get list of installed WordPress %ss", module_type.name)
        return None
    visible = parse_module_list(result.stdout)
    if visible is None:
        logging.error(
            'Possibly unsupported output of WP CLI "%s list" command, '
            'unable to find "name" and "version" columns',
            module_type.wpcli_command,
        )
    return visible
