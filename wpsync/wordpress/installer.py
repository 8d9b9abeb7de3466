"""Composer lifecycle hooks and the per-project module synchronization."""

from __future__ import annotations

import logging
import os
import re
import sys
from pathlib import Path
from typing import Any, Callable

from config import MANIFEST_FILE
from wpsync.fsutil import ensure_dir, is_link, list_entries, make_link, remove_path, rename
from wpsync.utils import log, require, status_fail, status_pass
from .cli import WpCli, find_wp_binary
from .manifest import load_manifest, manifest_hash, save_manifest
from .reconcile import Confirm, ModuleReconciler
from .registry import build_registry
from .site import MODULE_TYPES, ModuleDirs, ModuleType, ProjectLayout, module_type_by_key

PACKAGE_RE = re.compile(r"^wpackagist-([^/]+)/(.+)$")


def parse_package_id(package_id: str) -> tuple[str, str] | None:
    """'wpackagist-plugin/akismet' -> ('plugin', 'akismet')."""
    m = PACKAGE_RE.match(package_id.strip().lower())
    if not m:
        return None
    return m.group(1), m.group(2)


# ── confirmation channels ──────────────────────────────────────────────────
def console_confirm(prompt: str, default: bool = True) -> bool:
    if not sys.stdin.isatty():
        log(f"SKIP: no terminal to confirm: {prompt}")
        return False
    hint = "[Y,n]" if default else "[y,N]"
    while True:
        try:
            answer = input(f"{prompt} {hint} ").strip().lower()
        except EOFError:
            return False
        if not answer:
            return default
        if answer in ("y", "yes"):
            return True
        if answer in ("n", "no"):
            return False


def always_confirm(prompt: str, default: bool = True) -> bool:
    log(f"AUTO: {prompt} -> yes")
    return True


# ── content directory wiring ───────────────────────────────────────────────
def adopt_content_dir(src: Path, project: Path) -> bool:
    """Move a real WordPress content directory into the project.

    Returns True when something was moved, i.e. the project directory is
    freshly populated and WordPress has not yet seen it.
    """
    if not src.is_dir() or is_link(src):
        return False
    if not project.exists() and not is_link(project):
        return rename(src, project)
    # project side already exists: bring over what it lacks, drop the rest
    if not ensure_dir(project):
        return False
    moved = 0
    stuck: list[str] = []
    for entry in list_entries(src):
        target = project / entry.name
        if target.exists() or is_link(target):
            logging.warning("%s already exists in project, dropping %s", entry.name, entry.path)
            if not remove_path(entry.path):
                stuck.append(entry.name)
            continue
        if rename(entry.path, target):
            moved += 1
        else:
            stuck.append(entry.name)
    if stuck:
        # src stays a real directory so the next pass retries
        logging.warning("%s is kept, could not move: %s", src, ", ".join(stuck))
        return moved > 0
    remove_path(src)
    return True


def link_content_dir(src: Path, project: Path) -> bool:
    if is_link(src):
        return True
    if not ensure_dir(project):
        return False
    return make_link(src, project)


def sync_uploads(layout: ProjectLayout) -> bool:
    src = layout.uploads_src
    dest = layout.uploads_project
    adopt_content_dir(src, dest)
    return link_content_dir(src, dest)


class HookSession:
    """State shared by the hooks of one Composer run."""

    def __init__(
        self,
        root: Path | str,
        confirm: Confirm | None = None,
        runner: Any = None,
        registry_factory: Callable[..., Any] | None = None,
        http_session: Any = None,
    ):
        self.root = Path(os.path.abspath(root))
        self.confirm = confirm
        self.runner = runner
        self.registry_factory = registry_factory or build_registry
        self.http_session = http_session
        self.new_packages: dict[str, set[str]] = {}
        self.removed_packages: dict[str, set[str]] = {}

    @property
    def manifest_path(self) -> Path:
        return self.root / MANIFEST_FILE

    def layout(self, manifest: dict | None = None) -> ProjectLayout:
        if manifest is None:
            manifest = load_manifest(self.manifest_path)
        return ProjectLayout.from_manifest(self.root, manifest)

    def _runner(self, layout: ProjectLayout):
        if self.runner is None:
            self.runner = WpCli(layout.wordpress_root, find_wp_binary(layout.bin_path))
        return self.runner

    # ── hooks ──────────────────────────────────────────────────────────────
    def _record(self, package_id: str, bucket: dict[str, set[str]]) -> tuple[str, str] | None:
        parsed = parse_package_id(package_id)
        if parsed is None:
            return None
        kind, module = parsed
        bucket.setdefault(kind, set()).add(module)
        return parsed

    def on_pre_package_install(self, package_id: str) -> bool:
        return self._record(package_id, self.new_packages) is not None

    def on_pre_package_uninstall(self, package_id: str) -> bool:
        parsed = self._record(package_id, self.removed_packages)
        if parsed is None:
            return False
        kind, module = parsed
        module_type = module_type_by_key(kind)
        if not require(module_type is not None, f"unknown module type {kind} of {package_id}"):
            return False
        # once Composer deletes the package the link would dangle
        link = self.layout().module_dirs(module_type).project / module
        if not is_link(link):
            return True
        return remove_path(link)

    def on_post_install(self, creating_project: bool = False) -> bool:
        if creating_project:
            log("SKIP: post-install while creating project; create-project handles modules")
            return True
        return self.handle_wordpress_modules()

    def on_post_update(self) -> bool:
        return self.handle_wordpress_modules()

    def on_create_project(self) -> bool:
        return self.handle_wordpress_modules()

    # ── synchronization ────────────────────────────────────────────────────
    def _sync_type(self, reconciler: ModuleReconciler, module_type: ModuleType, dirs: ModuleDirs, manifest: dict) -> bool:
        fresh = adopt_content_dir(dirs.src, dirs.project)
        result = reconciler.reconcile(module_type, manifest, fresh)
        if not result:
            status_fail(f"WordPress {module_type.name}s are not synchronized ({result.failure.value})")
        link_content_dir(dirs.src, dirs.project)
        return result.ok

    def handle_wordpress_modules(self) -> bool:
        manifest = load_manifest(self.manifest_path)
        if not require(
            manifest is not None,
            f"{MANIFEST_FILE} is either missing or not valid, skipping WordPress modules configuration",
            "warning",
        ):
            return False
        layout = self.layout(manifest)
        runner = self._runner(layout)
        if not runner.is_installed():
            logging.info("WordPress modules handling is skipped because WordPress itself is not installed yet")
            return True

        config_hash = manifest_hash(manifest)
        registry = self.registry_factory(layout.installed_json, manifest, session=self.http_session)
        reconciler = ModuleReconciler(layout, runner, registry, self.confirm, self.new_packages, self.removed_packages)
        ok = True
        for module_type in MODULE_TYPES:
            dirs = layout.module_dirs(module_type)
            ok = self._sync_type(reconciler, module_type, dirs, manifest) and ok

        if manifest_hash(manifest) != config_hash:
            if save_manifest(layout.manifest_path, manifest):
                logging.info("Composer configuration is updated to include WordPress modules updates")
            else:
                logging.error("Failed to update Composer configuration file")
                ok = False

        sync_uploads(layout)
        if ok:
            status_pass("WordPress modules synchronized")
        return ok
