"""Reconcile WordPress module directories with Composer.

For one module type (plugins or themes) a pass merges three views of the
installed modules:

- Composer packages installed under the "composer" directory,
- custom modules (installed through WordPress) under the "custom" directory,
- real directories WordPress left in the project module directory.

New directories are converted into Composer requirements when a matching
package exists, otherwise they are moved into custom storage. Modules that
WordPress no longer reports are either removed (only through an explicit
confirmation channel) or reported. The pass ends by rebuilding the project
module directory as a farm of links into both storage directories.

The caller owns the manifest: it is edited in place and never written here.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Collection, Mapping

from config import HIDDEN_PREFIX
from wpsync.fsutil import (
    ensure_dir,
    is_hidden,
    is_link,
    list_entries,
    make_link,
    remove_path,
    rename,
)
from .manifest import require_section
from .site import ModuleDirs, ModuleType, ProjectLayout, discover_modules, visible_modules
from .versions import build_constraint, normalize

COMPOSER = "composer"
CUSTOM = "custom"
NEW = "new"

Confirm = Callable[[str, bool], bool]


class FailureKind(Enum):
    CONFLICT = "conflict"
    UNPARSEABLE_OUTPUT = "unparseable-output"


@dataclass
class SyncResult:
    ok: bool
    failure: FailureKind | None = None
    conflicts: list[str] = field(default_factory=list)
    converted: list[str] = field(default_factory=list)
    # real directories left in the project directory because they could not be moved
    kept: list[str] = field(default_factory=list)
    update_suggested: bool = False

    def __bool__(self) -> bool:
        return self.ok


class ModuleReconciler:
    def __init__(
        self,
        layout: ProjectLayout,
        runner: Any,
        registry: Any,
        confirm: Confirm | None = None,
        new_packages: Mapping[str, set[str]] | None = None,
        removed_packages: Mapping[str, set[str]] | None = None,
    ):
        self.layout = layout
        self.runner = runner
        self.registry = registry
        self.confirm = confirm
        # modules Composer installed during this run, keyed by module type
        self.new_packages = new_packages if new_packages is not None else {}
        # modules Composer is uninstalling in this run
        self.removed_packages = removed_packages if removed_packages is not None else {}

    # ── state gathering ────────────────────────────────────────────────────
    def available_modules(self, module_type: ModuleType, dirs: ModuleDirs) -> dict[str, dict[str, str | None]]:
        prefix = module_type.package_prefix
        composer: dict[str, str | None] = {}
        for package in self.registry.installed_packages():
            if package.name.startswith(prefix):
                composer[package.name[len(prefix):]] = package.version
        custom: dict[str, str | None] = {name: None for name in discover_modules(dirs.custom)}
        return {COMPOSER: composer, CUSTOM: custom}

    @staticmethod
    def classify(found: list[str], available: dict[str, dict]) -> dict[str, list[str]]:
        buckets: dict[str, list[str]] = {NEW: [], COMPOSER: [], CUSTOM: []}
        for module in found:
            for origin in (COMPOSER, CUSTOM):
                if module in available[origin]:
                    buckets[origin].append(module)
                    break
            else:
                buckets[NEW].append(module)
        return buckets

    # ── main entry ─────────────────────────────────────────────────────────
    def reconcile(self, module_type: ModuleType, manifest: dict, is_fresh_install: bool) -> SyncResult:
        name = module_type.name
        dirs = self.layout.module_dirs(module_type)

        available = self.available_modules(module_type, dirs)
        conflicts = sorted(set(available[COMPOSER]) & set(available[CUSTOM]))
        if conflicts:
            for module in conflicts:
                logging.error(
                    "WordPress %s %s is available both as Composer package and custom "
                    "WordPress %s. You need to resolve conflict",
                    name, module, name,
                )
            return SyncResult(False, FailureKind.CONFLICT, conflicts=conflicts)

        discovered = self.classify(discover_modules(dirs.project), available)

        visible: dict[str, str | None] = {}
        if not is_fresh_install:
            listed = visible_modules(self.runner, module_type)
            if listed is None:
                return SyncResult(False, FailureKind.UNPARSEABLE_OUTPUT)
            visible = listed

        result = SyncResult(True)
        to_custom = list(discovered[CUSTOM])
        for module in discovered[NEW]:
            try:
                converted = self._convert_new(module_type, dirs, module, manifest, visible, is_fresh_install, result)
            except OSError as err:
                logging.error("WordPress %s %s could not be converted: %s", name, module, err)
                converted = False
            if not converted:
                to_custom.append(module)

        result.kept = self._store_custom(module_type, dirs, to_custom)
        self._check_missing(module_type, dirs, available, manifest, visible, is_fresh_install)

        if result.update_suggested:
            logging.info(
                "Some WordPress %ss are converted into Composer packages, "
                "consider running composer update to install them",
                name,
            )
        self.rebuild_links(dirs, keep=result.kept)
        return result

    # ── new modules ────────────────────────────────────────────────────────
    def _convert_new(
        self,
        module_type: ModuleType,
        dirs: ModuleDirs,
        module: str,
        manifest: dict,
        visible: dict[str, str | None],
        is_fresh_install: bool,
        result: SyncResult,
    ) -> bool:
        """Turn a new module directory into a Composer requirement.

        Returns False when the module has to be kept as a custom module.
        """
        name = module_type.name
        if not is_fresh_install and module not in visible:
            logging.info(
                "WordPress %s %s is found in filesystem but not known by WordPress. "
                "Treating as custom WordPress %s",
                name, module, name,
            )
            return False

        version = None if is_fresh_install else visible.get(module)
        minimum = None
        if version is not None:
            try:
                minimum = normalize(version)
            except ValueError:
                logging.warning(
                    "WordPress %s %s reports unparseable version %s, storing as custom %s",
                    name, module, version, name,
                )
                return False
        label = f"{module} version {version}" if version else module

        package = self.registry.find_package(module_type.package_prefix + module, minimum)
        if package is None or str(package.pretty_version) == "0":
            logging.info(
                "WordPress %s %s is not available as Composer package, storing as custom %s",
                name, label, name,
            )
            return False

        constraint = build_constraint(package.version)
        if constraint is None:
            logging.warning(
                "WordPress %s %s matches %s %s but no version constraint can be built "
                "for it, storing as custom %s",
                name, label, package.name, package.pretty_version, name,
            )
            return False

        require = require_section(manifest)
        if package.name not in require:
            require[package.name] = constraint
            result.converted.append(package.name)
            result.update_suggested = True
            logging.info(
                "WordPress %s %s is converted into Composer package %s with %s version constraint",
                name, label, package.name, constraint,
            )
        remove_path(dirs.project / module)
        return True

    def _store_custom(self, module_type: ModuleType, dirs: ModuleDirs, modules: list[str]) -> list[str]:
        """Move real project directories into custom storage.

        Returns the modules that are still real directories in the project
        directory because they could not be moved.
        """
        name = module_type.name
        kept = []
        for module in modules:
            try:
                stored = self._store_one(name, dirs, module)
            except OSError as err:
                logging.error("WordPress %s %s could not be stored as custom: %s", name, module, err)
                stored = False
            if not stored:
                kept.append(module)
        return kept

    @staticmethod
    def _store_one(name: str, dirs: ModuleDirs, module: str) -> bool:
        current = dirs.custom / module
        new = dirs.project / module
        if not new.is_dir() or is_link(new):
            return True
        if not (current.is_dir() and not is_link(current)):
            if not rename(new, current):
                return False
            logging.info("WordPress %s %s is stored as new custom %s", name, module, name)
            return True

        # the stored copy is set aside until the new one is in place
        previous = dirs.custom / f"{HIDDEN_PREFIX}{module}.previous"
        if not remove_path(previous) or not rename(current, previous):
            return False
        if not rename(new, current):
            rename(previous, current)
            return False
        remove_path(previous)
        logging.info("WordPress %s %s is updated from local copy installed by WordPress", name, module)
        return True

    # ── modules WordPress no longer sees ───────────────────────────────────
    def _check_missing(
        self,
        module_type: ModuleType,
        dirs: ModuleDirs,
        available: dict[str, dict],
        manifest: dict,
        visible: dict[str, str | None],
        is_fresh_install: bool,
    ) -> None:
        if is_fresh_install:
            # nothing has run yet that could report these; the farm is rebuilt below
            for module in sorted(available[COMPOSER]):
                remove_path(dirs.project / module)
            return

        # Composer has just added or is taking away these, WordPress cannot know yet
        settled = self.new_packages.get(module_type.key, set()) | self.removed_packages.get(module_type.key, set())
        for module in sorted(available[COMPOSER]):
            if module in visible or module in settled:
                continue
            self._missing_composer_module(module_type, dirs, module, manifest)
        for module in sorted(available[CUSTOM]):
            if module in visible:
                continue
            self._missing_custom_module(module_type, dirs, module)

    def _missing_composer_module(self, module_type: ModuleType, dirs: ModuleDirs, module: str, manifest: dict) -> None:
        name = module_type.name
        package_id = module_type.package_prefix + module
        if self.confirm is None:
            logging.warning(
                "WordPress %s %s is configured in Composer but not visible for WordPress, "
                "maybe it is deleted from WordPress itself. Review your Composer configuration, "
                'you may want to remove %s package in "require" section',
                name, module, package_id,
            )
            return
        prompt = (
            f"WordPress {name} {module} is configured in Composer but not visible for "
            "WordPress, maybe it is deleted from WordPress itself. "
            "Remove it from Composer configuration?"
        )
        if not self.confirm(prompt, True):
            return
        remove_path(dirs.composer / module)
        require = manifest.get("require")
        if isinstance(require, dict):
            require.pop(package_id, None)
        logging.info("WordPress %s %s is removed from Composer configuration", name, module)

    def _missing_custom_module(self, module_type: ModuleType, dirs: ModuleDirs, module: str) -> None:
        name = module_type.name
        if self.confirm is None:
            logging.warning(
                "Custom WordPress %s %s is available in project but not visible for WordPress, "
                "maybe it is deleted from WordPress itself. You may want to remove it",
                name, module,
            )
            return
        prompt = (
            f"Custom WordPress {name} {module} is available in project but not visible for "
            "WordPress, maybe it is deleted from WordPress itself. Remove it from project?"
        )
        if not self.confirm(prompt, True):
            return
        remove_path(dirs.custom / module)
        logging.info("Custom WordPress %s %s is removed from project", name, module)

    # ── symlink farm ───────────────────────────────────────────────────────
    def rebuild_links(self, dirs: ModuleDirs, keep: Collection[str] = ()) -> None:
        """Replace every module directory entry with a link into storage.

        Names in `keep` are real directories that could not be moved into
        storage; they stay in place so nothing is lost.
        """
        if not ensure_dir(dirs.project):
            return
        for entry in list_entries(dirs.project):
            if is_hidden(entry.name):
                continue
            if entry.name in keep and entry.is_dir and not entry.is_link:
                logging.warning("WordPress module directory %s is kept in place, it could not be moved", entry.path)
                continue
            if entry.is_dir or entry.is_link:
                remove_path(entry.path)
        for storage in (dirs.custom, dirs.composer):
            self._link_modules(storage, dirs, keep)

    @staticmethod
    def _link_modules(storage, dirs: ModuleDirs, keep: Collection[str] = ()) -> None:
        for entry in list_entries(storage):
            if not entry.is_dir or entry.is_link or is_hidden(entry.name):
                continue
            if entry.name in keep:
                continue
            target = dirs.project / entry.name
            if target.exists() or is_link(target):
                remove_path(target)
            make_link(target, entry.path)
