"""Package lookup across installed and configured Composer repositories.

- InstalledRepository: packages from vendor/composer/installed.json.
- ArrayRepository: inline "package" repositories from composer.json.
- ComposerRepository: remote "composer" repositories (packages.json,
  v2 metadata-url files, minified or not).
- PackageRegistry: composite search used by the module reconciler.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Mapping
from urllib.parse import urljoin

import requests

from config import HTTP_TIMEOUT
from wpsync.utils import log
from .versions import normalize, parse_stability, satisfies_minimum, version_key

USER_AGENT = "wpsync"


@dataclass(frozen=True)
class Package:
    name: str
    version: str          # normalized, e.g. 3.1.0.0
    pretty_version: str   # as published, e.g. 3.1.0

    @property
    def installed_version(self) -> str:
        return self.version


def package_from_data(data: Mapping[str, Any], name: str | None = None) -> Package | None:
    """Build a Package from a composer metadata entry; None if unusable."""
    pkg_name = str(name or data.get("name") or "").strip().lower()
    pretty = str(data.get("version") or "").strip()
    if not pkg_name or not pretty:
        return None
    normalized = str(data.get("version_normalized") or "").strip()
    if not normalized:
        try:
            normalized = normalize(pretty)
        except ValueError:
            log(f"SKIP: {pkg_name} has unparseable version {pretty}")
            return None
    return Package(pkg_name, normalized, pretty)


class ArrayRepository:
    def __init__(self, packages: Iterable[Package] = ()):
        self._packages = list(packages)

    def get_packages(self) -> list[Package]:
        return list(self._packages)

    def packages_named(self, name: str) -> list[Package]:
        name = name.lower()
        return [p for p in self._packages if p.name == name]


class InstalledRepository(ArrayRepository):
    """Locally installed packages as recorded by Composer."""

    def __init__(self, path: Path):
        super().__init__()
        self.path = Path(path)
        self._loaded = False

    def _load(self) -> None:
        if self._loaded:
            return
        self._loaded = True
        if not self.path.is_file():
            log(f"SKIP: no installed packages file at {self.path}")
            return
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as err:
            logging.warning("Could not read %s: %s", self.path, err)
            return
        # Composer 2 wraps the list in {"packages": [...]}
        if isinstance(data, dict):
            data = data.get("packages", [])
        if not isinstance(data, list):
            return
        for entry in data:
            if not isinstance(entry, dict):
                continue
            package = package_from_data(entry)
            if package is not None:
                self._packages.append(package)

    def get_packages(self) -> list[Package]:
        self._load()
        return super().get_packages()

    def packages_named(self, name: str) -> list[Package]:
        self._load()
        return super().packages_named(name)


def _expand_minified(versions: list) -> list[dict]:
    """Undo composer/2.0 metadata minification (keys carry over)."""
    expanded: list[dict] = []
    current: dict = {}
    for entry in versions:
        if not isinstance(entry, dict):
            continue
        current = dict(current)
        for key, value in entry.items():
            if value == "__unset":
                current.pop(key, None)
            else:
                current[key] = value
        expanded.append(current)
    return expanded


class ComposerRepository:
    """Remote Composer repository (e.g. wpackagist)."""

    def __init__(self, url: str, session: Any = None, timeout: int = HTTP_TIMEOUT):
        self.url = url.rstrip("/") + "/"
        self.timeout = timeout
        self._session = session
        self._root: dict | None = None
        self._cache: dict[str, list[Package]] = {}

    @property
    def session(self):
        if self._session is None:
            self._session = requests.Session()
            self._session.headers["User-Agent"] = USER_AGENT
        return self._session

    def _get_json(self, url: str) -> Any | None:
        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as err:
            logging.warning("Repository request failed %s: %s", url, err)
            return None
        if response.status_code == 404:
            log(f"SKIP: {url} not found")
            return None
        try:
            response.raise_for_status()
            return response.json()
        except (requests.RequestException, ValueError) as err:
            logging.warning("Repository response unusable %s: %s", url, err)
            return None

    def _root_data(self) -> dict:
        if self._root is None:
            data = self._get_json(urljoin(self.url, "packages.json"))
            self._root = data if isinstance(data, dict) else {}
        return self._root

    def _fetch(self, name: str) -> list[Package]:
        root = self._root_data()
        entries: list = []
        metadata_url = root.get("metadata-url")
        if metadata_url:
            # tagged releases and dev branches are published in separate files
            for key in (name, name + "~dev"):
                data = self._get_json(urljoin(self.url, metadata_url.replace("%package%", key)))
                if not isinstance(data, dict):
                    continue
                versions = (data.get("packages") or {}).get(name) or []
                if not isinstance(versions, list):
                    continue
                if data.get("minified") == "composer/2.0":
                    versions = _expand_minified(versions)
                entries.extend(versions)
        else:
            inline = (root.get("packages") or {}).get(name) or []
            # Composer 1 keys inline versions by version string
            entries = list(inline.values()) if isinstance(inline, dict) else inline
        packages = []
        for entry in entries:
            if not isinstance(entry, dict):
                continue
            package = package_from_data(entry, name)
            if package is not None:
                packages.append(package)
        log(f"INFO: {self.url} lists {len(packages)} versions of {name}")
        return packages

    def packages_named(self, name: str) -> list[Package]:
        name = name.lower()
        if name not in self._cache:
            self._cache[name] = self._fetch(name)
        return self._cache[name]


def _best(candidates: list[Package], minimum: str | None) -> Package | None:
    """Prefer stable releases; the closest version above a known minimum,
    the newest one when the installed version is unknown."""
    if not candidates:
        return None

    def rank(package: Package):
        stable = parse_stability(package.version) == "stable"
        key = version_key(package.version)
        # dev branches sort below every numbered version
        ordered = (-1,) if key is None else (0, key)
        return stable, ordered

    if minimum is None:
        return max(candidates, key=rank)
    stable = [p for p in candidates if parse_stability(p.version) == "stable"]
    pool = stable or candidates
    return min(pool, key=lambda p: version_key(p.version))


class PackageRegistry:
    """Installed packages plus every configured repository."""

    def __init__(self, installed: ArrayRepository, repositories: Iterable[Any] = ()):
        self.installed = installed
        self.repositories = [installed] + list(repositories)

    def installed_packages(self) -> list[Package]:
        return self.installed.get_packages()

    def find_package(self, name: str, minimum: str | None = None) -> Package | None:
        """Best package called name with version >= minimum (normalized)."""
        candidates = []
        for repository in self.repositories:
            for package in repository.packages_named(name):
                if satisfies_minimum(package.version, minimum):
                    candidates.append(package)
        return _best(candidates, minimum)


def _repository_entries(manifest: Mapping[str, Any]) -> list[dict]:
    repos = manifest.get("repositories") or []
    if isinstance(repos, dict):
        repos = list(repos.values())
    return [r for r in repos if isinstance(r, dict)]


def build_registry(installed_json: Path, manifest: Mapping[str, Any], session: Any = None) -> PackageRegistry:
    repositories: list[Any] = []
    for entry in _repository_entries(manifest):
        kind = entry.get("type")
        if kind == "composer" and entry.get("url"):
            repositories.append(ComposerRepository(str(entry["url"]), session=session))
            continue
        if kind == "package":
            defs = entry.get("package")
            defs = defs if isinstance(defs, list) else [defs]
            packages = [package_from_data(d) for d in defs if isinstance(d, dict)]
            repositories.append(ArrayRepository(p for p in packages if p is not None))
            continue
        log(f"SKIP: unsupported repository type {kind!r}")
    return PackageRegistry(InstalledRepository(installed_json), repositories)
