"""Composer version strings: normalization, stability, ordering, constraints.

Follows Composer's VersionParser rules closely enough for the versions
WordPress and wpackagist report (x.y.z with optional stability suffixes,
date versions, dev branches).
"""

from __future__ import annotations

import re

DEV_TRUNK = "dev-trunk"
TRUNK_SENTINEL = "9999999-dev"

_MODIFIER = r"[._-]?(?:(stable|beta|b|RC|alpha|a|patch|pl|p)((?:[.-]?\d+)*)?)?([.-]?dev)?"
_CLASSIC_RE = re.compile(r"^v?(\d{1,5})(\.\d+)?(\.\d+)?(\.\d+)?" + _MODIFIER + r"$", re.I)
_DATE_RE = re.compile(r"^v?(\d{4}(?:[.:-]?\d{2}){1,6}(?:[.:-]?\d{1,3})?)" + _MODIFIER + r"$", re.I)
_STABILITY_SUFFIX_RE = re.compile(r"@(?:stable|RC|beta|alpha|dev)$", re.I)
_ALIAS_RE = re.compile(r"^([^,\s]+) +as +([^,\s]+)$")
_BUILD_RE = re.compile(r"^([^,\s+]+)\+\S+$")
_DEV_SUFFIX_RE = re.compile(r"^(.*?)[.-]?dev$", re.I)
_BRANCH_RE = re.compile(r"^v?(\d+)(\.(?:\d+|[xX*]))?(\.(?:\d+|[xX*]))?(\.(?:\d+|[xX*]))?$", re.I)
_PARSE_STABILITY_RE = re.compile(_MODIFIER + r"(?:\+.*)?$", re.I)

_STABILITY_ALIASES = {
    "a": "alpha",
    "alpha": "alpha",
    "b": "beta",
    "beta": "beta",
    "p": "patch",
    "pl": "patch",
    "patch": "patch",
    "rc": "RC",
}
# ordering of pre-release tags within one numeric version
_STABILITY_RANK = {"dev": 0, "alpha": 1, "beta": 2, "RC": 3, "stable": 4, "patch": 5}


def _expand_stability(tag: str) -> str:
    return _STABILITY_ALIASES.get(tag.lower(), tag)


def _normalize_branch(name: str) -> str:
    name = name.strip()
    if name in ("master", "trunk", "default"):
        return "dev-" + name
    m = _BRANCH_RE.match(name)
    if m:
        parts = []
        for i in range(1, 5):
            piece = (m.group(i) or ".x").lstrip(".")
            parts.append("9999999" if piece in ("x", "X", "*") else piece)
        return ".".join(parts) + "-dev"
    return "dev-" + name


def normalize(version: str) -> str:
    """Normalize a version string the way Composer does.

    '4.2' -> '4.2.0.0', '4.2.3-beta1' -> '4.2.3.0-beta1', 'trunk' ->
    'dev-trunk'. Raises ValueError for strings that are not versions.
    """
    version = (version or "").strip()
    if not version:
        raise ValueError("empty version string")
    m = _ALIAS_RE.match(version)
    if m:
        version = m.group(1)
    m = _STABILITY_SUFFIX_RE.search(version)
    if m:
        version = version[: m.start()]
    if version in ("master", "trunk", "default"):
        version = "dev-" + version
    if version.lower().startswith("dev-"):
        return "dev-" + version[4:]
    m = _BUILD_RE.match(version)
    if m:
        version = m.group(1)

    index = None
    m = _CLASSIC_RE.match(version)
    if m:
        version = m.group(1) + "".join(m.group(i) or ".0" for i in (2, 3, 4))
        index = 5
    else:
        m = _DATE_RE.match(version)
        if m:
            version = re.sub(r"\D", ".", m.group(1))
            index = 2
    if m and index is not None:
        tag = m.group(index)
        if tag:
            if tag == "stable":
                return version
            number = m.group(index + 1) or ""
            version += "-" + _expand_stability(tag) + number.lstrip(".-")
        if m.group(index + 2):
            version += "-dev"
        return version

    m = _DEV_SUFFIX_RE.match(version)
    if m:
        branch = _normalize_branch(m.group(1))
        if not branch.startswith("dev-"):
            return branch
    raise ValueError(f"Invalid version string {version!r}")


def parse_stability(version: str) -> str:
    """Return 'stable', 'RC', 'beta', 'alpha' or 'dev' for a version."""
    version = re.sub(r"#.+$", "", version or "")
    if version.startswith("dev-") or version.endswith("-dev"):
        return "dev"
    m = _PARSE_STABILITY_RE.search(version.lower())
    if m is None:
        return "stable"
    if m.group(3):
        return "dev"
    tag = m.group(1)
    if tag in ("beta", "b"):
        return "beta"
    if tag in ("alpha", "a"):
        return "alpha"
    if tag == "rc":
        return "RC"
    return "stable"


def is_dev_branch(normalized: str) -> bool:
    return normalized.startswith("dev-") or normalized == TRUNK_SENTINEL


def version_key(normalized: str) -> tuple | None:
    """Sort key for a normalized numeric version; None for dev branches."""
    if is_dev_branch(normalized):
        return None
    numeric, _, suffix = normalized.partition("-")
    try:
        numbers = tuple(int(p) for p in numeric.split("."))
    except ValueError:
        return None
    tag = "stable"
    tag_number = 0
    if suffix:
        m = re.match(r"([A-Za-z]+)(\d*)", suffix)
        if m:
            tag = _expand_stability(m.group(1)) if m.group(1).lower() != "dev" else "dev"
            tag_number = int(m.group(2) or 0)
        if suffix.endswith("dev"):
            tag = "dev"
    return numbers, _STABILITY_RANK.get(tag, 0), tag_number


def satisfies_minimum(normalized: str, minimum: str | None) -> bool:
    """True if normalized >= minimum (both normalized).

    Without a minimum every version matches; dev branches only match then.
    """
    if minimum is None:
        return True
    key = version_key(normalized)
    floor = version_key(minimum)
    if key is None or floor is None:
        return False
    return key >= floor


def build_constraint(version: str) -> str | None:
    """Build a caret constraint compatible with the given version.

    '4.2.0' -> '^4.2', '4.2.3' -> '^4.2', '4.2.3-beta1' -> '^4.2.3@beta',
    trunk -> 'dev-trunk@dev'. Returns None when the version can't be parsed.
    """
    try:
        normalized = normalize(version)
    except ValueError:
        return None
    stability = parse_stability(normalized)
    if is_dev_branch(normalized):
        constraint = DEV_TRUNK if normalized in (TRUNK_SENTINEL, DEV_TRUNK) else normalized
    else:
        parts = normalized.split("-", 1)[0].split(".")
        while len(parts) > 2 and int(parts[-1]) == 0:
            parts.pop()
        if stability == "stable" and len(parts) > 2:
            parts.pop()
        constraint = "^" + ".".join(parts)
    if stability != "stable":
        constraint += "@" + stability
    return constraint
