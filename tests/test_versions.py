from __future__ import annotations

import pytest

from wpsync.wordpress.versions import (
    build_constraint,
    is_dev_branch,
    normalize,
    parse_stability,
    satisfies_minimum,
    version_key,
)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("1.0", "1.0.0.0"),
        ("v2.3.4", "2.3.4.0"),
        ("4.2.3-beta1", "4.2.3.0-beta1"),
        ("1.0.0-RC2", "1.0.0.0-RC2"),
        ("1.0.0+build5", "1.0.0.0"),
        ("trunk", "dev-trunk"),
        ("dev-master", "dev-master"),
        ("1.2.3@stable", "1.2.3.0"),
        ("2010-01-02", "2010.01.02"),
    ],
)
def test_normalize(raw, expected):
    assert normalize(raw) == expected


@pytest.mark.parametrize("raw", ["", "garbage", "not a version"])
def test_normalize_rejects(raw):
    with pytest.raises(ValueError):
        normalize(raw)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("1.0.0", "stable"),
        ("1.0.0-beta2", "beta"),
        ("1.0.0-RC1", "RC"),
        ("1.0.0-alpha", "alpha"),
        ("dev-master", "dev"),
        ("1.0.x-dev", "dev"),
    ],
)
def test_parse_stability(raw, expected):
    assert parse_stability(raw) == expected


def test_version_ordering():
    assert version_key("1.0.0.0-beta1") < version_key("1.0.0.0-RC1") < version_key("1.0.0.0")
    assert version_key("1.10.0.0") > version_key("1.9.0.0")
    assert version_key("dev-trunk") is None
    assert is_dev_branch("9999999-dev")


def test_satisfies_minimum():
    assert satisfies_minimum("3.1.0.0", "3.0.0.0")
    assert satisfies_minimum("3.0.0.0", "3.0.0.0")
    assert not satisfies_minimum("2.9.0.0", "3.0.0.0")
    assert satisfies_minimum("dev-trunk", None)
    assert not satisfies_minimum("dev-trunk", "1.0.0.0")


@pytest.mark.parametrize(
    "version, constraint",
    [
        ("4.2.0", "^4.2"),
        ("4.2.3", "^4.2"),
        ("3.1.0", "^3.1"),
        ("3.1.0.0", "^3.1"),
        ("1.0", "^1.0"),
        ("5", "^5.0"),
        ("4.2.3-beta1", "^4.2.3@beta"),
        ("4.2.0-beta1", "^4.2@beta"),
        ("2.0.0-RC1", "^2.0@RC"),
        ("trunk", "dev-trunk@dev"),
        ("9999999-dev", "dev-trunk@dev"),
    ],
)
def test_build_constraint(version, constraint):
    assert build_constraint(version) == constraint


def test_build_constraint_unparseable():
    assert build_constraint("garbage") is None
