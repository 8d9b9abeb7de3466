from __future__ import annotations

import os
import sys

import pytest

from wpsync import fsutil
from wpsync.wordpress.site import discover_modules

pytestmark = pytest.mark.skipif(sys.platform == "win32", reason="POSIX symlink semantics")


def test_make_link_is_relative(tmp_path):
    source = tmp_path / "content" / "wp-plugins" / "acme"
    source.mkdir(parents=True)
    target = tmp_path / "content" / "plugins" / "acme"
    target.parent.mkdir(parents=True)

    assert fsutil.make_link(target, source)
    assert fsutil.is_link(target)
    assert not os.path.isabs(os.readlink(target))
    assert os.path.realpath(target) == os.path.realpath(source)


def test_make_link_refuses_missing_source(tmp_path, caplog):
    target = tmp_path / "link"
    assert not fsutil.make_link(target, tmp_path / "missing")
    assert not os.path.lexists(target)
    assert "source path is not available" in caplog.text


def test_make_link_refuses_existing_target(tmp_path, caplog):
    source = tmp_path / "src"
    source.mkdir()
    target = tmp_path / "taken"
    target.mkdir()
    assert not fsutil.make_link(target, source)
    assert not fsutil.is_link(target)
    assert "target path is already available" in caplog.text


def test_is_link_sees_dangling_links(tmp_path):
    link = tmp_path / "dangling"
    os.symlink(tmp_path / "gone", link)
    assert fsutil.is_link(link)
    assert not fsutil.is_link(tmp_path)
    assert not fsutil.is_link(tmp_path / "missing")


def test_remove_path_keeps_link_target(tmp_path):
    source = tmp_path / "src"
    source.mkdir()
    (source / "keep.txt").write_text("x", encoding="utf-8")
    link = tmp_path / "link"
    os.symlink(source, link)

    assert fsutil.remove_path(link)
    assert not os.path.lexists(link)
    assert (source / "keep.txt").is_file()


def test_remove_path_is_recursive_and_idempotent(tmp_path):
    tree = tmp_path / "tree"
    (tree / "a" / "b").mkdir(parents=True)
    assert fsutil.remove_path(tree)
    assert not tree.exists()
    assert fsutil.remove_path(tree)


def test_rename_creates_parent(tmp_path):
    source = tmp_path / "one"
    source.mkdir()
    target = tmp_path / "deep" / "er" / "two"
    assert fsutil.rename(source, target)
    assert target.is_dir()
    assert not source.exists()


def test_list_entries_reports_links_and_files(tmp_path):
    (tmp_path / "real").mkdir()
    (tmp_path / ".hidden").mkdir()
    (tmp_path / "file.txt").write_text("", encoding="utf-8")
    os.symlink(tmp_path / "real", tmp_path / "linked")

    entries = {e.name: e for e in fsutil.list_entries(tmp_path)}
    assert entries["linked"].is_link and entries["linked"].is_dir
    assert not entries["file.txt"].is_dir
    assert fsutil.list_entries(tmp_path / "missing") == []


def test_ensure_dir(tmp_path):
    path = tmp_path / "x" / "y"
    assert fsutil.ensure_dir(path)
    assert fsutil.ensure_dir(path)
    assert path.is_dir()


def test_discover_modules_skips_links_hidden_and_files(tmp_path):
    (tmp_path / "real").mkdir()
    (tmp_path / ".hidden").mkdir()
    (tmp_path / "index.php").write_text("<?php", encoding="utf-8")
    os.symlink(tmp_path / "real", tmp_path / "linked")

    assert discover_modules(tmp_path) == ["real"]
    assert discover_modules(tmp_path / "missing") == []
