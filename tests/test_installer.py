from __future__ import annotations

import io
import json
import logging
import os
import sys

import pytest

from wpsync.wordpress import installer
from wpsync.wordpress.installer import (
    HookSession,
    always_confirm,
    console_confirm,
    parse_package_id,
)

from .helpers.fakes import FakeRunner, make_registry, package
from .helpers.fs import farm, make_module, real_dirs

pytestmark = pytest.mark.skipif(sys.platform == "win32", reason="POSIX symlink semantics")

MANIFEST = {
    "name": "acme/site",
    "extra": {"wordpress-install-dir": "wp", "wordpress-content-dir": "content"},
}


def _project(tmp_path, manifest=None):
    (tmp_path / "composer.json").write_text(json.dumps(manifest or MANIFEST, indent=2), encoding="utf-8")
    wp_content = tmp_path / "wp" / "wp-content"
    make_module(wp_content / "plugins", "akismet")
    make_module(wp_content / "plugins", "hello-custom")
    make_module(wp_content / "themes", "twentyten")
    (wp_content / "uploads" / "2024").mkdir(parents=True)
    return wp_content


def _session(tmp_path, runner, installed=(), available=(), confirm=None):
    def factory(installed_json, manifest, session=None):
        return make_registry(installed, available)

    return HookSession(tmp_path, confirm=confirm, runner=runner, registry_factory=factory)


def test_parse_package_id():
    assert parse_package_id("wpackagist-plugin/akismet") == ("plugin", "akismet")
    assert parse_package_id("wpackagist-theme/astra") == ("theme", "astra")
    assert parse_package_id("composer/installers") is None


def test_first_sync_adopts_wordpress_content(tmp_path):
    wp_content = _project(tmp_path)
    runner = FakeRunner()
    hooks = _session(tmp_path, runner, available=[package("wpackagist-plugin/akismet", "5.3")])

    assert hooks.on_post_update()

    content = tmp_path / "content"
    assert os.path.islink(wp_content / "plugins")
    assert os.path.realpath(wp_content / "plugins") == os.path.realpath(content / "plugins")
    assert os.path.islink(wp_content / "themes")
    assert sorted(farm(content / "plugins")) == ["hello-custom"]
    assert sorted(farm(content / "themes")) == ["twentyten"]
    assert real_dirs(content / "plugins") == []
    assert real_dirs(content / "wp-plugins") == ["hello-custom"]
    assert runner.list_calls() == []

    saved = json.loads((tmp_path / "composer.json").read_text(encoding="utf-8"))
    assert saved["require"] == {"wpackagist-plugin/akismet": "^5.3"}

    assert os.path.islink(wp_content / "uploads")
    assert (content / "uploads" / "2024").is_dir()



def test_adopt_content_dir_merges_into_existing_project(tmp_path, caplog):
    src = tmp_path / "wp-content" / "plugins"
    project = tmp_path / "content" / "plugins"
    make_module(src, "shared")
    make_module(src, "only-copy")
    make_module(project, "shared")

    assert installer.adopt_content_dir(src, project)

    assert not src.exists()
    assert real_dirs(project) == ["only-copy", "shared"]
    assert "shared already exists" in caplog.text


def test_adopt_content_dir_keeps_entries_it_cannot_move(tmp_path, monkeypatch):
    src = tmp_path / "wp-content" / "plugins"
    project = tmp_path / "content" / "plugins"
    make_module(src, "only-copy")
    make_module(project, "existing")
    monkeypatch.setattr(installer, "rename", lambda source, target: False)

    assert not installer.adopt_content_dir(src, project)

    assert real_dirs(src) == ["only-copy"]
    assert (src / "only-copy" / "only-copy.php").is_file()
    assert not os.path.islink(src)
    assert real_dirs(project) == ["existing"]

def test_second_sync_leaves_manifest_file_alone(tmp_path):
    _project(tmp_path)
    runner = FakeRunner(modules={"plugin": {"hello-custom": None}, "theme": {"twentyten": "1.0"}})
    assert _session(tmp_path, runner).on_post_update()
    before = (tmp_path / "composer.json").read_text(encoding="utf-8")

    assert _session(tmp_path, runner).on_post_update()

    assert (tmp_path / "composer.json").read_text(encoding="utf-8") == before
    assert runner.list_calls() == ["plugin", "theme"]
    assert sorted(farm(tmp_path / "content" / "plugins")) == ["akismet", "hello-custom"]


def test_sync_skipped_when_wordpress_not_installed(tmp_path):
    wp_content = _project(tmp_path)
    hooks = _session(tmp_path, FakeRunner(installed=False))

    assert hooks.on_post_update()
    assert not os.path.islink(wp_content / "plugins")
    assert not (tmp_path / "content").exists()


def test_sync_without_manifest(tmp_path):
    runner = FakeRunner()
    assert not _session(tmp_path, runner).handle_wordpress_modules()
    assert runner.calls == []


def test_post_install_skipped_while_creating_project(tmp_path):
    _project(tmp_path)
    runner = FakeRunner()
    assert _session(tmp_path, runner).on_post_install(creating_project=True)
    assert runner.calls == []


def test_conflict_fails_only_that_module_type(tmp_path):
    _project(tmp_path)
    make_module(tmp_path / "content" / "wp-plugins", "dup")
    runner = FakeRunner()
    hooks = _session(tmp_path, runner, installed=[package("wpackagist-plugin/dup", "1.0")])

    assert not hooks.on_create_project()
    assert sorted(farm(tmp_path / "content" / "themes")) == ["twentyten"]


def test_pre_package_install_records_new_modules(tmp_path):
    hooks = HookSession(tmp_path)
    assert hooks.on_pre_package_install("wpackagist-plugin/akismet")
    assert hooks.on_pre_package_install("wpackagist-theme/astra")
    assert not hooks.on_pre_package_install("composer/installers")
    assert hooks.new_packages == {"plugin": {"akismet"}, "theme": {"astra"}}


def test_pre_package_uninstall_drops_link(tmp_path):
    (tmp_path / "composer.json").write_text(json.dumps(MANIFEST), encoding="utf-8")
    storage = make_module(tmp_path / "content" / "composer-plugins", "akismet")
    link = tmp_path / "content" / "plugins" / "akismet"
    link.parent.mkdir(parents=True)
    os.symlink(storage, link)

    hooks = HookSession(tmp_path)
    assert hooks.on_pre_package_uninstall("wpackagist-plugin/akismet")

    assert not os.path.lexists(link)
    assert storage.is_dir()
    assert hooks.removed_packages == {"plugin": {"akismet"}}


def test_just_installed_package_is_not_reported(tmp_path, caplog):
    _project(tmp_path)
    make_module(tmp_path / "content" / "composer-plugins", "fresh")
    runner = FakeRunner(modules={"plugin": {"hello-custom": None}, "theme": {"twentyten": "1.0"}})
    installed = [package("wpackagist-plugin/fresh", "1.0")]
    assert _session(tmp_path, runner, installed=installed).on_post_update()
    caplog.clear()

    hooks = _session(tmp_path, runner, installed=installed)
    hooks.on_pre_package_install("wpackagist-plugin/fresh")
    assert hooks.on_post_update()

    warnings = [r.getMessage() for r in caplog.records if r.levelno >= logging.WARNING]
    assert not any("fresh" in m for m in warnings)
    assert any("akismet" in m for m in warnings)


def test_console_confirm(monkeypatch):
    class Tty(io.StringIO):
        def isatty(self):
            return True

    monkeypatch.setattr(sys, "stdin", Tty())
    answers = iter(["maybe", "n"])
    monkeypatch.setattr("builtins.input", lambda prompt: next(answers))
    assert console_confirm("Remove?") is False

    monkeypatch.setattr("builtins.input", lambda prompt: "")
    assert console_confirm("Remove?") is True
    assert console_confirm("Remove?", default=False) is False


def test_console_confirm_without_terminal(monkeypatch):
    monkeypatch.setattr(sys, "stdin", io.StringIO())
    assert console_confirm("Remove?") is False


def test_always_confirm():
    assert always_confirm("Remove?")
    assert installer.always_confirm("Remove?", default=False)
