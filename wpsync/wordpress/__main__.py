"""Command line entry for the Composer hooks.

usage: wpsync [--project=DIR] [--interactive|--remove-missing]
              [--new-package=ID ...] [--creating-project] <command> [ID]
"""

from __future__ import annotations

import sys

from wpsync.utils import init_logging, status_fail
from .installer import HookSession, always_confirm, console_confirm

USAGE = (
    "usage: [--project=DIR] [--interactive|--remove-missing] [--new-package=ID ...] "
    "[--creating-project] post-install|post-update|create-project|sync|"
    "pre-package-install ID|pre-package-uninstall ID"
)
FLAG_PROJECT = "--project="
FLAG_NEW_PACKAGE = "--new-package="
FLAG_INTERACTIVE = "--interactive"
FLAG_REMOVE_MISSING = "--remove-missing"
FLAG_CREATING = "--creating-project"
KNOWN_SWITCHES = (FLAG_INTERACTIVE, FLAG_REMOVE_MISSING, FLAG_CREATING)


def main(argv: list[str] | None = None) -> int:
    init_logging(None)
    argv = sys.argv[1:] if argv is None else argv
    flags = [a for a in argv if a.startswith("--")]
    args = [a for a in argv if not a.startswith("--")]
    if not args:
        status_fail(USAGE)
        return 1

    project = "."
    new_packages: list[str] = []
    for f in flags:
        if f.startswith(FLAG_PROJECT):
            project = f.split("=", 1)[1]
        elif f.startswith(FLAG_NEW_PACKAGE):
            new_packages.append(f.split("=", 1)[1])
        elif f not in KNOWN_SWITCHES:
            status_fail(f"unknown flag {f}")
            return 1
    if FLAG_INTERACTIVE in flags and FLAG_REMOVE_MISSING in flags:
        status_fail("--interactive and --remove-missing are exclusive")
        return 1

    confirm = None
    if FLAG_INTERACTIVE in flags:
        confirm = console_confirm
    elif FLAG_REMOVE_MISSING in flags:
        confirm = always_confirm

    session = HookSession(project, confirm=confirm)
    for package_id in new_packages:
        session.on_pre_package_install(package_id)

    cmd = args[0]
    if cmd in ("pre-package-install", "pre-package-uninstall"):
        if len(args) < 2:
            status_fail("missing package id")
            return 1
        if cmd == "pre-package-install":
            session.on_pre_package_install(args[1])
        else:
            session.on_pre_package_uninstall(args[1])
        return 0
    if cmd == "post-install":
        session.on_post_install(creating_project=FLAG_CREATING in flags)
        return 0
    if cmd in ("post-update", "sync"):
        session.on_post_update()
        return 0
    if cmd == "create-project":
        session.on_create_project()
        return 0
    status_fail("unknown subcommand")
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
