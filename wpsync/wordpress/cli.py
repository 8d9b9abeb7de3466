# cli.py
# Invariants:
# - All WP-CLI access goes through WpCli.run; callers pass a group, a
#   subcommand and a flag map, never a shell string.
# - Every call carries --path=<wordpress root> --quiet --no-color and runs
#   with the WordPress root as cwd.
# - Every call is bounded by WP_TIMEOUT; expiry reports exit code 124.
# - Logs: one PASS/FAIL per call; stderr PHP noise is dropped from logs.

from __future__ import annotations

import logging
import os
import re
import shutil
import subprocess
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

from config import WP_CLI_PATH, WP_TIMEOUT
from wpsync.utils import log, strip_ansi

os.environ.setdefault("WP_CLI_DISABLE_AUTO_CHECK_UPDATE", "1")

EXIT_NOT_FOUND = 127
EXIT_TIMEOUT = 124

# ── Noise filters ───────────────────────────────────────────────────────────────
NOISE_PREFIXES = (
    "PHP Warning:", "PHP Notice:", "PHP Deprecated:",
    "Warning:", "Notice:", "Deprecated:", "PHP:"
)
NOISE_PATTERNS = (
    re.compile(r"^#\d+:"),               # stack frames
    re.compile(r"^'trace'\s*=>"),        # array trace header
)


def _drop_noise_lines(lines: list[str]) -> list[str]:
    out: list[str] = []
    for ln in lines:
        ln = ln.strip()
        if not ln:
            continue
        if any(ln.startswith(p) for p in NOISE_PREFIXES):
            continue
        if any(p.search(ln) for p in NOISE_PATTERNS):
            continue
        out.append(ln)
    return out


def _split_lines(text: str | None) -> list[str]:
    if not text:
        return []
    return strip_ansi(text).splitlines()


@dataclass
class CliResult:
    exit_code: int
    stdout: list[str] = field(default_factory=list)
    stderr: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


def find_wp_binary(bin_dir: Path) -> Path | None:
    """Locate the WP-CLI executable: WP_CLI_PATH, then bin-dir, then PATH."""
    if WP_CLI_PATH:
        return Path(WP_CLI_PATH)
    filename = "wp.bat" if os.name == "nt" else "wp"
    candidate = bin_dir / filename
    if candidate.is_file() and (os.name == "nt" or os.access(candidate, os.X_OK)):
        return candidate
    found = shutil.which("wp")
    if found:
        return Path(found)
    logging.debug("WP CLI binary is not found in %s or on PATH", bin_dir)
    return None


def encode_flags(flags: Mapping[str, Any] | None) -> list[str]:
    """Turn a flag map into argv tokens.

    None/True values become bare switches, False drops the flag, anything
    else becomes --key=value. Keys already starting with '-' are kept.
    """
    out: list[str] = []
    for key, value in (flags or {}).items():
        if value is False:
            continue
        name = key if key.startswith("-") else f"--{key}"
        if value is None or value is True:
            out.append(name)
            continue
        out.append(f"{name}={value}")
    return out


class WpCli:
    """WP-CLI runner bound to one WordPress installation."""

    def __init__(self, wp_root: Path, binary: Path | None, timeout: int = WP_TIMEOUT):
        self.wp_root = Path(wp_root)
        self.binary = binary
        self.timeout = timeout

    def argv(self, group: str, command: str, flags: Mapping[str, Any] | None = None) -> list[str]:
        parts = [str(self.binary), group, command]
        base = {"path": str(self.wp_root), "quiet": None, "no-color": None}
        merged = dict(base)
        merged.update(flags or {})
        return parts + encode_flags(merged)

    def run(self, group: str, command: str, flags: Mapping[str, Any] | None = None) -> CliResult:
        display = f"wp {group} {command}"
        if self.binary is None:
            logging.error("%s: WP CLI binary is not found", display)
            return CliResult(EXIT_NOT_FOUND, [], ["WP CLI binary is not found"])

        args = self.argv(group, command, flags)
        cwd = str(self.wp_root) if self.wp_root.is_dir() else None
        t0 = time.monotonic()
        try:
            proc = subprocess.run(
                args,
                cwd=cwd,
                capture_output=True,
                timeout=self.timeout,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except subprocess.TimeoutExpired:
            dt = time.monotonic() - t0
            logging.error("%s timeout after %.1fs", display, dt)
            return CliResult(EXIT_TIMEOUT, [], [f"timeout after {dt:.1f}s"])
        except OSError as err:
            logging.error("%s could not start: %s", display, err)
            return CliResult(EXIT_NOT_FOUND, [], [str(err)])

        dt = time.monotonic() - t0
        result = CliResult(proc.returncode, _split_lines(proc.stdout), _split_lines(proc.stderr))
        if result.ok:
            log(f"PASS: {display} ({dt:.1f}s)")
            logging.debug("STDOUT: %s", "\n".join(result.stdout))
        else:
            logging.debug(
                "%s exit=%s\nSTDERR: %s",
                display,
                proc.returncode,
                "\n".join(_drop_noise_lines(result.stderr)),
            )
        return result

    def is_installed(self) -> bool:
        return self.run("core", "is-installed").ok
