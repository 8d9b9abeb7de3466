"""Utility helpers kept dependency-free.

- init_logging: configure console + file logging with run-id.
- status_pass/status_fail: concise console status lines (with run-id).
- log: debug-level logger for normal progress lines (file-oriented).
- require: log a SKIP line at the given level when a condition fails.
- parse_json_relaxed: JSON parsing tolerant of CLI noise around it.
"""

import json
import logging
import os
import re
import tempfile
import uuid
from logging.handlers import RotatingFileHandler
from typing import Any

from config import CONSOLE_LOG_LEVEL, LOG_DIR, RUN_ID_ENV


_RUN_ID = ""


def _gen_run_id() -> str:
    return uuid.uuid4().hex[:8]


def _log_file(rid: str) -> str:
    log_dir = LOG_DIR or os.path.join(tempfile.gettempdir(), "wpsync")
    try:
        os.makedirs(log_dir, exist_ok=True)
        return os.path.join(log_dir, f"wpsync-{rid}.log")
    except OSError:
        return os.path.abspath(f"wpsync-{rid}.log")


def init_logging(run_id: str | None = None) -> str:
    """Initialize logging with console + rotating file handlers.

    - Console: terse, CONSOLE_LOG_LEVEL+ (INFO by default).
    - File: DEBUG+, rich format, written to <LOG_DIR>/wpsync-<rid>.log
    Returns the run-id used.
    """
    global _RUN_ID
    if _RUN_ID:
        return _RUN_ID

    rid = run_id or os.environ.get(RUN_ID_ENV) or _gen_run_id()
    _RUN_ID = rid
    logfile = _log_file(rid)

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)

    has_file = False
    for h in root.handlers:
        if isinstance(h, RotatingFileHandler) and getattr(h, "baseFilename", "").endswith(
            os.path.basename(logfile)
        ):
            has_file = True
            break
    if not has_file:
        fh = RotatingFileHandler(logfile, maxBytes=5 * 1024 * 1024, backupCount=3)
        fh.setLevel(logging.DEBUG)
        ffmt = logging.Formatter(
            fmt="%(asctime)s %(levelname)s %(name)s: %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S",
        )
        fh.setFormatter(ffmt)
        root.addHandler(fh)

    console_level = logging.getLevelName(CONSOLE_LOG_LEVEL.upper())
    if not isinstance(console_level, int):
        console_level = logging.INFO
    consoles = [
        h for h in root.handlers
        if isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler)
    ]
    if not consoles:
        ch = logging.StreamHandler()
        ch.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
        root.addHandler(ch)
        consoles = [ch]
    for h in consoles:
        h.setLevel(console_level)

    logging.debug("Logging initialized. run_id=%s file=%s", rid, logfile)
    os.environ[RUN_ID_ENV] = rid
    return rid


def _rid() -> str:
    return _RUN_ID or os.environ.get(RUN_ID_ENV, "--------")


def status_pass(msg: str) -> None:
    print(f"PASS: {msg} [{_rid()}]")


def status_fail(msg: str) -> None:
    print(f"FAIL: {msg} [{_rid()}]", flush=True)


def log(msg: str) -> None:
    # File-oriented normal progress; stays out of console noise.
    logging.debug(msg)


def require(condition: bool, message: str, level: str = "info") -> bool:
    if condition:
        return True

    if level == "error":
        logging.error(f"SKIP: {message}")
    elif level == "warning":
        logging.warning(f"SKIP: {message}")
    else:
        log(f"SKIP: {message}")

    return False


ANSI_RE = re.compile(r"\x1b\[[0-?]*[ -/]*[@-~]")


def strip_ansi(text: str) -> str:
    return ANSI_RE.sub("", text)


def parse_json_relaxed(text: str | None, default: Any) -> Any:
    """Parse JSON with basic tolerance for noise.

    - Strips BOM and ANSI codes
    - Falls back to the substring between the first '[' and last ']',
      then the first '{' and last '}'
    - Returns default on failure
    """
    if text is None:
        return default
    s = strip_ansi(text.lstrip("\ufeff").strip())
    if not s:
        return default
    try:
        return json.loads(s)
    except ValueError:
        pass
    for open_c, close_c in (("[", "]"), ("{", "}")):
        lb = s.find(open_c)
        rb = s.rfind(close_c)
        if lb == -1 or rb <= lb:
            continue
        try:
            return json.loads(s[lb : rb + 1])
        except ValueError:
            continue
    return default
