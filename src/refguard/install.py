"""Install the update hook wrapper into a repository."""

from __future__ import annotations

import shlex
import stat
import sys
from pathlib import Path

from refguard.git_store import require_success, run_git
from refguard.logger import logger

HOOK_NAME = "update"


class InstallError(Exception):
    """Raised when the hook cannot be installed."""


def hook_script(python: str | None = None) -> str:
    """Shell wrapper git runs as hooks/update; pins the interpreter refguard lives in."""
    python = shlex.quote(python or sys.executable)
    return f'#!/bin/sh\nexec {python} -m refguard check "$1" "$2" "$3"\n'


def hooks_dir(repo: Path) -> Path:
    """Resolve the hooks directory, honouring core.hooksPath and bare repos."""
    result = run_git("rev-parse", "--git-path", "hooks", cwd=repo)
    path = Path(require_success(result, "rev-parse --git-path hooks"))
    return path if path.is_absolute() else (repo / path).resolve()


def install_hook(repo: Path, *, force: bool = False, python: str | None = None) -> Path:
    """Write an executable hooks/update into repo and return its path.

    An existing hook with different content is only replaced when force is set.
    """
    if not repo.is_dir():
        raise InstallError(f"{repo} is not a directory")
    target_dir = hooks_dir(repo)
    target = target_dir / HOOK_NAME
    script = hook_script(python)

    if target.exists() and target.read_text() != script and not force:
        raise InstallError(f"{target} already exists (use --force to replace it)")

    target_dir.mkdir(parents=True, exist_ok=True)
    target.write_text(script)
    mode = target.stat().st_mode
    target.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    logger.info("installed update hook", path=str(target))
    return target
