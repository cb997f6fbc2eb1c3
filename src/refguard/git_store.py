"""Read-only access to the repository's object store through the git CLI."""

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Protocol, runtime_checkable

from refguard.errors import CollaboratorFailure
from refguard.logger import logger
from refguard.types import ObjectKind

_SUBPROCESS_TIMEOUT = 30


def run_git(
    *args: str,
    cwd: Path | None = None,
    timeout: float = _SUBPROCESS_TIMEOUT,
) -> subprocess.CompletedProcess[str]:
    """Run a git command with standard timeout and error capture.

    With no cwd the command runs in the process working directory, which is
    the repository's GIT_DIR when git invokes a hook.
    """
    return subprocess.run(
        ["git", *args],
        cwd=str(cwd) if cwd is not None else None,
        capture_output=True,
        text=True,
        timeout=timeout,
    )


class GitCommandError(Exception):
    """Raised when a git command fails."""

    def __init__(self, command: str, stderr: str, returncode: int) -> None:
        self.command = command
        self.stderr = stderr
        self.returncode = returncode
        super().__init__(f"git {command} failed (exit {returncode}): {stderr}")


def require_success(result: subprocess.CompletedProcess[str], command: str) -> str:
    """Assert that a git command succeeded, raising GitCommandError otherwise.

    Returns the stripped stdout on success.
    """
    if result.returncode != 0:
        raise GitCommandError(command, result.stderr.strip(), result.returncode)
    return result.stdout.strip()


@runtime_checkable
class ObjectStore(Protocol):
    """The two object-store queries ref policy needs."""

    def type_of(self, object_id: str) -> ObjectKind: ...

    def branches_containing(self, object_id: str) -> int: ...


class GitObjectStore:
    """ObjectStore backed by `git cat-file` and `git for-each-ref`."""

    def __init__(self, git_dir: Path | None = None, timeout: float = _SUBPROCESS_TIMEOUT) -> None:
        self._git_dir = git_dir
        self._timeout = timeout

    def _git(self, command: str, *args: str) -> str:
        try:
            result = run_git(command, *args, cwd=self._git_dir, timeout=self._timeout)
            return require_success(result, command)
        except (GitCommandError, OSError, subprocess.SubprocessError) as exc:
            logger.warning("object store query failed", command=command, error=str(exc))
            raise CollaboratorFailure(str(exc)) from exc

    def type_of(self, object_id: str) -> ObjectKind:
        return ObjectKind.from_git_type(self._git("cat-file", "-t", object_id))

    def branches_containing(self, object_id: str) -> int:
        """Count branch tips whose history includes object_id.

        --contains peels annotated tags, so a tag object id works as well.
        """
        output = self._git(
            "for-each-ref", "--format=%(refname)", "--contains", object_id, "refs/heads/"
        )
        return len([line for line in output.splitlines() if line.strip()])
