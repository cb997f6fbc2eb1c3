"""Shared test fixtures for refguard."""

from __future__ import annotations

import subprocess
from dataclasses import dataclass
from pathlib import Path

import pytest

from refguard.errors import CollaboratorFailure
from refguard.types import ZERO_SHA, ObjectKind

# ---------------------------------------------------------------------------
# Shared helpers (plain functions, not fixtures; importable by test files)
# ---------------------------------------------------------------------------

SHA_A = "a" * 40
SHA_B = "b" * 40


def make_settings(**overrides):
    """Create a Settings object from pure defaults: no refguard.toml, no env.

    Usage::

        s = make_settings(bypass=True)
        s = make_settings(git=GitConfig(config_section="refguard"))
    """
    from refguard.config import GitConfig, Settings

    defaults = {"git": GitConfig(), "bypass": False}
    defaults.update(overrides)
    return Settings.model_construct(**defaults)


class FakeStore:
    """In-memory ObjectStore: object kinds and branch-containment counts by id."""

    def __init__(
        self,
        kinds: dict[str, ObjectKind] | None = None,
        containing: dict[str, int] | None = None,
        *,
        fail_type_of: bool = False,
        fail_containing: bool = False,
    ) -> None:
        self.kinds = kinds or {}
        self.containing = containing or {}
        self.fail_type_of = fail_type_of
        self.fail_containing = fail_containing
        self.calls: list[tuple[str, str]] = []

    def type_of(self, object_id: str) -> ObjectKind:
        self.calls.append(("type_of", object_id))
        if self.fail_type_of or object_id not in self.kinds:
            raise CollaboratorFailure(f"fatal: Not a valid object name {object_id}")
        return self.kinds[object_id]

    def branches_containing(self, object_id: str) -> int:
        self.calls.append(("branches_containing", object_id))
        if self.fail_containing:
            raise CollaboratorFailure("git for-each-ref failed")
        return self.containing.get(object_id, 0)


def git(cwd: Path, *args: str) -> str:
    result = subprocess.run(
        ["git", "-c", "user.email=test@test.com", "-c", "user.name=Test", *args],
        cwd=str(cwd),
        capture_output=True,
        text=True,
        check=True,
    )
    return result.stdout.strip()


@dataclass
class RepoObjects:
    """A temporary repository and the ids of the objects it contains."""

    path: Path
    commit: str  # tip of main
    tree: str
    annotated_tag: str  # tag object pointing at commit
    dangling_commit: str  # reachable from no branch
    dangling_tag: str  # tag object pointing at dangling_commit
    zero: str = ZERO_SHA


def make_repo(path: Path) -> RepoObjects:
    """Create a repo with one commit on main plus dangling commit/tag objects."""
    path.mkdir(parents=True, exist_ok=True)
    git(path, "init", "--initial-branch=main")
    (path / "README.md").write_text("initial")
    git(path, "add", "README.md")
    git(path, "commit", "-m", "initial commit")

    commit = git(path, "rev-parse", "HEAD")
    tree = git(path, "rev-parse", "HEAD^{tree}")
    dangling_commit = git(path, "commit-tree", tree, "-p", commit, "-m", "dangling")

    git(path, "tag", "-a", "v1.0", "-m", "release", commit)
    annotated_tag = git(path, "rev-parse", "refs/tags/v1.0")
    git(path, "tag", "-a", "orphan", "-m", "orphan", dangling_commit)
    dangling_tag = git(path, "rev-parse", "refs/tags/orphan")

    return RepoObjects(
        path=path,
        commit=commit,
        tree=tree,
        annotated_tag=annotated_tag,
        dangling_commit=dangling_commit,
        dangling_tag=dangling_tag,
    )


# ---------------------------------------------------------------------------
# Autouse fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True, scope="session")
def _clean_git_env():
    """Keep temporary repos isolated from the environment running the tests.

    Hooks (and pre-commit) export GIT_DIR and friends, and the developer's
    global config may define hooks.* keys of its own.
    """
    import os

    for var in ("GIT_INDEX_FILE", "GIT_DIR", "GIT_WORK_TREE"):
        os.environ.pop(var, None)
    os.environ["GIT_CONFIG_GLOBAL"] = os.devnull
    os.environ["GIT_CONFIG_NOSYSTEM"] = "1"


@pytest.fixture(autouse=True)
def reset_settings(monkeypatch):
    """Ensure each test starts with a default Settings singleton."""
    monkeypatch.setattr("refguard.config._settings", make_settings())


# ---------------------------------------------------------------------------
# Reusable fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def repo(tmp_path: Path) -> RepoObjects:
    return make_repo(tmp_path / "repo")
