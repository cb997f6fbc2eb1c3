"""Tests for the update hook adapter: exit codes, stderr text, fail-closed paths."""

from __future__ import annotations

import io
from unittest.mock import patch

import pytest
from conftest import git, make_settings

from refguard.config import GitConfig
from refguard.hook import EXIT_ACCEPT, EXIT_REJECT, check_update, run_hook
from refguard.reporter import Reporter
from refguard.types import ZERO_SHA, RefUpdateRequest


@pytest.fixture
def out() -> io.StringIO:
    return io.StringIO()


def _run(args, repo, out, **settings):
    return run_hook(
        args,
        settings=make_settings(**settings),
        git_dir=repo.path,
        reporter=Reporter(out),
    )


class TestRunHookAgainstRepository:
    def test_accept_is_silent(self, repo, out):
        code = _run(["refs/heads/topic", ZERO_SHA, repo.commit], repo, out)
        assert code == EXIT_ACCEPT
        assert out.getvalue() == ""

    def test_branch_delete_rejected_by_default(self, repo, out):
        code = _run(["refs/heads/main", repo.commit, ZERO_SHA], repo, out)
        assert code == EXIT_REJECT
        assert out.getvalue() == "*** Deleting a branch is not allowed\n"

    def test_branch_delete_allowed_by_git_config(self, repo, out):
        git(repo.path, "config", "hooks.deletebranch", "true")
        assert _run(["refs/heads/main", repo.commit, ZERO_SHA], repo, out) == EXIT_ACCEPT

    def test_annotated_tag_on_branch_accepted(self, repo, out):
        code = _run(["refs/tags/v1.0", ZERO_SHA, repo.annotated_tag], repo, out)
        assert code == EXIT_ACCEPT

    def test_naked_tag_rejected(self, repo, out):
        code = _run(["refs/tags/v9", ZERO_SHA, repo.dangling_tag], repo, out)
        assert code == EXIT_REJECT
        assert "tag not included in any branch" in out.getvalue()

    def test_lightweight_tag_rejected(self, repo, out):
        code = _run(["refs/tags/v2", ZERO_SHA, repo.commit], repo, out)
        assert code == EXIT_REJECT
        assert "Unannotated tags are not allowed" in out.getvalue()

    def test_regexp_hint_printed(self, repo, out):
        git(repo.path, "config", "hooks.tagnameregexp", r"^v[0-9]+\.[0-9]+$")
        git(repo.path, "config", "hooks.tagnamehint", "Tags look like v1.2")
        code = _run(["refs/tags/release", ZERO_SHA, repo.annotated_tag], repo, out)
        assert code == EXIT_REJECT
        assert out.getvalue() == (
            "*** violates tag naming convention\nhint: Tags look like v1.2\n"
        )

    def test_custom_config_section(self, repo, out):
        git(repo.path, "config", "refguard.deletebranch", "true")
        code = _run(
            ["refs/heads/main", repo.commit, ZERO_SHA],
            repo,
            out,
            git=GitConfig(config_section="refguard"),
        )
        assert code == EXIT_ACCEPT

    def test_unknown_namespace(self, repo, out):
        code = _run(["refs/notes/commits", ZERO_SHA, repo.commit], repo, out)
        assert code == EXIT_REJECT
        assert out.getvalue() == "*** unknown type of update\n"

    def test_missing_object_fails_closed(self, repo, out):
        code = _run(["refs/tags/v3", ZERO_SHA, "1" * 40], repo, out)
        assert code == EXIT_REJECT
        assert "cannot determine object type" in out.getvalue()

    def test_broken_policy_fails_closed(self, repo, out):
        git(repo.path, "config", "hooks.tagnameregexp", "v[0-9")
        code = _run(["refs/heads/topic", ZERO_SHA, repo.commit], repo, out)
        assert code == EXIT_REJECT
        assert "cannot load ref policy" in out.getvalue()


class TestRunHookArguments:
    @pytest.mark.parametrize(
        "args",
        [
            [],
            ["refs/heads/main", ZERO_SHA],
            ["refs/heads/main", ZERO_SHA, ZERO_SHA],
            ["", "a" * 40, "b" * 40],
        ],
    )
    def test_malformed_invocation_rejected(self, args, out, tmp_path):
        with patch("refguard.hook.check_update") as check:
            code = run_hook(args, settings=make_settings(), reporter=Reporter(out))
        assert code == EXIT_REJECT
        assert out.getvalue().startswith("*** usage: refguard check")
        check.assert_not_called()


class TestBypass:
    def test_bypass_accepts_without_git(self):
        req = RefUpdateRequest("refs/heads/main", "a" * 40, ZERO_SHA)
        with patch("refguard.hook.load_policy") as load, patch("refguard.hook.evaluate") as ev:
            decision = check_update(req, settings=make_settings(bypass=True))
        assert decision.accepted
        load.assert_not_called()
        ev.assert_not_called()

    def test_uses_settings_singleton_by_default(self, monkeypatch):
        monkeypatch.setattr("refguard.config._settings", make_settings(bypass=True))
        req = RefUpdateRequest("refs/notes/x", "a" * 40, "b" * 40)
        assert check_update(req).accepted


class TestReporter:
    def test_multiline_hint(self, out):
        Reporter(out).report("bad name", "first\nsecond")
        assert out.getvalue() == "*** bad name\nhint: first\nhint: second\n"

    def test_defaults_to_stderr(self, capsys):
        Reporter().report("nope")
        assert capsys.readouterr().err == "*** nope\n"
