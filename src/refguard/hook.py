"""Update hook adapter: turns a Decision into the hook's exit contract.

git runs ``hooks/update <ref> <old> <new>`` once per ref with the repository
as working directory. Exit 0 lets the ref update proceed; anything else
vetoes it and the stderr text is shown to the pusher.
"""

from __future__ import annotations

from pathlib import Path

from refguard.config import GitConfigProvider, Settings, get_settings, load_policy
from refguard.errors import CollaboratorFailure
from refguard.git_store import GitObjectStore
from refguard.logger import logger
from refguard.reporter import Reporter
from refguard.types import Decision, RefUpdateRequest
from refguard.validator import evaluate

EXIT_ACCEPT = 0
EXIT_REJECT = 1


def check_update(
    request: RefUpdateRequest,
    *,
    settings: Settings | None = None,
    git_dir: Path | None = None,
) -> Decision:
    """Load policy from git config and evaluate one ref update against the repo."""
    s = settings or get_settings()
    if s.bypass:
        logger.warning("bypassing ref policy", ref=request.ref_name)
        return Decision.accept()

    provider = GitConfigProvider(s.git.config_section, git_dir=git_dir, timeout=s.git.timeout)
    try:
        policy = load_policy(provider)
    except CollaboratorFailure as exc:
        logger.error("cannot load ref policy", error=str(exc))
        return Decision.reject(f"cannot load ref policy: {exc}")

    store = GitObjectStore(git_dir=git_dir, timeout=s.git.timeout)
    return evaluate(request, policy, store)


def run_hook(
    args: list[str],
    *,
    settings: Settings | None = None,
    git_dir: Path | None = None,
    reporter: Reporter | None = None,
) -> int:
    """Evaluate the update named by the hook's positional args; return the exit code."""
    reporter = reporter or Reporter()
    try:
        request = RefUpdateRequest.from_args(args)
    except ValueError as exc:
        reporter.report(f"usage: refguard check <ref> <old> <new> ({exc})")
        return EXIT_REJECT

    decision = check_update(request, settings=settings, git_dir=git_dir)
    if decision.accepted:
        return EXIT_ACCEPT

    reporter.report(decision.message or "update rejected", decision.hint)
    return EXIT_REJECT
