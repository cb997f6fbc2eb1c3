"""Entry point for `python -m refguard` / `refguard`.

Subcommands:
    refguard check <ref> <old> <new>    Evaluate one ref update (update hook)
    refguard <ref> <old> <new>          Same as check
    refguard install <repo> [--force]   Install the update hook into a repository
    refguard show-policy                Print the effective ref policy
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

_SUBCOMMANDS = frozenset({"check", "install", "show-policy", "-h", "--help"})


def _check(args: argparse.Namespace) -> int:
    from refguard.hook import run_hook

    return run_hook([args.ref, args.old, args.new])


def _install(args: argparse.Namespace) -> int:
    from refguard.install import InstallError, install_hook

    try:
        path = install_hook(Path(args.repo), force=args.force)
    except InstallError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    print(f"Installed {path}")
    return 0


def _show_policy(_args: argparse.Namespace) -> int:
    from refguard.config import POLICY_KEYS, GitConfigProvider, get_settings, load_policy
    from refguard.errors import CollaboratorFailure

    s = get_settings()
    try:
        policy = load_policy(GitConfigProvider(s.git.config_section, timeout=s.git.timeout))
    except CollaboratorFailure as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    for key, (field, _kind) in POLICY_KEYS.items():
        value = getattr(policy, field)
        if isinstance(value, bool):
            value = str(value).lower()
        print(f"{s.git.config_section}.{key} = {value}")
    return 0


def main(argv: list[str] | None = None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)
    # Hooks may call `refguard <ref> <old> <new>` directly
    if argv and argv[0] not in _SUBCOMMANDS:
        argv.insert(0, "check")

    parser = argparse.ArgumentParser(
        prog="refguard",
        description="Server-side git update hook enforcing ref policy",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    check = sub.add_parser("check", help="Evaluate one ref update")
    check.add_argument("ref", help="Ref being updated, e.g. refs/heads/main")
    check.add_argument("old", help="Old object id (all zeros when the ref is created)")
    check.add_argument("new", help="New object id (all zeros when the ref is deleted)")

    install = sub.add_parser("install", help="Install the update hook into a repository")
    install.add_argument("repo", help="Path to the repository (bare or with a work tree)")
    install.add_argument("--force", action="store_true", help="Replace an existing update hook")

    sub.add_parser("show-policy", help="Print the effective ref policy")

    args = parser.parse_args(argv)

    match args.command:
        case "check":
            return _check(args)
        case "install":
            return _install(args)
        case _:
            return _show_policy(args)


if __name__ == "__main__":
    sys.exit(main())
