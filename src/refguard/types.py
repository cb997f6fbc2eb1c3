"""Data models for a single ref update evaluation."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

ZERO_SHA = "0" * 40

_ZERO_ID_RE = re.compile(r"0+")

TAGS_PREFIX = "refs/tags/"
HEADS_PREFIX = "refs/heads/"
REMOTES_PREFIX = "refs/remotes/"


def is_zero_id(object_id: str) -> bool:
    """True for the all-zero id git passes for a side of the update that does not exist.

    Matches both the 40-char SHA-1 and the 64-char SHA-256 forms.
    """
    return _ZERO_ID_RE.fullmatch(object_id) is not None


class UpdateKind(str, Enum):
    CREATE = "create"
    DELETE = "delete"
    MODIFY = "modify"


class ObjectKind(str, Enum):
    COMMIT = "commit"
    TAG = "tag"
    OTHER = "other"

    @classmethod
    def from_git_type(cls, git_type: str) -> ObjectKind:
        """Map `git cat-file -t` output; trees and blobs become OTHER."""
        try:
            return cls(git_type.strip())
        except ValueError:
            return cls.OTHER


class RefNamespace(str, Enum):
    TAGS = "tags"
    HEADS = "heads"
    REMOTES = "remotes"
    OTHER = "other"


@dataclass(frozen=True)
class RefUpdateRequest:
    """One line of a push: the ref and its value before and after."""

    ref_name: str
    old_id: str
    new_id: str

    def __post_init__(self) -> None:
        if not self.ref_name:
            raise ValueError("ref name must not be empty")
        if is_zero_id(self.old_id) and is_zero_id(self.new_id):
            raise ValueError(f"{self.ref_name}: old and new object ids are both zero")

    @classmethod
    def from_args(cls, args: list[str]) -> RefUpdateRequest:
        """Build from the update hook's positional arguments: ref, old, new."""
        if len(args) != 3:
            raise ValueError(f"expected <ref> <old> <new>, got {len(args)} argument(s)")
        ref_name, old_id, new_id = args
        return cls(ref_name=ref_name, old_id=old_id, new_id=new_id)


@dataclass(frozen=True)
class Decision:
    """Outcome of evaluating a ref update."""

    accepted: bool
    message: str | None = None
    hint: str | None = None

    @classmethod
    def accept(cls) -> Decision:
        return cls(accepted=True)

    @classmethod
    def reject(cls, message: str, hint: str | None = None) -> Decision:
        return cls(accepted=False, message=message, hint=hint or None)
