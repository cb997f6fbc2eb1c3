"""Ref update policy: classify one ref update and accept or reject it.

The update is classified once (UpdateKind, RefNamespace, and ObjectKind for
tag updates) and then dispatched per namespace. Each check raises
PolicyViolation on failure, so the first failing check short-circuits and its
message becomes the Decision. Tag content checks always run in this order:

- unannotated gate (lightweight tags only)
- branch containment (naked tags)
- "master" in the tag name
- tag naming regexp

Annotated tags skip the unannotated gate.
"""

from __future__ import annotations

import re

from refguard.config import PolicyConfig
from refguard.errors import CollaboratorFailure, PolicyViolation, UnknownRefNamespace
from refguard.git_store import ObjectStore
from refguard.logger import logger
from refguard.types import (
    HEADS_PREFIX,
    REMOTES_PREFIX,
    TAGS_PREFIX,
    Decision,
    ObjectKind,
    RefNamespace,
    RefUpdateRequest,
    UpdateKind,
    is_zero_id,
)

MSG_UNANNOTATED_TAG = "Unannotated tags are not allowed"
MSG_NAKED_TAG = "tag not included in any branch"
MSG_MASTER_TAG = "Tag names must not include the master branch name"
MSG_TAG_NAME = "violates tag naming convention"
MSG_CREATE_TAG = "Creating tags is not allowed"
MSG_MODIFY_TAG = "Modifying tags is not allowed"
MSG_DELETE_TAG = "Deleting tags is not allowed"
MSG_CREATE_BRANCH = "Creating branches is not allowed"
MSG_BRANCH_NAME = "violates branch naming convention"
MSG_DELETE_BRANCH = "Deleting a branch is not allowed"
MSG_CREATE_TRACKING = "Creating a tracking branch is not allowed"
MSG_DELETE_TRACKING = "Deleting a tracking branch is not allowed"
MSG_UNKNOWN = "unknown type of update"
MSG_OBJECT_TYPE = "cannot determine object type"
MSG_CONTAINMENT = "cannot determine branch containment"

_MASTER = "master"


def classify_update(request: RefUpdateRequest) -> UpdateKind:
    if is_zero_id(request.new_id):
        return UpdateKind.DELETE
    if is_zero_id(request.old_id):
        return UpdateKind.CREATE
    return UpdateKind.MODIFY


def classify_namespace(ref_name: str) -> RefNamespace:
    if ref_name.startswith(TAGS_PREFIX):
        return RefNamespace.TAGS
    if ref_name.startswith(HEADS_PREFIX):
        return RefNamespace.HEADS
    if ref_name.startswith(REMOTES_PREFIX):
        return RefNamespace.REMOTES
    return RefNamespace.OTHER


def _short_name(ref_name: str, prefix: str) -> str:
    return ref_name[len(prefix) :]


class RefUpdateValidator:
    """Evaluates ref updates against one PolicyConfig and one object store.

    Holds no state between calls: evaluating the same request against the
    same store snapshot always gives the same Decision.
    """

    def __init__(self, config: PolicyConfig, store: ObjectStore) -> None:
        self._config = config
        self._store = store

    def evaluate(self, request: RefUpdateRequest) -> Decision:
        kind = classify_update(request)
        namespace = classify_namespace(request.ref_name)
        log = logger.bind(ref=request.ref_name, kind=kind.value, namespace=namespace.value)
        log.debug("evaluating ref update", old=request.old_id, new=request.new_id)

        try:
            match namespace:
                case RefNamespace.TAGS:
                    self._check_tag(request, kind)
                case RefNamespace.HEADS:
                    self._check_branch(request, kind)
                case RefNamespace.REMOTES:
                    self._check_tracking_branch(kind)
                case _:
                    raise UnknownRefNamespace(MSG_UNKNOWN)
        except UnknownRefNamespace as exc:
            log.warning("unknown ref namespace")
            return Decision.reject(exc.message, exc.hint)
        except PolicyViolation as exc:
            log.info("ref update rejected", reason=exc.message)
            return Decision.reject(exc.message, exc.hint)
        except CollaboratorFailure as exc:
            log.info("ref update rejected", reason=str(exc))
            return Decision.reject(exc.args[0] if exc.args else MSG_OBJECT_TYPE)

        log.info("ref update accepted")
        return Decision.accept()

    # --- refs/tags/ ---

    def _check_tag(self, request: RefUpdateRequest, kind: UpdateKind) -> None:
        config = self._config
        if kind is UpdateKind.DELETE:
            if not config.allow_delete_tag:
                raise PolicyViolation(MSG_DELETE_TAG)
            return
        if kind is UpdateKind.CREATE and not config.allow_create_tag:
            raise PolicyViolation(MSG_CREATE_TAG)
        if kind is UpdateKind.MODIFY and not config.allow_modify_tag:
            raise PolicyViolation(MSG_MODIFY_TAG)

        object_kind = self._object_kind(request.new_id)
        if object_kind is ObjectKind.COMMIT:
            if not config.allow_unannotated_tag:
                raise PolicyViolation(MSG_UNANNOTATED_TAG)
        elif object_kind is not ObjectKind.TAG:
            raise PolicyViolation(MSG_UNKNOWN)

        if not config.allow_naked_tag and self._branch_count(request.new_id) < 1:
            raise PolicyViolation(MSG_NAKED_TAG)
        if _MASTER in request.ref_name.lower():
            raise PolicyViolation(MSG_MASTER_TAG)
        tag = _short_name(request.ref_name, TAGS_PREFIX)
        if config.tag_name_regexp and not re.search(config.tag_name_regexp, tag):
            raise PolicyViolation(MSG_TAG_NAME, config.tag_name_hint)

    # --- refs/heads/ ---

    def _check_branch(self, request: RefUpdateRequest, kind: UpdateKind) -> None:
        config = self._config
        match kind:
            case UpdateKind.CREATE:
                if not config.allow_create_branch:
                    raise PolicyViolation(MSG_CREATE_BRANCH)
                branch = _short_name(request.ref_name, HEADS_PREFIX)
                if config.branch_name_regexp and not re.search(config.branch_name_regexp, branch):
                    raise PolicyViolation(MSG_BRANCH_NAME, config.branch_name_hint)
            case UpdateKind.DELETE:
                if not config.allow_delete_branch:
                    raise PolicyViolation(MSG_DELETE_BRANCH)

    # --- refs/remotes/ ---

    def _check_tracking_branch(self, kind: UpdateKind) -> None:
        match kind:
            case UpdateKind.CREATE:
                if not self._config.allow_create_branch:
                    raise PolicyViolation(MSG_CREATE_TRACKING)
            case UpdateKind.DELETE:
                if not self._config.allow_delete_branch:
                    raise PolicyViolation(MSG_DELETE_TRACKING)

    # --- object store ---

    def _object_kind(self, object_id: str) -> ObjectKind:
        try:
            return self._store.type_of(object_id)
        except CollaboratorFailure as exc:
            raise CollaboratorFailure(MSG_OBJECT_TYPE) from exc

    def _branch_count(self, object_id: str) -> int:
        try:
            return self._store.branches_containing(object_id)
        except CollaboratorFailure as exc:
            raise CollaboratorFailure(MSG_CONTAINMENT) from exc


def evaluate(request: RefUpdateRequest, config: PolicyConfig, store: ObjectStore) -> Decision:
    """Accept or reject one ref update under config, querying store as needed."""
    return RefUpdateValidator(config, store).evaluate(request)
