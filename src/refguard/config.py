"""Configuration: ambient Settings plus the per-push ref policy.

Settings control how refguard itself runs (git timeout, which git config
section holds the policy, emergency bypass). They come from pydantic
BaseSettings with a TOML file and environment sources::

    Priority (highest wins): init args > env vars > .env > refguard.toml

Environment variables use the ``REFGUARD_`` prefix and ``__`` as the nested
delimiter (e.g. ``REFGUARD_GIT__TIMEOUT=10``). refguard.toml is looked up in
the working directory, which is the repository's GIT_DIR when run as a hook.

The ref policy itself lives in git config (``hooks.createtag`` etc.) and is
loaded fresh for every invocation through a ConfigProvider::

    from refguard.config import GitConfigProvider, load_policy

    policy = load_policy(GitConfigProvider())
"""

from __future__ import annotations

import re
import subprocess
from collections.abc import Mapping
from pathlib import Path
from typing import Protocol

from pydantic import BaseModel, ValidationError, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    TomlConfigSettingsSource,
)

from refguard.errors import CollaboratorFailure
from refguard.git_store import run_git

# ---------------------------------------------------------------------------
# Ambient settings
# ---------------------------------------------------------------------------


class _StrictModel(BaseModel):
    """Base for config sub-models: reject unknown keys so typos fail loudly."""

    model_config = {"extra": "forbid"}


class GitConfig(_StrictModel):
    timeout: float = 30.0  # seconds per git subprocess
    config_section: str = "hooks"  # git config section holding the policy keys

    @field_validator("config_section")
    @classmethod
    def strip_section(cls, v: str) -> str:
        v = v.strip().rstrip(".")
        if not v:
            raise ValueError("config_section must not be empty")
        return v


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        toml_file="refguard.toml",
        env_file=".env",
        env_prefix="REFGUARD_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    git: GitConfig = GitConfig()
    # Accept every update without evaluation. For repository maintenance only.
    bypass: bool = False

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Priority: init > env vars > .env > refguard.toml > file secrets."""
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            TomlConfigSettingsSource(settings_cls),
            file_secret_settings,
        )


_settings: Settings | None = None


def get_settings() -> Settings:
    """Lazy cached singleton."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Clear the cached singleton (for tests)."""
    global _settings
    _settings = None


# ---------------------------------------------------------------------------
# Ref policy
# ---------------------------------------------------------------------------


class PolicyConfig(BaseModel):
    """Administrator policy for one invocation. Empty regexps mean no constraint."""

    model_config = {"extra": "forbid", "frozen": True}

    allow_unannotated_tag: bool = False
    allow_create_tag: bool = True
    allow_modify_tag: bool = True
    allow_delete_tag: bool = False
    allow_create_branch: bool = True
    allow_delete_branch: bool = False
    allow_naked_tag: bool = False
    tag_name_regexp: str = ""
    tag_name_hint: str = ""
    branch_name_regexp: str = ""
    branch_name_hint: str = ""

    @field_validator("tag_name_regexp", "branch_name_regexp")
    @classmethod
    def must_compile(cls, v: str) -> str:
        if v:
            try:
                re.compile(v)
            except re.error as exc:
                raise ValueError(f"invalid regular expression {v!r}: {exc}") from exc
        return v


# git config key -> (PolicyConfig field, kind)
POLICY_KEYS: dict[str, tuple[str, type]] = {
    "unannotatedtag": ("allow_unannotated_tag", bool),
    "createtag": ("allow_create_tag", bool),
    "modifytag": ("allow_modify_tag", bool),
    "deletetag": ("allow_delete_tag", bool),
    "createbranch": ("allow_create_branch", bool),
    "deletebranch": ("allow_delete_branch", bool),
    "nakedtag": ("allow_naked_tag", bool),
    "tagnameregexp": ("tag_name_regexp", str),
    "tagnamehint": ("tag_name_hint", str),
    "branchnameregexp": ("branch_name_regexp", str),
    "branchnamehint": ("branch_name_hint", str),
}


class ConfigProvider(Protocol):
    def get_bool(self, key: str, default: bool) -> bool: ...

    def get_str(self, key: str, default: str) -> str: ...


_TRUE_WORDS = frozenset({"true", "yes", "on"})
_FALSE_WORDS = frozenset({"false", "no", "off", ""})


def parse_git_bool(value: str) -> bool:
    """Parse a boolean the way `git config --type=bool` does."""
    v = value.strip().lower()
    if v in _TRUE_WORDS:
        return True
    if v in _FALSE_WORDS:
        return False
    try:
        return int(v, 0) != 0
    except ValueError:
        raise ValueError(f"bad boolean config value {value!r}") from None


class MappingConfigProvider:
    """Serves policy keys from a plain dict (tests, ad-hoc overrides)."""

    def __init__(self, values: Mapping[str, str | bool] | None = None) -> None:
        self._values = dict(values or {})

    def get_bool(self, key: str, default: bool) -> bool:
        if key not in self._values:
            return default
        value = self._values[key]
        if isinstance(value, bool):
            return value
        try:
            return parse_git_bool(value)
        except ValueError as exc:
            raise CollaboratorFailure(f"{key}: {exc}") from exc

    def get_str(self, key: str, default: str) -> str:
        value = self._values.get(key, default)
        return str(value)


class GitConfigProvider:
    """Reads ``<section>.<key>`` through `git config`.

    Exit status 1 means the key is unset and yields the default; any other
    failure (an unparsable boolean exits 128) raises CollaboratorFailure.
    """

    def __init__(
        self,
        section: str = "hooks",
        git_dir: Path | None = None,
        timeout: float = 30.0,
    ) -> None:
        self._section = section
        self._git_dir = git_dir
        self._timeout = timeout

    def _get(self, key: str, *type_args: str) -> str | None:
        name = f"{self._section}.{key}"
        try:
            result = run_git(
                "config", *type_args, "--get", name, cwd=self._git_dir, timeout=self._timeout
            )
        except (OSError, subprocess.SubprocessError) as exc:
            raise CollaboratorFailure(f"git config {name}: {exc}") from exc
        if result.returncode == 1:
            return None
        if result.returncode != 0:
            raise CollaboratorFailure(
                f"git config {name} failed (exit {result.returncode}): {result.stderr.strip()}"
            )
        return result.stdout.rstrip("\n")

    def get_bool(self, key: str, default: bool) -> bool:
        value = self._get(key, "--type=bool")
        return default if value is None else value == "true"

    def get_str(self, key: str, default: str) -> str:
        value = self._get(key)
        return default if value is None else value


def load_policy(provider: ConfigProvider) -> PolicyConfig:
    """Read every policy key through provider, applying PolicyConfig defaults."""
    defaults = PolicyConfig()
    values: dict[str, bool | str] = {}
    for key, (field, kind) in POLICY_KEYS.items():
        default = getattr(defaults, field)
        if kind is bool:
            values[field] = provider.get_bool(key, default)
        else:
            values[field] = provider.get_str(key, default)
    try:
        return PolicyConfig(**values)
    except ValidationError as exc:
        raise CollaboratorFailure(f"invalid ref policy: {exc}") from exc
