"""Environment configuration helpers."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping

from .exceptions import MissingEnvError, ValidationError

IDENTITY_ENV = "GITFLOW_GITHUB_USER"
FALLBACK_IDENTITY_ENV = "USER"
FIX_FORK_URLS_ENV = "GITFLOW_FIX_FORK_URLS"
GITHUB_TOKEN_ENV = "GITHUB_TOKEN"
GH_BINARY_ENV = "GITFLOW_GH"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"", "0", "false", "no", "off"}


@dataclass(slots=True)
class Settings:
    """Per-invocation settings resolved once from the environment."""

    identity: str = ""
    fix_fork_urls: bool = False
    github_token: str | None = None
    gh_binary: str = "gh"

    def require_identity(self) -> str:
        if not self.identity:
            raise MissingEnvError(
                f"Cannot determine your GitHub identity. Export {IDENTITY_ENV} "
                f"(or {FALLBACK_IDENTITY_ENV}) before running the CLI."
            )
        return self.identity


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    env = os.environ if environ is None else environ
    identity = env.get(IDENTITY_ENV) or env.get(FALLBACK_IDENTITY_ENV) or ""
    return Settings(
        identity=identity.strip(),
        fix_fork_urls=_parse_bool(FIX_FORK_URLS_ENV, env.get(FIX_FORK_URLS_ENV, "")),
        github_token=env.get(GITHUB_TOKEN_ENV) or None,
        gh_binary=env.get(GH_BINARY_ENV) or "gh",
    )


def _parse_bool(var_name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValidationError(f"Environment variable {var_name} must be a boolean (true/false), got {raw!r}.")


__all__ = ["Settings", "load_settings"]
