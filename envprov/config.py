from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Literal, Mapping

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from envprov.models import DatabaseBinding, EnvironmentName, EnvironmentProfile
from envprov.services.errors import ConfigurationError

logger = logging.getLogger(__name__)

Backend = Literal["boto3", "aws-cli"]

DEFAULT_TIMEOUT_SEC = 30.0
DEFAULT_TAG_KEY = "Environment"

# Non-secret per-environment defaults. Overridable through the profiles file.
BUILTIN_PROFILES: dict[EnvironmentName, dict[str, str]] = {
    EnvironmentName.LOCAL: {
        "region": "us-east-1",
        "image_id": "ami-0c55b159cbfafe1f0",
        "instance_type": "t2.micro",
    },
    EnvironmentName.TESTING: {
        "region": "us-east-1",
        "image_id": "ami-0c55b159cbfafe1f0",
        "instance_type": "t2.micro",
    },
    EnvironmentName.PRODUCTION: {
        "region": "us-east-1",
        "image_id": "ami-0b5eea76982371e91",
        "instance_type": "t2.large",
    },
}

_PROFILE_KEYS = frozenset({"region", "image_id", "instance_type"})


class Settings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    backend: Backend = "boto3"
    timeout_sec: float = Field(default=DEFAULT_TIMEOUT_SEC, gt=0)
    profiles_file: Path | None = None
    tag_key: str = Field(default=DEFAULT_TAG_KEY, min_length=1)
    aws_profile: str | None = None


def load_settings(
    *,
    backend: str | None = None,
    timeout_sec: float | str | None = None,
    profiles_file: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> Settings:
    """Build settings from explicit overrides, then ENVPROV_* variables, then defaults."""
    env = os.environ if environ is None else environ
    raw: dict[str, Any] = {
        "backend": backend or env.get("ENVPROV_BACKEND"),
        "timeout_sec": timeout_sec if timeout_sec is not None else env.get("ENVPROV_TIMEOUT_SEC"),
        "profiles_file": profiles_file or env.get("ENVPROV_PROFILES_FILE"),
        "tag_key": env.get("ENVPROV_TAG_KEY"),
        "aws_profile": env.get("AWS_PROFILE"),
    }
    try:
        return Settings(**{key: value for key, value in raw.items() if value not in (None, "")})
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid settings: {_summarize(exc)}") from exc


def load_profiles(
    path: Path | None = None,
    *,
    environ: Mapping[str, str] | None = None,
) -> dict[EnvironmentName, EnvironmentProfile]:
    """Return the profile table: built-in defaults, file overrides, injected DB bindings."""
    env = os.environ if environ is None else environ
    table = {name: dict(fields) for name, fields in BUILTIN_PROFILES.items()}

    if path is not None:
        for name, overrides in _read_profiles_file(path).items():
            table[name].update(overrides)

    profiles: dict[EnvironmentName, EnvironmentProfile] = {}
    for name, fields in table.items():
        try:
            profiles[name] = EnvironmentProfile(
                name=name,
                database=_database_binding(name, env),
                **fields,
            )
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid profile '{name.value}': {_summarize(exc)}") from exc
    return profiles


def _read_profiles_file(path: Path) -> dict[EnvironmentName, dict[str, str]]:
    logger.debug("Loading profiles file: %s", path)
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigurationError(f"Unable to read profiles file {path}: {exc}") from exc
    try:
        document = yaml.safe_load(content)
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Invalid YAML in profiles file {path}: {exc}") from exc

    if document is None:
        return {}
    if not isinstance(document, dict) or not isinstance(document.get("profiles", {}), dict):
        raise ConfigurationError(f"Profiles file {path} must contain a 'profiles' mapping")

    parsed: dict[EnvironmentName, dict[str, str]] = {}
    for raw_name, fields in (document.get("profiles") or {}).items():
        try:
            name = EnvironmentName(raw_name)
        except ValueError as exc:
            raise ConfigurationError(f"Profiles file {path} names unknown environment '{raw_name}'") from exc
        if not isinstance(fields, dict):
            raise ConfigurationError(f"Profile '{raw_name}' in {path} must be a mapping")
        unknown = sorted(set(fields) - _PROFILE_KEYS)
        if unknown:
            raise ConfigurationError(f"Profile '{raw_name}' in {path} has unknown keys: {', '.join(unknown)}")
        parsed[name] = {key: str(value) for key, value in fields.items()}
    return parsed


def _database_binding(name: EnvironmentName, env: Mapping[str, str]) -> DatabaseBinding | None:
    prefix = f"ENVPROV_{name.value.upper()}_DB"
    url = env.get(f"{prefix}_URL")
    if not url:
        return None
    return DatabaseBinding(
        url=url,
        user=env.get(f"{prefix}_USER"),
        password=env.get(f"{prefix}_PASS"),
    )


def _summarize(exc: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in error['loc']) or 'value'}: {error['msg']}"
        for error in exc.errors()
    )
