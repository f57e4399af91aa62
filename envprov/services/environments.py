from __future__ import annotations

import logging
from typing import Mapping, Sequence

from envprov.config import load_profiles
from envprov.models import EnvironmentName, EnvironmentProfile, ProvisionRequest
from envprov.services.errors import InvalidArgument, UnknownEnvironment

logger = logging.getLogger(__name__)

VALID_ENVIRONMENTS = tuple(name.value for name in EnvironmentName)


def resolve_profile(
    name: str,
    profiles: Mapping[EnvironmentName, EnvironmentProfile] | None = None,
) -> EnvironmentProfile:
    """Look up the profile for an environment name. Matching is exact."""
    key = check_environment_name(name)
    table = profiles if profiles is not None else load_profiles()
    profile = table.get(key)
    if profile is None:
        raise UnknownEnvironment(f"No profile configured for environment '{name}'")
    return profile


def check_environment_name(name: str) -> EnvironmentName:
    try:
        return EnvironmentName(name)
    except ValueError as exc:
        raise UnknownEnvironment(
            f"Unknown environment '{name}' (expected one of: {', '.join(VALID_ENVIRONMENTS)})"
        ) from exc


def parse_count(value: str | int) -> int:
    if isinstance(value, bool):
        raise InvalidArgument(f"Instance count must be a positive integer, got {value!r}")
    if isinstance(value, int):
        count = value
    else:
        text = value.strip()
        if not (text.isascii() and text.isdigit()):
            raise InvalidArgument(f"Instance count must be a positive integer, got {value!r}")
        count = int(text)
    if count < 1:
        raise InvalidArgument(f"Instance count must be a positive integer, got {value!r}")
    return count


def check_arity(args: Sequence[str]) -> None:
    if len(args) != 2:
        raise InvalidArgument(f"Expected 2 arguments (environment, count), got {len(args)}")


def validate_arguments(args: Sequence[str]) -> tuple[EnvironmentName, int]:
    """Check arity, then the environment name, then the count. Needs no configuration."""
    check_arity(args)
    name, raw_count = args
    return check_environment_name(name), parse_count(raw_count)


def parse_request(
    args: Sequence[str],
    profiles: Mapping[EnvironmentName, EnvironmentProfile] | None = None,
) -> ProvisionRequest:
    name, count = validate_arguments(args)
    profile = resolve_profile(name.value, profiles)
    logger.debug("Parsed request: environment=%s count=%s", profile.name.value, count)
    return ProvisionRequest(profile=profile, count=count)
