from __future__ import annotations

import pytest

from envprov.models import EnvironmentName
from envprov.services.environments import parse_count, parse_request, resolve_profile, validate_arguments
from envprov.services.errors import InvalidArgument, UnknownEnvironment


@pytest.mark.parametrize(
    ("name", "region", "image_id", "instance_type"),
    [
        ("local", "us-east-1", "ami-0c55b159cbfafe1f0", "t2.micro"),
        ("testing", "us-east-1", "ami-0c55b159cbfafe1f0", "t2.micro"),
        ("production", "us-east-1", "ami-0b5eea76982371e91", "t2.large"),
    ],
)
def test_resolve_profile_returns_fixed_fields(profiles, name, region, image_id, instance_type) -> None:
    profile = resolve_profile(name, profiles)
    assert profile.name == EnvironmentName(name)
    assert profile.region == region
    assert profile.image_id == image_id
    assert profile.instance_type == instance_type


def test_production_uses_larger_instance_type_than_local_and_testing(profiles) -> None:
    production = resolve_profile("production", profiles)
    assert production.instance_type != resolve_profile("local", profiles).instance_type
    assert production.instance_type != resolve_profile("testing", profiles).instance_type


def test_resolve_profile_uses_builtin_table_by_default() -> None:
    assert resolve_profile("testing").instance_type == "t2.micro"


@pytest.mark.parametrize("name", ["staging", "Production", "TESTING", "", " testing", "prod"])
def test_resolve_profile_rejects_unknown_names(profiles, name) -> None:
    with pytest.raises(UnknownEnvironment) as exc_info:
        resolve_profile(name, profiles)
    assert exc_info.value.exit_code == 2


@pytest.mark.parametrize(("raw", "expected"), [("1", 1), ("5", 5), (" 12 ", 12), (3, 3)])
def test_parse_count_accepts_positive_integers(raw, expected) -> None:
    assert parse_count(raw) == expected


@pytest.mark.parametrize("raw", ["0", "-1", "abc", "1.5", "", "+2", "²", "١٢", 0, -4, True])
def test_parse_count_rejects_everything_else(raw) -> None:
    with pytest.raises(InvalidArgument) as exc_info:
        parse_count(raw)
    assert exc_info.value.exit_code == 1


@pytest.mark.parametrize("args", [[], ["testing"], ["testing", "2", "extra"]])
def test_parse_request_requires_exactly_two_arguments(profiles, args) -> None:
    with pytest.raises(InvalidArgument) as exc_info:
        parse_request(args, profiles)
    assert exc_info.value.exit_code == 1


def test_parse_request_checks_environment_before_count(profiles) -> None:
    with pytest.raises(UnknownEnvironment):
        parse_request(["staging", "zero"], profiles)


def test_parse_request_builds_request(profiles) -> None:
    request = parse_request(["testing", "5"], profiles)
    assert request.count == 5
    assert request.profile.region == "us-east-1"
    assert request.profile.instance_type == "t2.micro"


def test_validate_arguments_needs_no_profiles() -> None:
    assert validate_arguments(["production", "3"]) == (EnvironmentName.PRODUCTION, 3)


@pytest.mark.parametrize(
    ("args", "error"),
    [
        (["staging"], InvalidArgument),
        (["staging", "0"], UnknownEnvironment),
        (["staging", "²"], UnknownEnvironment),
        (["testing", "²"], InvalidArgument),
    ],
)
def test_validate_arguments_checks_arity_then_name_then_count(args, error) -> None:
    with pytest.raises(error):
        validate_arguments(args)
