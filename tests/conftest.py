import pytest
from typer.testing import CliRunner

from envprov.config import load_profiles
from envprov.provisioner import EnvironmentProvisioner
from tests.provider_utils import FakeProvider

_ENV_VARS = (
    "ENVPROV_BACKEND",
    "ENVPROV_TIMEOUT_SEC",
    "ENVPROV_PROFILES_FILE",
    "ENVPROV_TAG_KEY",
    "AWS_PROFILE",
    "ENVPROV_LOCAL_DB_URL",
    "ENVPROV_TESTING_DB_URL",
    "ENVPROV_PRODUCTION_DB_URL",
)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def profiles():
    return load_profiles(environ={})


@pytest.fixture
def fake_provider():
    return FakeProvider()


@pytest.fixture
def provisioner(fake_provider):
    return EnvironmentProvisioner(provider=fake_provider)


@pytest.fixture()
def cli_runner(monkeypatch, fake_provider):
    import envprov.cli as cli

    built_settings = []

    def build(settings):
        built_settings.append(settings)
        return EnvironmentProvisioner(provider=fake_provider, tag_key=settings.tag_key)

    monkeypatch.setattr(cli, "build_provisioner", build)
    return CliRunner(), cli.app, built_settings
