from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, PositiveInt, SecretStr


class EnvironmentName(str, Enum):
    LOCAL = "local"
    TESTING = "testing"
    PRODUCTION = "production"


class DatabaseBinding(BaseModel):
    model_config = ConfigDict(frozen=True)

    url: str
    user: str | None = None
    password: SecretStr | None = None


class EnvironmentProfile(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: EnvironmentName
    region: str
    image_id: str
    instance_type: str
    # Bound from the process environment at startup, see envprov.config
    database: DatabaseBinding | None = None


class ProvisionRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    profile: EnvironmentProfile
    count: PositiveInt


class ProvisionResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    succeeded: bool
    instance_ids: list[str] = Field(default_factory=list)
    detail: str | None = None


class InstanceSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    state: str
    environment: str | None = None


class ProvisionReport(BaseModel):
    environment: EnvironmentName
    count: int
    result: ProvisionResult
    instances: list[InstanceSummary]
