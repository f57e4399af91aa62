from __future__ import annotations

import logging
from typing import Mapping, Protocol

from envprov.config import DEFAULT_TAG_KEY, Settings
from envprov.models import (
    EnvironmentProfile,
    InstanceSummary,
    ProvisionReport,
    ProvisionRequest,
    ProvisionResult,
)
from envprov.services.aws_cli_adapter import AwsCliAdapter
from envprov.services.ec2_adapter import Ec2Adapter
from envprov.services.errors import ConfigurationError, ProvisionFailure

logger = logging.getLogger(__name__)


class CloudProvider(Protocol):
    def create_instances(
        self,
        *,
        image_id: str,
        count: int,
        instance_type: str,
        region: str,
        tags: Mapping[str, str],
    ) -> ProvisionResult: ...

    def describe_instances(self, *, region: str, tag_key: str, tag_value: str) -> list[InstanceSummary]: ...


class EnvironmentProvisioner:
    """Launch and list instances for one environment profile at a time."""

    def __init__(self, *, provider: CloudProvider, tag_key: str = DEFAULT_TAG_KEY) -> None:
        self._provider = provider
        self._tag_key = tag_key

    def provision(self, profile: EnvironmentProfile, count: int) -> ProvisionResult:
        environment = profile.name.value
        logger.info("Provisioning %s instance(s) for environment=%s", count, environment)
        result = self._provider.create_instances(
            image_id=profile.image_id,
            count=count,
            instance_type=profile.instance_type,
            region=profile.region,
            tags={self._tag_key: environment},
        )
        if not result.succeeded:
            raise ProvisionFailure(
                f"Provisioning failed for environment '{environment}': {result.detail or 'provider reported failure'}"
            )
        if len(result.instance_ids) < count:
            raise ProvisionFailure(
                f"Provisioning for environment '{environment}' launched {len(result.instance_ids)} "
                f"of {count} requested instance(s)"
            )
        return result

    def list_by_environment(self, profile: EnvironmentProfile) -> list[InstanceSummary]:
        environment = profile.name.value
        instances = self._provider.describe_instances(
            region=profile.region,
            tag_key=self._tag_key,
            tag_value=environment,
        )
        matching = [instance for instance in instances if instance.environment == environment]
        if len(matching) != len(instances):
            logger.warning(
                "Discarded %s instance(s) not tagged %s=%s",
                len(instances) - len(matching),
                self._tag_key,
                environment,
            )
        return matching

    def run(self, request: ProvisionRequest) -> ProvisionReport:
        result = self.provision(request.profile, request.count)
        instances = self.list_by_environment(request.profile)
        return ProvisionReport(
            environment=request.profile.name,
            count=request.count,
            result=result,
            instances=instances,
        )


def build_provider(settings: Settings) -> CloudProvider:
    if settings.backend == "boto3":
        return Ec2Adapter(timeout=settings.timeout_sec, aws_profile=settings.aws_profile)
    if settings.backend == "aws-cli":
        return AwsCliAdapter(timeout=settings.timeout_sec, aws_profile=settings.aws_profile)
    raise ConfigurationError(f"Unsupported backend '{settings.backend}'")


def build_provisioner(settings: Settings) -> EnvironmentProvisioner:
    return EnvironmentProvisioner(provider=build_provider(settings), tag_key=settings.tag_key)
