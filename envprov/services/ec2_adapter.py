from __future__ import annotations

import logging
from typing import Any, Callable, Mapping

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError, ConnectTimeoutError, ReadTimeoutError

from envprov.models import InstanceSummary, ProvisionResult
from envprov.services.errors import ListingFailure, ProviderTimeout, ProvisionFailure

logger = logging.getLogger(__name__)

ClientFactory = Callable[[str], Any]


def _client_error_detail(exc: ClientError) -> str:
    error = exc.response.get("Error", {})
    return f"{error.get('Code', 'Unknown')}: {error.get('Message', str(exc))}"


def tag_specifications(tags: Mapping[str, str]) -> list[dict[str, Any]]:
    return [
        {
            "ResourceType": "instance",
            "Tags": [{"Key": key, "Value": value} for key, value in tags.items()],
        }
    ]


def summarize_instance(instance: Mapping[str, Any], *, tag_key: str) -> InstanceSummary:
    tags = {tag.get("Key"): tag.get("Value") for tag in instance.get("Tags", []) or []}
    return InstanceSummary(
        id=instance.get("InstanceId", ""),
        state=(instance.get("State") or {}).get("Name", ""),
        environment=tags.get(tag_key),
    )


class Ec2Adapter:
    """EC2 provider backed by boto3."""

    def __init__(
        self,
        *,
        timeout: float,
        aws_profile: str | None = None,
        client_factory: ClientFactory | None = None,
    ) -> None:
        self._timeout = timeout
        self._aws_profile = aws_profile
        self._client_factory = client_factory or self._default_client
        self._clients: dict[str, Any] = {}

    def _default_client(self, region: str) -> Any:
        session = boto3.Session(profile_name=self._aws_profile) if self._aws_profile else boto3.Session()
        config = BotoConfig(
            connect_timeout=self._timeout,
            read_timeout=self._timeout,
            retries={"total_max_attempts": 1, "mode": "standard"},
        )
        return session.client("ec2", region_name=region, config=config)

    def _client(self, region: str) -> Any:
        if region not in self._clients:
            self._clients[region] = self._client_factory(region)
        return self._clients[region]

    def create_instances(
        self,
        *,
        image_id: str,
        count: int,
        instance_type: str,
        region: str,
        tags: Mapping[str, str],
    ) -> ProvisionResult:
        logger.info(
            "Launching %s instance(s) of %s from %s in %s (tags=%s)",
            count,
            instance_type,
            image_id,
            region,
            dict(tags),
        )
        try:
            response = self._client(region).run_instances(
                ImageId=image_id,
                InstanceType=instance_type,
                MinCount=count,
                MaxCount=count,
                TagSpecifications=tag_specifications(tags),
            )
        except (ConnectTimeoutError, ReadTimeoutError) as exc:
            raise ProviderTimeout(f"Timed out launching instances in {region}: {exc}") from exc
        except ClientError as exc:
            logger.debug("run_instances failed: %s", exc)
            return ProvisionResult(succeeded=False, detail=_client_error_detail(exc))
        except BotoCoreError as exc:
            raise ProvisionFailure(f"Failed to launch instances in {region}: {exc}") from exc

        instance_ids = [inst["InstanceId"] for inst in response.get("Instances", []) or []]
        logger.info("Launched instances: %s", ", ".join(instance_ids) or "<none>")
        return ProvisionResult(succeeded=bool(instance_ids), instance_ids=instance_ids)

    def describe_instances(self, *, region: str, tag_key: str, tag_value: str) -> list[InstanceSummary]:
        logger.debug("Describing instances in %s with %s=%s", region, tag_key, tag_value)
        instances: list[InstanceSummary] = []
        try:
            paginator = self._client(region).get_paginator("describe_instances")
            for page in paginator.paginate(Filters=[{"Name": f"tag:{tag_key}", "Values": [tag_value]}]):
                for reservation in page.get("Reservations", []) or []:
                    for instance in reservation.get("Instances", []) or []:
                        instances.append(summarize_instance(instance, tag_key=tag_key))
        except (ConnectTimeoutError, ReadTimeoutError) as exc:
            raise ProviderTimeout(f"Timed out describing instances in {region}: {exc}") from exc
        except ClientError as exc:
            raise ListingFailure(f"Failed to describe instances in {region}: {_client_error_detail(exc)}") from exc
        except BotoCoreError as exc:
            raise ListingFailure(f"Failed to describe instances in {region}: {exc}") from exc
        return instances
