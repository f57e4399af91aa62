from __future__ import annotations

import json
import logging
import math
from typing import Any, Mapping

from envprov.models import InstanceSummary, ProvisionResult
from envprov.proc import CommandError, CommandRunner, CommandTimeout, run_command
from envprov.services.ec2_adapter import summarize_instance, tag_specifications
from envprov.services.errors import ListingFailure, ProviderTimeout, ProvisionFailure

logger = logging.getLogger(__name__)


def _tag_specification_arg(tags: Mapping[str, str]) -> str:
    return json.dumps(tag_specifications(tags))


def _tag_filter_arg(*, tag_key: str, tag_value: str) -> str:
    return json.dumps([{"Name": f"tag:{tag_key}", "Values": [tag_value]}])


class AwsCliAdapter:
    """EC2 provider that shells out to the `aws` command-line tool."""

    def __init__(
        self,
        *,
        timeout: float,
        aws_profile: str | None = None,
        runner: CommandRunner | None = None,
        executable: str = "aws",
    ) -> None:
        self._timeout = timeout
        self._aws_profile = aws_profile
        self._runner = runner
        self._executable = executable

    def _common_flags(self, *, region: str) -> list[str]:
        flags = [
            "--region",
            region,
            "--output",
            "json",
            "--cli-connect-timeout",
            str(max(1, math.ceil(self._timeout))),
            "--cli-read-timeout",
            str(max(1, math.ceil(self._timeout))),
        ]
        if self._aws_profile:
            flags.extend(["--profile", self._aws_profile])
        return flags

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
            "Launching %s instance(s) of %s from %s in %s via aws cli",
            count,
            instance_type,
            image_id,
            region,
        )
        cmd = [
            self._executable,
            "ec2",
            "run-instances",
            "--image-id",
            image_id,
            "--count",
            str(count),
            "--instance-type",
            instance_type,
            "--tag-specifications",
            _tag_specification_arg(tags),
            *self._common_flags(region=region),
        ]
        try:
            result = run_command(
                cmd,
                timeout=self._timeout,
                runner=self._runner,
                error_message=f"Failed to launch instances in {region}",
            )
        except CommandTimeout as exc:
            raise ProviderTimeout(str(exc)) from exc
        except CommandError as exc:
            logger.debug("aws ec2 run-instances failed: %s", exc)
            return ProvisionResult(succeeded=False, detail=str(exc))

        payload = self._parse_json(result.stdout, what="run-instances", error_cls=ProvisionFailure)
        instance_ids = [inst["InstanceId"] for inst in payload.get("Instances", []) or []]
        logger.info("Launched instances: %s", ", ".join(instance_ids) or "<none>")
        return ProvisionResult(succeeded=bool(instance_ids), instance_ids=instance_ids)

    def describe_instances(self, *, region: str, tag_key: str, tag_value: str) -> list[InstanceSummary]:
        cmd = [
            self._executable,
            "ec2",
            "describe-instances",
            "--filters",
            _tag_filter_arg(tag_key=tag_key, tag_value=tag_value),
            *self._common_flags(region=region),
        ]
        try:
            result = run_command(
                cmd,
                timeout=self._timeout,
                runner=self._runner,
                error_message=f"Failed to describe instances in {region}",
            )
        except CommandTimeout as exc:
            raise ProviderTimeout(str(exc)) from exc
        except CommandError as exc:
            raise ListingFailure(str(exc)) from exc

        payload = self._parse_json(result.stdout, what="describe-instances", error_cls=ListingFailure)
        return [
            summarize_instance(instance, tag_key=tag_key)
            for reservation in payload.get("Reservations", []) or []
            for instance in reservation.get("Instances", []) or []
        ]

    @staticmethod
    def _parse_json(stdout: str, *, what: str, error_cls: type[Exception]) -> dict[str, Any]:
        try:
            payload = json.loads(stdout or "{}")
        except json.JSONDecodeError as exc:
            raise error_cls(f"Invalid JSON from aws ec2 {what}: {exc.msg}") from exc
        if not isinstance(payload, dict):
            raise error_cls(f"Unexpected output from aws ec2 {what}")
        return payload
