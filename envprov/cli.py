from __future__ import annotations

import logging
import sys
from pathlib import Path

import click
import typer
import yaml

from envprov.config import load_profiles, load_settings
from envprov.logging_config import configure_logging
from envprov.models import ProvisionReport
from envprov.provisioner import build_provisioner
from envprov.services.environments import VALID_ENVIRONMENTS, parse_request, validate_arguments
from envprov.services.errors import EnvprovException, InvalidArgument, UnknownEnvironment

configure_logging()
logger = logging.getLogger(__name__)
app = typer.Typer(
    help="Provision EC2 instances for a deployment environment and list what is running there.",
    pretty_exceptions_show_locals=False,
    add_completion=False,
)

USAGE = f"Usage: envprov <environment> <count>\n  environment: one of {', '.join(VALID_ENVIRONMENTS)}\n  count: positive integer"
OUTPUT_FORMATS = ("table", "yaml")


def _exit_for_domain_error(exc: EnvprovException) -> None:
    logger.warning("Command failed with %s: %s", type(exc).__name__, exc)
    typer.echo(f"Error: {exc}", err=True)
    if isinstance(exc, (InvalidArgument, UnknownEnvironment)):
        typer.echo(USAGE, err=True)
    raise typer.Exit(code=exc.exit_code)


def _echo_table(report: ProvisionReport) -> None:
    typer.echo(f"Environment: {report.environment.value}")
    typer.echo(f"Instance count: {report.count}")
    launched = report.result.instance_ids
    typer.echo(f"Provisioning succeeded: launched {len(launched)} instance(s): {', '.join(launched)}")
    typer.echo("")
    id_width = max([len("ID"), *(len(instance.id) for instance in report.instances)])
    typer.echo(f"{'ID':<{id_width}}  State")
    for instance in report.instances:
        typer.echo(f"{instance.id:<{id_width}}  {instance.state}")


def _echo_yaml(report: ProvisionReport) -> None:
    typer.echo(yaml.safe_dump(report.model_dump(mode="json"), sort_keys=False), nl=False)


@app.command(context_settings={"ignore_unknown_options": True})
def provision(
    args: list[str] | None = typer.Argument(None, metavar="ENVIRONMENT COUNT", show_default=False),
    config: Path | None = typer.Option(None, "--config", help="YAML file with per-environment profile overrides."),
    backend: str | None = typer.Option(None, "--backend", help="Provider backend: boto3 or aws-cli."),
    timeout: str | None = typer.Option(None, "--timeout", help="Seconds before a provider call is abandoned."),
    output: str = typer.Option("table", "--output", help="Report format: table or yaml."),
    log_level: str | None = typer.Option(None, "--log-level", help="Overrides ENVPROV_LOG_LEVEL."),
) -> None:
    """Launch COUNT instances for ENVIRONMENT, then list the instances tagged with it."""
    if log_level:
        configure_logging(level=log_level)

    try:
        validate_arguments(args or [])
        if output not in OUTPUT_FORMATS:
            raise InvalidArgument(f"Unknown output format '{output}' (expected one of: {', '.join(OUTPUT_FORMATS)})")
        settings = load_settings(backend=backend, timeout_sec=timeout, profiles_file=config)
        request = parse_request(args or [], load_profiles(settings.profiles_file))
        report = build_provisioner(settings).run(request)
    except EnvprovException as e:
        _exit_for_domain_error(e)

    if output == "yaml":
        _echo_yaml(report)
    else:
        _echo_table(report)


def main() -> None:
    # Click reports usage errors with exit 2, which belongs to UnknownEnvironment here
    try:
        exit_code = app(standalone_mode=False)
    except click.UsageError as e:
        e.show()
        sys.exit(InvalidArgument.exit_code)
    except click.ClickException as e:
        e.show()
        sys.exit(e.exit_code)
    except click.Abort:
        typer.echo("Aborted!", err=True)
        sys.exit(1)
    sys.exit(exit_code or 0)


if __name__ == "__main__":
    main()
