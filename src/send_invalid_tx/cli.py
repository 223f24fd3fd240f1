#!/usr/bin/env python3
"""
send-invalid-tx command line.

`run` submits the valid transaction, its duplicate and each invalid variant
to a controller and checks every rejection message. `git` prints version
information.
"""

import asyncio
import json
import logging
import logging.config
import os
import subprocess
import sys
from importlib import metadata
from pathlib import Path
from typing import Optional

import click
import yaml

from .config import HOMEPAGE
from .errors import HarnessError
from .runner import AdmissionHarness
from .settings import HarnessConfig

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"

EXIT_OK = 0
EXIT_MISMATCH = 1
EXIT_INFRASTRUCTURE = 2


def _package_version() -> str:
    try:
        return metadata.version("send-invalid-tx")
    except metadata.PackageNotFoundError:
        return "unknown"


def git_version() -> str:
    """`git describe` of the source tree, or the installed version outside a checkout."""
    try:
        out = subprocess.run(
            ["git", "describe", "--tags", "--always", "--dirty=-modified"],
            cwd=Path(__file__).resolve().parent,
            capture_output=True,
            text=True,
            check=True,
        )
    except (OSError, subprocess.CalledProcessError):
        return _package_version()
    return out.stdout.strip() or _package_version()


def configure_logging(log_config: Optional[str], verbose: bool) -> None:
    """Load a YAML dictConfig when the file exists, otherwise log to stderr."""
    if log_config and os.path.isfile(log_config):
        with open(log_config) as f:
            logging.config.dictConfig(yaml.safe_load(f))
    else:
        logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)


@click.group()
@click.version_option(version=_package_version(), prog_name="send-invalid-tx")
def main() -> None:
    """Transaction admission checks for a controller node."""


@main.command("git")
def git_info() -> None:
    """Print information from git."""
    click.echo(f"git version: {git_version()}")
    click.echo(f"homepage: {HOMEPAGE}")


@main.command("run")
@click.option("-k", "--kms_port", "kms_port", type=int, default=None, help="Sets grpc port of kms service.")
@click.option(
    "-c",
    "--controller_port",
    "controller_port",
    type=int,
    default=None,
    help="Sets grpc port of controller service.",
)
@click.option("--host", default=None, help="Host of both services")
@click.option("--timeout", type=float, default=None, help="Per-call timeout in seconds")
@click.option("--connect-timeout", type=float, default=None, help="Channel connect timeout in seconds")
@click.option("--log-config", default=None, help="YAML logging config file")
@click.option("--json", "as_json", is_flag=True, help="Print the report as JSON")
@click.option("--verbose", is_flag=True, help="Enable verbose output")
def run(
    kms_port: Optional[int],
    controller_port: Optional[int],
    host: Optional[str],
    timeout: Optional[float],
    connect_timeout: Optional[float],
    log_config: Optional[str],
    as_json: bool,
    verbose: bool,
) -> None:
    """Run the admission scenarios."""

    # Load config from environment, then override with CLI args
    config = HarnessConfig.from_env()

    if kms_port is not None:
        config.kms.port = kms_port
    if controller_port is not None:
        config.controller.port = controller_port
    if host:
        config.kms.host = host
        config.controller.host = host
    if timeout is not None:
        config.set_timeout(timeout)
    if connect_timeout is not None:
        config.connect_timeout = connect_timeout
    if log_config:
        config.log_config = log_config
    if verbose:
        config.verbose = True

    configure_logging(config.log_config, config.verbose)

    async def _run() -> int:
        harness = AdmissionHarness(config)

        try:
            await harness.setup()
            report = await harness.run_all()
        except HarnessError as e:
            logger.error(f"run aborted: {e}")
            return EXIT_INFRASTRUCTURE
        finally:
            await harness.teardown()

        if as_json:
            click.echo(json.dumps(harness.reporter.report_to_dict(report), indent=2))
        else:
            harness.reporter.print_summary(report)

        return EXIT_OK if report.passed else EXIT_MISMATCH

    sys.exit(asyncio.run(_run()))


if __name__ == "__main__":
    main()
