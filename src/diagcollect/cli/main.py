"""Command-line interface for diagcollect.

Provides one command per artifact family plus a listing command.

Exit codes: 0 when the run completed (whatever the step results), 1 on an
unhandled fault or unusable output root, 2 when privilege is missing.
"""

import importlib.metadata
import sys
from collections.abc import Callable
from typing import Any

import click

from diagcollect.tools import default_toolset

__all__ = ["cli"]

try:
    __version__ = importlib.metadata.version("diagcollect")
except importlib.metadata.PackageNotFoundError:
    __version__ = "0.3.0"  # Fallback for development

EXIT_FAULT = 1


def _collection_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Attach the options shared by every family command."""
    func = click.option(
        "--zip",
        "--archive",
        "archive",
        is_flag=True,
        help="Package the completed output directory into a sibling .zip",
    )(func)
    func = click.option(
        "--use-temp",
        is_flag=True,
        help="Use the system temp directory as the base when no output path is given",
    )(func)
    func = click.option(
        "--output-path",
        "-o",
        type=click.Path(file_okay=False),
        envvar="DIAGCOLLECT_OUTPUT_PATH",
        default=None,
        help="Base directory for the run (default: Documents folder)",
    )(func)
    return func


def _collect(
    family: str,
    output_path: str | None,
    use_temp: bool,
    archive: bool,
    mdm: bool,
) -> None:
    """Run one family's collection and translate the result into an exit code."""
    from diagcollect.engine import CollectionConfig, run_collection
    from diagcollect.errors import PreconditionFailure

    try:
        config = CollectionConfig(
            family=family,
            output_path=output_path,
            use_temp=use_temp,
            archive=archive,
            mdm=mdm,
        )
        result = run_collection(config, toolset=default_toolset())

    except PreconditionFailure as e:
        click.secho(f"✗ {e}", fg="red", err=True)
        sys.exit(e.exit_code)

    except Exception as e:
        click.secho(f"✗ Error: {e}", fg="red", err=True)
        sys.exit(EXIT_FAULT)

    failed = len(result.failed)
    click.secho(
        f"✓ Collected {len(result.succeeded)}/{len(result.outcomes)} artifacts "
        f"({failed} failed) into {result.log_root}",
        fg="green" if failed == 0 else "yellow",
    )
    if result.archive_path is not None:
        click.echo(f"  Archive: {result.archive_path}")


@click.group()
@click.version_option(version=__version__, prog_name="diagcollect")
def cli() -> None:
    """Collect machine diagnostic artifacts into a timestamped directory.

    Use 'diagcollect COMMAND --help' for command-specific help.
    """


@cli.command()
@_collection_options
@click.option(
    "--mdm",
    is_flag=True,
    help="Also generate the MDM diagnostic report and extract its BitLocker policies",
)
def bitlocker(output_path: str | None, use_temp: bool, archive: bool, mdm: bool) -> None:
    """Collect BitLocker status, event logs and policy registry exports.

    Artifacts are written to BitLockerLogs-DD-MM-YYYY-HH-MM under the base
    directory together with CollectionLog.txt and run.json.

    Examples
    --------
        diagcollect bitlocker
        diagcollect bitlocker --use-temp --zip
        diagcollect bitlocker -o D:\\Support --mdm --archive
    """
    _collect("bitlocker", output_path, use_temp, archive, mdm)


@cli.command()
@_collection_options
def tpm(output_path: str | None, use_temp: bool, archive: bool) -> None:
    """Collect TPM device information, event logs and registry exports.

    Artifacts are written to TPMLogs-DD-MM-YYYY-HH-MM under the base
    directory.
    """
    _collect("tpm", output_path, use_temp, archive, mdm=False)


@cli.command()
def families() -> None:
    """List artifact families and the steps each one runs."""
    from diagcollect.engine import FAMILIES

    for family in FAMILIES.values():
        mdm = " [--mdm]" if family.supports_mdm else ""
        click.secho(f"{family.key}: {family.dir_prefix}Logs-DD-MM-YYYY-HH-MM{mdm}", bold=True)
        for spec in family.steps:
            click.echo(f"  - {spec.name} ({spec.kind})")


if __name__ == "__main__":
    cli()
