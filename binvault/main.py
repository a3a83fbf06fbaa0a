"""
binvault — CLI entrypoint.

Usage:
    binvault --help
    binvault binaries ensure postgresql 16
    binvault deps check postgresql
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

import click

from binvault import __version__
from binvault.core.observability.logging_config import setup_logging


@click.group()
@click.version_option(version=__version__, prog_name="binvault")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to config.yml (default: $BINVAULT_CONFIG or ~/.binvault/config.yml).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """binvault — prebuilt database engine binaries on demand."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    # ── Logging setup (once, at process start) ──────────────────
    if debug:
        level = "DEBUG"
    elif verbose:
        level = "INFO"
    elif quiet:
        level = "ERROR"
    else:
        level = os.environ.get("BINVAULT_LOG_LEVEL", "WARNING")

    setup_logging(
        level=level,
        log_file=os.environ.get("BINVAULT_LOG_FILE"),
        log_file_level=os.environ.get("BINVAULT_LOG_FILE_LEVEL"),
    )

    from binvault.core.config.loader import ConfigError, load_settings

    try:
        ctx.obj["settings"] = load_settings(ctx.obj["config_path"])
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red")
        sys.exit(1)


from binvault.ui.cli.binaries import binaries  # noqa: E402
from binvault.ui.cli.deps import deps  # noqa: E402

cli.add_command(binaries)
cli.add_command(deps)


if __name__ == "__main__":
    cli()
