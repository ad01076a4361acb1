"""
nodecore — CLI entrypoint.

Usage:
    nodecore                      # help + currently installed core version
    nodecore core-update [VERSION]
    nodecore releases
    python -m nodecore.main --help
"""

from __future__ import annotations

import os
import sys

import click

from nodecore import __version__
from nodecore.core.observability.logging_config import (
    LOG_FILE_ENV,
    LOG_FILE_LEVEL_ENV,
    resolve_level,
    setup_logging,
)

_ENV_HELP = (
    "CORE_REPO, LAST_XRAY_CORES, INSTALL_DIR, APP_NAME, COMPOSE_SERVICE, COMPOSE_FILE, "
    "DATA_MAIN_DIR, XRAY_DEST_PATH_IN_CONTAINER, XRAY_VERSION, GH_TOKEN"
)


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="nodecore")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.pass_context
def cli(ctx: click.Context, verbose: bool, quiet: bool, debug: bool) -> None:
    """Marzban node core updater — install and update the Xray core binary."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet

    # ── Logging setup (once, at process start) ──────────────────
    setup_logging(
        level=resolve_level(debug=debug, verbose=verbose, quiet=quiet, environ=os.environ),
        log_file=os.environ.get(LOG_FILE_ENV),
        log_file_level=os.environ.get(LOG_FILE_LEVEL_ENV),
    )

    # ── Settings (once, passed down explicitly) ─────────────────
    from nodecore.core.config.settings import load_settings
    from nodecore.core.errors import InvalidSettings

    try:
        ctx.obj["settings"] = load_settings()
    except InvalidSettings as e:
        click.secho(e.render(), fg="red", err=True)
        sys.exit(e.exit_code)

    if ctx.invoked_subcommand is None:
        _usage(ctx)


def _usage(ctx: click.Context) -> None:
    from nodecore.core.services.core_version import installed_version

    settings = ctx.obj["settings"]
    click.echo(ctx.get_help())
    click.echo()
    click.echo("Env overrides:")
    click.echo(f"  {_ENV_HELP}")
    click.echo()
    click.echo(f"Current Xray-core: {installed_version(settings.binary_path)}")


# ── Register command groups ─────────────────────────────────────
from nodecore.ui.cli.core import core_update, releases, version_info  # noqa: E402

cli.add_command(core_update)
cli.add_command(releases)
cli.add_command(version_info)


if __name__ == "__main__":
    cli()
