"""
CLI commands for the Xray core: update, release listing, installed version.

Thin wrappers over ``nodecore.core.use_cases``.
"""

from __future__ import annotations

import json
import sys
from typing import TYPE_CHECKING

import click

if TYPE_CHECKING:
    from nodecore.core.config.settings import Settings
    from nodecore.core.services.release_index import GitHubReleaseIndex


def _release_index(settings: Settings) -> GitHubReleaseIndex:
    from nodecore.core.services.release_index import GitHubReleaseIndex

    return GitHubReleaseIndex(
        api_url=settings.api_url,
        token=settings.gh_token,
        timeout=settings.http_timeout,
    )


# ── Update ──────────────────────────────────────────────────────


@click.command("core-update")
@click.argument("version", required=False)
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def core_update(ctx: click.Context, version: str | None, as_json: bool) -> None:
    """Install VERSION of Xray core (default: latest) and restart the node.

    VERSION is a release tag in CORE_REPO, e.g. v1.25.8-mahsa-r1.
    Omitted or 'latest' resolves the most recent release.
    """
    from nodecore.adapters.containers.compose import DockerComposeRunner
    from nodecore.adapters.packages.system import SystemPackageInstaller
    from nodecore.core.use_cases.core_update import run_core_update

    settings = ctx.obj["settings"]
    quiet = ctx.obj.get("quiet", False) or as_json

    def _progress(step: str, message: str) -> None:
        if not quiet:
            click.secho(f"   ✓ {message}", fg="green")

    if not quiet:
        click.secho(f"\n⬆️  Xray core update — {settings.core_repo}", fg="cyan", bold=True)

    result = run_core_update(
        settings,
        version,
        index=_release_index(settings),
        compose_runner=DockerComposeRunner(),
        installer=SystemPackageInstaller(),
        on_step=_progress,
    )

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.ok else result.error.exit_code)

    if result.error is not None:
        click.secho(result.error.render(), fg="red", err=True)
        sys.exit(result.error.exit_code)

    click.echo()
    click.secho(f"✅ Updated to {result.installed_version}", fg="green", bold=True)
    click.echo()


# ── Observe ─────────────────────────────────────────────────────


@click.command("releases")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def releases(ctx: click.Context, as_json: bool) -> None:
    """List the newest LAST_XRAY_CORES releases of CORE_REPO."""
    from nodecore.core.use_cases.releases import list_core_releases

    settings = ctx.obj["settings"]
    listing = list_core_releases(settings, _release_index(settings))

    if as_json:
        click.echo(json.dumps(listing.to_dict(), indent=2))
        sys.exit(listing.error.exit_code if listing.error else 0)

    if listing.error is not None:
        click.secho(listing.error.render(), fg="red", err=True)
        sys.exit(listing.error.exit_code)

    if not listing.releases:
        click.secho(f"No releases found in {listing.repository}.", fg="yellow")
        return

    click.secho(f"📦 {listing.repository} ({len(listing.releases)} newest):", fg="cyan", bold=True)
    for rel in listing.releases:
        marker = "  ← installed" if rel.tag.lstrip("v") == listing.installed.lstrip("v") else ""
        pre = " (pre-release)" if rel.prerelease else ""
        click.echo(f"   • {rel.tag}{pre}{marker}")
    click.echo()


@click.command("version-info")
@click.pass_context
def version_info(ctx: click.Context) -> None:
    """Print the installed Xray core version (or 'Not installed')."""
    from nodecore.core.services.core_version import installed_version

    click.echo(installed_version(ctx.obj["settings"].binary_path))
