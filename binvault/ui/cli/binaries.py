"""
CLI commands for engine binaries.

Thin wrappers over ``binvault.core.services.provision``.
"""

from __future__ import annotations

import json
import sys

import click

from binvault.core.models.binary import ProgressStage

_STAGE_ICONS = {
    ProgressStage.DOWNLOADING: "⬇️ ",
    ProgressStage.EXTRACTING: "📦",
    ProgressStage.CONFIGURING: "🔧",
    ProgressStage.VERIFYING: "🔍",
    ProgressStage.CACHED: "💾",
    ProgressStage.COMPLETE: "✅",
}


def _manager(ctx: click.Context, engine: str):
    from binvault.core.services.provision import BinaryManager, ProvisionError

    try:
        return BinaryManager(engine, settings=ctx.obj["settings"])
    except ProvisionError as e:
        click.secho(f"❌ {e}", fg="red")
        sys.exit(1)


def _host(platform: str | None, arch: str | None) -> tuple[str, str]:
    from binvault.core.services.provision import get_platform_info

    info = get_platform_info()
    return platform or info.platform, arch or info.arch


def _with_platform(f):
    """Add --platform/--arch options defaulting to this host."""
    f = click.option("--arch", default=None, help="x64 or arm64 (default: this host).")(f)
    f = click.option("--platform", default=None, help="darwin, linux or win32 (default: this host).")(f)
    return f


@click.group()
def binaries() -> None:
    """Binaries — ensure, list, which, verify, versions, delete."""


# ── Install ─────────────────────────────────────────────────────


@binaries.command()
@click.argument("engine")
@click.argument("version")
@_with_platform
@click.pass_context
def ensure(ctx: click.Context, engine: str, version: str, platform: str | None, arch: str | None) -> None:
    """Install ENGINE VERSION if needed and print its path."""
    from binvault.core.services.provision import ProvisionError

    mgr = _manager(ctx, engine)
    platform, arch = _host(platform, arch)
    quiet = ctx.obj.get("quiet", False)

    def on_progress(stage: ProgressStage, message: str) -> None:
        if not quiet:
            click.echo(f"{_STAGE_ICONS.get(stage, '•')} {message}", err=True)

    try:
        path = mgr.ensure_installed(version, platform, arch, on_progress)
    except ProvisionError as e:
        click.secho(f"❌ {e}", fg="red")
        sys.exit(1)

    run = mgr.last_run
    if run and run.patch_results and ctx.obj.get("verbose"):
        for r in run.patch_results:
            click.echo(f"   {r.status:<8} {r.binary} {r.reason}", err=True)
    click.echo(str(path))


@binaries.command()
@click.argument("engine")
@click.argument("version")
@_with_platform
@click.pass_context
def delete(ctx: click.Context, engine: str, version: str, platform: str | None, arch: str | None) -> None:
    """Remove an installed ENGINE VERSION."""
    mgr = _manager(ctx, engine)
    platform, arch = _host(platform, arch)
    if mgr.delete(version, platform, arch):
        click.secho(f"🗑️  Deleted {engine} {mgr.full_version(version)}", fg="green")
    else:
        click.secho(f"⚠️  {engine} {version} is not installed", fg="yellow")


# ── Observe ─────────────────────────────────────────────────────


@binaries.command("list")
@click.option("--engine", "-e", default=None, help="Only this engine.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def list_cmd(ctx: click.Context, engine: str | None, as_json: bool) -> None:
    """List installed binaries."""
    from binvault.core.config.paths import BinaryPaths

    paths = BinaryPaths.from_settings(ctx.obj["settings"])
    installed = paths.list_installed(engine)

    if as_json:
        click.echo(json.dumps([b.model_dump() for b in installed], indent=2))
        return

    if not installed:
        click.secho("No binaries installed", fg="yellow")
        return

    click.secho(f"📦 Installed binaries ({paths.bin}):", fg="cyan", bold=True)
    for b in installed:
        click.echo(f"   • {b.engine} {b.version}  [{b.platform_key}]")


@binaries.command()
@click.argument("engine")
@click.argument("version")
@click.argument("tool")
@_with_platform
@click.pass_context
def which(
    ctx: click.Context, engine: str, version: str, tool: str,
    platform: str | None, arch: str | None,
) -> None:
    """Print the path of TOOL inside an ENGINE VERSION install."""
    mgr = _manager(ctx, engine)
    platform, arch = _host(platform, arch)
    path = mgr.get_binary_executable(version, platform, arch, tool)
    if not path.exists():
        click.secho(f"❌ {tool} not found at {path}", fg="red")
        sys.exit(1)
    click.echo(str(path))


@binaries.command()
@click.argument("engine")
@click.argument("version")
@_with_platform
@click.pass_context
def verify(ctx: click.Context, engine: str, version: str, platform: str | None, arch: str | None) -> None:
    """Run the installed binary and check its reported version."""
    from binvault.core.services.provision import ProvisionError

    mgr = _manager(ctx, engine)
    platform, arch = _host(platform, arch)
    try:
        mgr.verify(version, platform, arch)
    except ProvisionError as e:
        click.secho(f"❌ {e}", fg="red")
        sys.exit(1)
    click.secho(f"✅ {engine} {mgr.full_version(version)} verified", fg="green")


@binaries.command()
@click.argument("engine")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def versions(ctx: click.Context, engine: str, as_json: bool) -> None:
    """Show versions of ENGINE available from the registry."""
    mgr = _manager(ctx, engine)
    grouped = mgr.client.available_versions(mgr.engine)

    if as_json:
        click.echo(json.dumps(grouped, indent=2))
        return

    click.secho(f"📋 {mgr.engine.display_name} versions:", fg="cyan", bold=True)
    for major, items in grouped.items():
        click.echo(f"   {major}: {', '.join(items)}")
