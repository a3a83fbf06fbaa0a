"""
CLI commands for host (OS-level) dependencies.

Thin wrappers over ``DependencyManager``.
"""

from __future__ import annotations

import json
import sys

import click


def _manager(ctx: click.Context):
    from binvault.core.config.paths import BinaryPaths
    from binvault.core.services.provision import DependencyManager

    settings = ctx.obj["settings"]
    return DependencyManager(
        paths=BinaryPaths.from_settings(settings),
        probe_timeout=settings.probe_timeout_seconds,
    )


@click.group()
def deps() -> None:
    """Dependencies — check and install host client tools."""


@deps.command()
@click.argument("engine")
@click.option("--optional", "include_optional", is_flag=True, help="Also check enhanced CLIs.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def check(ctx: click.Context, engine: str, include_optional: bool, as_json: bool) -> None:
    """Show which host dependencies of ENGINE are installed."""
    mgr = _manager(ctx)
    statuses = mgr.check_engine_dependencies(engine)
    if include_optional:
        statuses += mgr.check_optional_tools()

    if as_json:
        click.echo(json.dumps(
            [
                {"name": s.dependency.name, "installed": s.installed,
                 "path": s.path, "version": s.version}
                for s in statuses
            ],
            indent=2,
        ))
        return

    if not statuses:
        click.secho(f"⚠️  No host dependencies registered for {engine}", fg="yellow")
        return

    for s in statuses:
        if s.installed:
            ver = f" {s.version}" if s.version else ""
            click.echo(f"   ✅ {s.dependency.name}{ver}  → {s.path}")
        else:
            click.echo(f"   ❌ {s.dependency.name}  (missing)")


@deps.command()
@click.argument("engine")
@click.pass_context
def install(ctx: click.Context, engine: str) -> None:
    """Install missing host dependencies of ENGINE."""
    from binvault.core.services.provision import PackageManagerUnavailable

    mgr = _manager(ctx)
    try:
        results = mgr.install_engine_dependencies(engine)
    except PackageManagerUnavailable as e:
        click.secho(f"❌ {e}", fg="red")
        for line in e.instructions:
            click.echo(f"   {line}")
        sys.exit(1)

    if not results:
        click.secho("✅ All dependencies already installed", fg="green")
        return

    failed = False
    for r in results:
        if r.success:
            click.secho(f"   ✅ {r.dependency.name}", fg="green")
            continue
        failed = True
        click.secho(f"   ❌ {r.dependency.name}: {r.error}", fg="red")
        if r.manual_command:
            click.echo("      Run manually:")
            for line in r.manual_command.splitlines():
                click.echo(f"        {line}")
    if failed:
        sys.exit(1)
