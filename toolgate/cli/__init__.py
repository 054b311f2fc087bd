"""toolgate admin CLI.

Works directly against the database named by DATABASE_URL; the API server
does not need to be running.
"""

import asyncio
from pathlib import Path
from typing import Optional

import typer
import yaml

from toolgate import database
from toolgate.cli.formatting import console, enabled_mark, print_table
from toolgate.errors import ToolgateError
from toolgate.services.preferences import Scope
from toolgate.services.registry import ToolRegistry
from toolgate.services.toolkits import ToolkitAggregator

DEFAULT_SEED_FILE = Path(__file__).parent.parent / "data" / "default_tools.yaml"

app = typer.Typer(
    name="toolgate",
    help="toolgate admin CLI - tool registry and enablement",
    no_args_is_help=True,
)


def _run(fn, *args):
    """Run ``fn(session, *args)`` in one transaction and release the engine."""

    async def runner():
        try:
            async with database.session_scope() as session:
                return await fn(session, *args)
        finally:
            await database.engine.dispose()

    return asyncio.run(runner())


def load_seed_file(path: Path) -> list[dict]:
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    tools = data.get("tools") if isinstance(data, dict) else None
    if not isinstance(tools, list):
        raise typer.BadParameter(f"{path} must contain a top-level 'tools' list")
    return tools


async def _seed(session, entries: list[dict]) -> tuple[int, int]:
    registry = ToolRegistry(session)
    added = skipped = 0
    for entry in entries:
        if await registry.find(entry["slug"]) is not None:
            skipped += 1
            continue
        await registry.add(
            slug=entry["slug"],
            toolkit_slug=entry["toolkit_slug"],
            toolkit_name=entry["toolkit_name"],
            display_name=entry.get("display_name"),
            description=entry.get("description"),
            is_active=entry.get("is_active", True),
        )
        added += 1
    return added, skipped


@app.command()
def seed(
    file: Path = typer.Argument(
        DEFAULT_SEED_FILE, exists=True, dir_okay=False, help="YAML file with a 'tools' list"
    ),
):
    """Register tools from a YAML file. Existing slugs are left untouched."""
    entries = load_seed_file(file)
    try:
        added, skipped = _run(_seed, entries)
    except (ToolgateError, KeyError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)
    console.print(f"[green]Added {added} tools[/green] ({skipped} already registered)")


async def _list_tools(session, include_inactive: bool):
    return await ToolRegistry(session).list(include_inactive=include_inactive)


@app.command()
def tools(
    include_inactive: bool = typer.Option(False, "--all", help="Include inactive tools"),
):
    """List registered tools."""
    rows = _run(_list_tools, include_inactive)
    if not rows:
        console.print("[yellow]No tools registered[/yellow]")
        return
    print_table(
        ["Slug", "Toolkit", "Name", "Active"],
        [
            [t.slug, t.toolkit_name, t.display_name or "-", "yes" if t.is_active else "no"]
            for t in rows
        ],
        title="Available tools",
    )


async def _toolkit_status(session, scope: Scope, scope_id: str):
    return await ToolkitAggregator(session).list_with_status(scope, scope_id)


@app.command()
def toolkits(
    user: Optional[str] = typer.Option(None, "--user", help="User id"),
    agent: Optional[str] = typer.Option(None, "--agent", help="Agent id"),
):
    """Show toolkit enablement for one user or one agent."""
    if bool(user) == bool(agent):
        console.print("[red]Pass exactly one of --user or --agent[/red]")
        raise typer.Exit(2)
    scope, scope_id = (Scope.USER, user) if user else (Scope.AGENT, agent)

    statuses = _run(_toolkit_status, scope, scope_id)
    if not statuses:
        console.print("[yellow]No toolkits registered[/yellow]")
        return
    print_table(
        ["Toolkit", "Slug", "Tools", "Status"],
        [
            [s.toolkit_name, s.toolkit_slug, str(s.tool_count), enabled_mark(s.is_enabled)]
            for s in statuses
        ],
        title=f"Toolkits for {scope.value} {scope_id}",
    )


@app.command()
def token(
    user_id: str = typer.Argument(..., help="Subject (user id) of the token"),
    ttl: int = typer.Option(3600, "--ttl", help="Lifetime in seconds"),
    admin: bool = typer.Option(False, "--admin", help="Grant admin rights"),
):
    """Mint a development access token signed with AUTH_SECRET_KEY."""
    from toolgate.auth.config import auth_settings
    from toolgate.auth.jwt import create_access_token

    if not auth_settings.secret_key:
        console.print("[red]AUTH_SECRET_KEY is not set[/red]")
        raise typer.Exit(1)
    claims = {"is_admin": True} if admin else None
    typer.echo(create_access_token(user_id, ttl_seconds=ttl, extra_claims=claims))
