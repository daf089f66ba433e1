"""CLI entry point for convex_monitor."""

from __future__ import annotations

import asyncio
import json
import logging
import sys

import click

from convex_monitor import __version__
from convex_monitor.client import ConvexDataClient
from convex_monitor.config import load_config
from convex_monitor.daemon import TriggerRunner, run_trigger
from convex_monitor.errors import ConvexMonitorError
from convex_monitor.models.config import EventKind, MonitorConfig
from convex_monitor.models.events import TriggerEvent
from convex_monitor.notice import emit_license_notice
from convex_monitor.operations import execute, list_operations
from convex_monitor.storage.sqlite import SQLiteStateStore


def _load(ctx: click.Context, event: str | None = None, pool_id: str | None = None) -> MonitorConfig:
    """Load config, apply command-line overrides, exit cleanly on bad input."""
    try:
        cfg = load_config(ctx.obj["config_path"])
        if event:
            cfg.trigger.event = EventKind(event)
    except (ConvexMonitorError, ValueError) as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)
    if pool_id is not None:
        cfg.trigger.pool_id = pool_id
    if not ctx.obj["verbose"]:
        logging.getLogger().setLevel(cfg.log_level.upper())
    return cfg


def _print_event(event: TriggerEvent) -> None:
    click.echo(json.dumps(event.to_dict()))


_EVENT_CHOICE = click.Choice([k.value for k in EventKind])


@click.group()
@click.option("-c", "--config", "config_path", default=None, help="Path to config TOML file")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.version_option(__version__, prog_name="convex-monitor")
@click.pass_context
def cli(ctx: click.Context, config_path: str | None, verbose: bool) -> None:
    """convex-monitor - Convex Finance metrics and change alerts."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["verbose"] = verbose

    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    emit_license_notice()


# ── Trigger ────────────────────────────────────────────


@cli.command()
@click.option("-e", "--event", type=_EVENT_CHOICE, default=None, help="Event kind to watch")
@click.option("--pool-id", default=None, help="Restrict poolApyChanged to one pool")
@click.pass_context
def run(ctx: click.Context, event: str | None, pool_id: str | None) -> None:
    """Poll continuously and print events as JSON lines."""
    cfg = _load(ctx, event, pool_id)
    click.echo(
        f"Watching {cfg.trigger.event.value} every {cfg.runner.poll_interval}s "
        f"(instance: {cfg.runner.instance_id})",
        err=True,
    )
    asyncio.run(run_trigger(cfg, sink=_print_event))


@cli.command()
@click.option("-e", "--event", type=_EVENT_CHOICE, default=None, help="Event kind to evaluate")
@click.option("--pool-id", default=None, help="Restrict poolApyChanged to one pool")
@click.pass_context
def poll(ctx: click.Context, event: str | None, pool_id: str | None) -> None:
    """Run a single poll and print any events as JSON lines."""
    cfg = _load(ctx, event, pool_id)

    async def _poll():
        store = SQLiteStateStore(cfg.db_path)
        await store.initialize()
        try:
            async with ConvexDataClient(cfg.client) as client:
                runner = TriggerRunner(cfg.trigger, client, store, cfg.runner, sink=_print_event)
                await runner.run_once()
        finally:
            await store.close()

    asyncio.run(_poll())


# ── Info ───────────────────────────────────────────────


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show monitor configuration."""
    cfg = _load(ctx)
    t = cfg.trigger
    click.echo(f"Data source:    {cfg.client.data_source.value}")
    click.echo(f"Network:        {cfg.client.network}")
    click.echo(f"Governance URL: {cfg.client.governance_url or '(default)'}")
    click.echo(f"API key:        {'***configured***' if cfg.client.api_key else '(not set)'}")
    click.echo(f"Instance:       {cfg.runner.instance_id}")
    click.echo(f"Event:          {t.event.value}")
    click.echo(f"Pool ID:        {t.pool_id or '(first pools)'}")
    click.echo(f"APY threshold:  {t.apy_threshold:g} pts")
    click.echo(f"TVL threshold:  {t.tvl_threshold:g}%")
    click.echo(f"Price rule:     {t.price_condition.value} "
               f"(${t.price_threshold:g} / {t.price_change_threshold:g}%)")
    click.echo(f"Peg threshold:  {t.peg_threshold:g}%")
    click.echo(f"Poll interval:  {cfg.runner.poll_interval}s")
    click.echo(f"DB path:        {cfg.db_path}")


@cli.group()
def state():
    """Inspect or reset stored polling state."""
    pass


@state.command("show")
@click.argument("instance_id", required=False)
@click.pass_context
def state_show(ctx: click.Context, instance_id: str | None) -> None:
    """Print stored state for one instance, or all instances."""
    cfg = _load(ctx)

    async def _show():
        store = SQLiteStateStore(cfg.db_path)
        await store.initialize()
        try:
            ids = [instance_id] if instance_id else await store.list_instances()
            if not ids:
                click.echo("No stored state.")
                return
            for iid in ids:
                current = await store.load_state(iid)
                click.echo(f"{iid}: {json.dumps(current.to_dict(), sort_keys=True)}")
        finally:
            await store.close()

    asyncio.run(_show())


@state.command("reset")
@click.argument("instance_id", required=False)
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompt")
@click.pass_context
def state_reset(ctx: click.Context, instance_id: str | None, yes: bool) -> None:
    """Forget stored state so the next poll re-seeds its baseline."""
    cfg = _load(ctx)
    iid = instance_id or cfg.runner.instance_id
    if not yes:
        click.confirm(f"Reset stored state for {iid}?", abort=True)

    async def _reset():
        store = SQLiteStateStore(cfg.db_path)
        await store.initialize()
        try:
            if await store.delete_state(iid):
                click.echo(f"State for {iid} reset.")
            else:
                click.echo(f"No stored state for {iid}.")
        finally:
            await store.close()

    asyncio.run(_reset())


@cli.command()
@click.argument("instance_id", required=False)
@click.option("-n", "--limit", type=int, default=20, help="Number of recent polls to show")
@click.pass_context
def history(ctx: click.Context, instance_id: str | None, limit: int) -> None:
    """Show recent poll invocations."""
    cfg = _load(ctx)

    async def _history():
        store = SQLiteStateStore(cfg.db_path)
        await store.initialize()
        try:
            polls = await store.get_recent_polls(instance_id, limit)
            if not polls:
                click.echo("No polls recorded.")
                return
            for p in polls:
                outcome = f"events={p.events_emitted}" if p.success else f"FAILED: {p.error}"
                click.echo(
                    f"  #{p.id} [{p.instance_id}] {p.event_kind} at={p.created_at} "
                    f"{outcome} duration={p.duration_ms}ms"
                )
        finally:
            await store.close()

    asyncio.run(_history())


# ── Operations ─────────────────────────────────────────


def _parse_params(pairs: tuple[str, ...]) -> dict[str, str]:
    params: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"expected key=value, got {pair!r}", param_hint="-p")
        params[key.strip()] = value
    return params


@cli.command()
@click.argument("resource", required=False)
@click.argument("operation", required=False)
@click.option("-p", "--param", "pairs", multiple=True, help="Operation parameter as key=value")
@click.option("--continue-on-fail", is_flag=True, help="Report failures in-band instead of aborting")
@click.option("--list", "list_only", is_flag=True, help="List available operations")
@click.pass_context
def query(
    ctx: click.Context,
    resource: str | None,
    operation: str | None,
    pairs: tuple[str, ...],
    continue_on_fail: bool,
    list_only: bool,
) -> None:
    """Run a request/response operation and print the records as JSON lines."""
    if list_only or not (resource and operation):
        for res, op in list_operations():
            click.echo(f"  {res} {op}")
        return

    cfg = _load(ctx)
    params = _parse_params(pairs)

    async def _query():
        async with ConvexDataClient(cfg.client) as client:
            return await execute(resource, operation, [params], client, continue_on_fail)

    try:
        records = asyncio.run(_query())
    except ConvexMonitorError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)
    for record in records:
        click.echo(json.dumps(record))


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
