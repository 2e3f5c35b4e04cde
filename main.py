#!/usr/bin/env python3
"""Lightwatch Alert Engine - CLI Entry Point."""
import sys
import signal
import threading
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))

import click
from rich.console import Console
from rich.table import Table

from __version__ import __version__

console = Console()


def _init_components(config_path=None, verbose=False):
    """Lazy initialization of all components."""
    from utils.logger import setup_logging
    from config import load_config
    from models.database import Database
    from alerts.rules_manager import RulesManager
    from alerts.engine import AlertEngine
    from alerts.webhook import WebhookNotifier

    config = load_config(config_path)
    log_cfg = config.get("logging", {})
    setup_logging("DEBUG" if verbose else log_cfg.get("level", "INFO"), log_cfg.get("file"))

    db = Database(config["database"]["path"])
    db.connect()

    rules = RulesManager(db)
    notifier = WebhookNotifier(max_workers=config["notifier"]["max_workers"])
    alert_engine = AlertEngine(rules, db, notifier)

    return {
        "config": config, "db": db, "rules": rules,
        "notifier": notifier, "alert_engine": alert_engine,
    }


@click.group()
@click.option("--config", "config_path", default=None, help="Path to config YAML")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.version_option(__version__, prog_name="lightwatch")
@click.pass_context
def cli(ctx, config_path, verbose):
    """Lightwatch Alert Engine - threshold rules, alert events & webhooks."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["verbose"] = verbose


def _get_components(ctx):
    if "_components" not in ctx.obj:
        ctx.obj["_components"] = _init_components(ctx.obj.get("config_path"), ctx.obj.get("verbose"))
    return ctx.obj["_components"]


def _shutdown(c):
    c["notifier"].shutdown(c["config"]["notifier"].get("drain_timeout_seconds", 15))
    c["db"].close()


def _print_events(events, title):
    from utils.formatters import format_timestamp, format_value, time_ago
    table = Table(title=title, show_header=True)
    table.add_column("Time", style="dim")
    table.add_column("Rule")
    table.add_column("Service")
    table.add_column("Value")
    table.add_column("Threshold")
    table.add_column("Status")
    for e in events:
        status = "[red]firing[/red]" if e.status == "firing" else e.status
        table.add_row(f"{format_timestamp(e.triggered_at)} ({time_ago(e.triggered_at)})", e.alert_name, e.service,
                      format_value(e.value, e.meta.unit),
                      f"{e.meta.operator or ''} {format_value(e.threshold)}", status)
    console.print(table)


# ──────────────────────────────────────────────────────
# ENGINE
# ──────────────────────────────────────────────────────
@cli.command()
@click.option("--interval", default=None, type=int, help="Seconds between passes (overrides config)")
@click.pass_context
def run(ctx, interval):
    """Run the alert engine until interrupted."""
    from monitor.scheduler import EngineScheduler
    c = _get_components(ctx)
    interval = interval or c["config"]["engine"]["interval_seconds"]

    scheduler = EngineScheduler(c["alert_engine"], interval_seconds=interval)
    done = threading.Event()

    def _handle(signum, frame):
        done.set()

    signal.signal(signal.SIGINT, _handle)
    signal.signal(signal.SIGTERM, _handle)

    scheduler.start()
    console.print(f"[bold]Lightwatch alert engine running[/bold] (every {interval}s). Ctrl-C to stop.")
    try:
        while not done.wait(1):
            pass
    finally:
        console.print("Shutting down...")
        scheduler.stop()
        _shutdown(c)


@cli.command()
@click.pass_context
def tick(ctx):
    """Run a single evaluation pass over all enabled rules."""
    c = _get_components(ctx)
    try:
        fired = c["alert_engine"].tick()
    finally:
        _shutdown(c)
    if fired:
        console.print(f"[bold yellow]{len(fired)} alert(s) triggered:[/bold yellow]")
        _print_events(fired, "Fired Alerts")
    else:
        console.print("[green]All clear - no alerts triggered[/green]")


# ──────────────────────────────────────────────────────
# RULES
# ──────────────────────────────────────────────────────
@cli.group()
def rules():
    """Alert rule management."""
    pass


@rules.command("list")
@click.pass_context
def rules_list(ctx):
    """List all alert rules."""
    c = _get_components(ctx)
    all_rules = c["rules"].get_all_rules()
    if not all_rules:
        console.print("[dim]No rules defined[/dim]")
        return
    table = Table(title="Alert Rules", show_header=True)
    table.add_column("ID", style="dim")
    table.add_column("Name")
    table.add_column("Service")
    table.add_column("Condition")
    table.add_column("Window")
    table.add_column("Webhook")
    table.add_column("Enabled")
    for r in all_rules:
        cond = r.condition
        table.add_row(r.id, r.name, r.service, f"{cond.metric} {cond.operator} {cond.threshold}",
                      cond.duration or "5m (default)", "✓" if r.webhook else "",
                      "[green]✓[/green]" if r.enabled else "[red]✗[/red]")
    console.print(table)


@rules.command("add")
@click.option("--name", required=True, help="Rule name")
@click.option("--service", required=True, help="Target service")
@click.option("--metric", required=True, help="Metric name")
@click.option("--operator", required=True, type=click.Choice(["gt", "gte", "lt", "lte", "eq"]))
@click.option("--threshold", required=True, type=float)
@click.option("--duration", default="", help="Lookback window, e.g. 5m")
@click.option("--webhook", default="", help="Webhook URL notified on breach")
@click.option("--disabled", is_flag=True, help="Create the rule disabled")
@click.pass_context
def rules_add(ctx, name, service, metric, operator, threshold, duration, webhook, disabled):
    """Create a threshold rule."""
    c = _get_components(ctx)
    rule = c["rules"].create_rule(
        name=name, metric=metric, operator=operator, threshold=threshold,
        service=service, duration=duration, webhook=webhook, enabled=not disabled,
        channels=["webhook"] if webhook else [],
    )
    console.print(f"[green]✓[/green] Created rule {rule.id}")


@rules.command("import")
@click.argument("path", required=False, type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def rules_import(ctx, path):
    """Import rules from a YAML file (default: the configured rules.path)."""
    from config import resolve_path
    c = _get_components(ctx)
    path = path or resolve_path(str(c["config"]["rules"]["path"]))
    count = c["rules"].import_file(path)
    console.print(f"[green]✓[/green] Imported {count} rule(s)")


@rules.command("enable")
@click.argument("rule_id")
@click.pass_context
def rules_enable(ctx, rule_id):
    """Enable a rule."""
    c = _get_components(ctx)
    if not c["rules"].enable(rule_id):
        raise click.ClickException(f"No rule with id {rule_id}")
    console.print(f"[green]✓[/green] Enabled {rule_id}")


@rules.command("disable")
@click.argument("rule_id")
@click.pass_context
def rules_disable(ctx, rule_id):
    """Disable a rule."""
    c = _get_components(ctx)
    if not c["rules"].disable(rule_id):
        raise click.ClickException(f"No rule with id {rule_id}")
    console.print(f"[green]✓[/green] Disabled {rule_id}")


@rules.command("test")
@click.pass_context
def rules_test(ctx):
    """Dry-run all rules against current samples (nothing is stored or sent)."""
    from utils.formatters import format_value
    c = _get_components(ctx)
    results = c["alert_engine"].test_rules()

    table = Table(title="Alert Rules Test", show_header=True)
    table.add_column("Rule")
    table.add_column("Service")
    table.add_column("Condition")
    table.add_column("Current")
    table.add_column("Would Fire")
    table.add_column("Enabled")
    for r in results:
        fire_str = "[green]YES[/green]" if r["would_fire"] else "[dim]no[/dim]"
        table.add_row(r["name"], r["service"], f"{r['metric']} {r['operator']} {r['threshold']}",
                      format_value(r["current_value"]), fire_str, "✓" if r["enabled"] else "✗")
    console.print(table)


# ──────────────────────────────────────────────────────
# SAMPLES
# ──────────────────────────────────────────────────────
@cli.group()
def samples():
    """Metric sample ingestion."""
    pass


@samples.command("add")
@click.argument("service")
@click.argument("metric")
@click.argument("value", type=float)
@click.option("--unit", default=None, help="Unit of the value")
@click.pass_context
def samples_add(ctx, service, metric, value, unit):
    """Record one metric sample at the current time."""
    from models.metrics import MetricSample
    c = _get_components(ctx)
    c["db"].save_sample(MetricSample(service=service, name=metric, value=value, unit=unit))
    console.print(f"[green]✓[/green] {service}/{metric} = {value}")


# ──────────────────────────────────────────────────────
# EVENTS
# ──────────────────────────────────────────────────────
@cli.group()
def events():
    """Alert event history."""
    pass


@events.command("recent")
@click.option("--limit", default=50, help="Number of events to show")
@click.pass_context
def events_recent(ctx, limit):
    """Show the most recent alert events."""
    c = _get_components(ctx)
    recent = c["db"].get_recent_events(limit=limit)
    if not recent:
        console.print("[dim]No alert events[/dim]")
        return
    _print_events(recent, "Recent Alert Events")


@events.command("rule")
@click.argument("rule_id")
@click.option("--limit", default=20, help="Number of events to show")
@click.pass_context
def events_rule(ctx, rule_id, limit):
    """Show alert events for one rule."""
    c = _get_components(ctx)
    found = c["db"].find_events_for_rule(rule_id, limit=limit)
    if not found:
        console.print(f"[dim]No alert events for {rule_id}[/dim]")
        return
    _print_events(found, f"Alert Events for {rule_id}")


if __name__ == "__main__":
    cli()
