"""CLI entry point for ScreenSense."""

from __future__ import annotations

import asyncio
import signal

import click
import structlog

from .config import load_config
from .events import (
    AnalysisCompleted,
    AppChanged,
    CaptureCompleted,
    IssueDetected,
    SuggestionCreated,
    VisionEvent,
)
from .models import BrowserMetadata, GenericMetadata

structlog.configure(
    processors=[
        structlog.dev.ConsoleRenderer(),
    ],
    wrapper_class=structlog.make_filtering_bound_logger(0),
)


@click.group()
@click.option("--config", "-c", "config_path", default=None, help="Config file path")
@click.pass_context
def cli(ctx: click.Context, config_path: str | None) -> None:
    """ScreenSense - screen context for assistant agents."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path


def _components(ctx: click.Context):
    config = load_config(ctx.obj["config_path"])
    _configure_logging(config.logging.level)

    from .components import build_components

    return build_components(config)


def _print_event(event: VisionEvent) -> None:
    if isinstance(event, CaptureCompleted):
        c = event.capture
        click.echo(f"[capture] display={c.display_id} {c.bounds.width}x{c.bounds.height} {len(c.image_data) // 1024} KB")
    elif isinstance(event, AnalysisCompleted):
        click.echo(f"[analysis] {event.result.context_summary}")
    elif isinstance(event, IssueDetected):
        click.echo(f"[issue] {event.issue.severity.value}: {event.issue.title}")
    elif isinstance(event, SuggestionCreated):
        click.echo(f"[suggestion] {event.suggestion.priority.value}: {event.suggestion.title}")
    elif isinstance(event, AppChanged):
        click.echo(f"[app] {event.app.name} ({event.app.app_type.value}): {event.app.window_title}")


@cli.command()
@click.pass_context
def watch(ctx: click.Context) -> None:
    """Continuously capture and analyze the screen, printing events."""
    components = _components(ctx)

    async def run() -> None:
        stop = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, stop.set)

        analyzer = components.analyzer
        analyzer.subscribe(_print_event)
        analyzer.start()
        try:
            await stop.wait()
        finally:
            analyzer.stop()
            await analyzer.join()

    asyncio.run(run())
    click.echo("")
    click.echo(components.context.get_summary())


@cli.command()
@click.option("--query", "-q", default=None, help="Tailor the summary to a question")
@click.pass_context
def snapshot(ctx: click.Context, query: str | None) -> None:
    """Capture and analyze the screen once."""
    components = _components(ctx)
    result = asyncio.run(components.analyzer.capture_and_analyze())
    if result is None:
        click.echo("No capture (excluded app or capture unavailable).", err=True)
        raise SystemExit(1)
    if query:
        click.echo(components.context.get_context_for_query(query))
    else:
        click.echo(components.context.get_summary())


@cli.command()
@click.pass_context
def app(ctx: click.Context) -> None:
    """Show the active application."""
    components = _components(ctx)
    active = asyncio.run(components.detector.get_active_app())
    if active is None:
        click.echo("Active application could not be detected.", err=True)
        raise SystemExit(1)

    click.echo(f"App:     {active.name} (pid {active.pid})")
    click.echo(f"Type:    {active.app_type.value}")
    click.echo(f"Title:   {active.window_title}")
    if active.executable:
        click.echo(f"Path:    {active.executable}")
    if not isinstance(active.metadata, GenericMetadata):
        for key, value in vars(active.metadata).items():
            if value:
                click.echo(f"{key + ':':<9}{value}")
    if isinstance(active.metadata, BrowserMetadata) and not active.metadata.url:
        click.echo("URL:     (not in title)")


@cli.command()
@click.pass_context
def windows(ctx: click.Context) -> None:
    """List visible windows."""
    components = _components(ctx)
    for w in asyncio.run(components.detector.get_visible_windows()):
        marker = "*" if w.is_active else " "
        click.echo(f"{marker} {w.app_name:<20} {w.title}")


@cli.command()
@click.pass_context
def displays(ctx: click.Context) -> None:
    """List displays; the capture target is marked."""
    components = _components(ctx)

    async def query():
        analyzer = components.analyzer
        return await analyzer.get_available_displays(), await analyzer.get_target_display()

    found, target = asyncio.run(query())
    for d in found:
        marker = "*" if target is not None and d.id == target.id else " "
        primary = " (primary)" if d.primary else ""
        b = d.bounds
        click.echo(f"{marker} {d.id:>10}  {d.name}{primary}  {b.width}x{b.height}+{b.x}+{b.y}")


def _configure_logging(level: str) -> None:
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            {"DEBUG": 10, "INFO": 20, "WARNING": 30, "ERROR": 40}.get(level.upper(), 20)
        ),
    )


if __name__ == "__main__":
    cli()
