"""ably-cli entry point."""

from __future__ import annotations

import asyncio
import signal
from typing import TYPE_CHECKING, Optional

import typer
from loguru import logger
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel

from .errors import ChannelFailedError, ConfigError, ConnectionFailedError

if TYPE_CHECKING:
    from .config.schema import AppSettings, SessionConfig
    from .session.channel_session import ChannelSession


app = typer.Typer(
    name="ably-cli",
    help="A CLI tool to connect to Ably channels and read messages.",
    add_completion=False,
)

console = Console()
err_console = Console(stderr=True)


def _version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        from . import __version__

        console.print(f"ably-cli v{__version__}")
        raise typer.Exit()


def _install_signal_handlers(session: ChannelSession) -> None:
    """Route SIGINT/SIGTERM to a graceful session stop."""
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, session.request_stop)
        except (NotImplementedError, RuntimeError):
            # No loop signal support (e.g. Windows): Ctrl+C raises KeyboardInterrupt
            logger.debug(f"Cannot install handler for {sig.name}")


async def _run_session(config: SessionConfig, settings: AppSettings) -> None:
    """Run one channel session until it is stopped or fails."""
    from .channels.ably_realtime import AblyRealtimeClient
    from .render.overrides import OverrideRegistry, default_overrides
    from .session.channel_session import ChannelSession
    from .session.watchdog import ShutdownWatchdog

    watchdog = ShutdownWatchdog(settings.shutdown_grace)
    client = AblyRealtimeClient(config.api_key.get_secret_value())

    session = ChannelSession(
        config,
        client,
        overrides=default_overrides() if settings.render_overrides else OverrideRegistry(),
        console=console,
        queue_size=settings.queue_size,
        close_timeout=settings.close_timeout,
        on_stopping=lambda: watchdog.start(1 if session.fatal else 0),
    )
    _install_signal_handlers(session)

    try:
        await session.run()
    finally:
        watchdog.cancel()


@app.command()
def listen(
    api_key: Optional[str] = typer.Option(
        None,
        "--api-key",
        "-k",
        envvar="ABLY_API_KEY",
        help="Ably API key.",
    ),
    channel: Optional[str] = typer.Option(
        None, "--channel", "-c", help="Ably channel name to connect to."
    ),
    event: str = typer.Option(
        "*", "--event", "-e", help="Specific event name to subscribe to."
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Disable verbose Ably logs."
    ),
    debug: bool = typer.Option(
        False,
        "--debug",
        "-d",
        help="Show debug information including raw message structure.",
    ),
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """Subscribe to an Ably channel and print its messages."""
    from .config.loader import build_session_config, load_settings
    from .log import configure_logging

    try:
        config = build_session_config(api_key, channel, event, quiet, debug)
    except ConfigError as e:
        err_console.print(f"Error: {e}", style="red", markup=False)
        raise typer.Exit(1)

    configure_logging(quiet=config.quiet, debug=config.debug)
    settings = load_settings()

    logger.info("Starting Ably CLI tool")
    logger.info(f"Connecting to channel: {config.channel_name}")
    logger.info(f"Verbose logging: {not config.quiet}")
    logger.info(f"Debug mode: {config.debug}")

    if not config.quiet:
        err_console.print(
            Panel.fit(
                f"[bold]Channel:[/bold] {escape(config.channel_name)}\n"
                f"[bold]Event:[/bold] {escape(config.event_filter) if config.filtering else 'all events'}\n"
                f"[bold]Debug mode:[/bold] {'yes' if config.debug else 'no'}\n"
                "Press Ctrl+C to stop",
                title="ably-cli",
                border_style="blue",
            )
        )

    try:
        asyncio.run(_run_session(config, settings))
    except (ConnectionFailedError, ChannelFailedError) as e:
        err_console.print(f"Error: {e}", style="red", markup=False)
        raise typer.Exit(1)
    except KeyboardInterrupt:
        err_console.print("\n[yellow]Stopped.[/yellow]")


if __name__ == "__main__":
    app()
