"""CLI commands for Acheron."""

import asyncio
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from acheron import __version__, __logo__

app = typer.Typer(
    name="acheron",
    help=f"{__logo__} Acheron - WhatsApp personal assistant",
    no_args_is_help=True,
)

console = Console()


def version_callback(value: bool):
    if value:
        console.print(f"{__logo__} Acheron v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", "-V", callback=version_callback, is_eager=True
    ),
):
    """Acheron - WhatsApp personal assistant."""
    pass


def _config_option():
    return typer.Option(None, "--config", "-c", help="Path to config.json")


def _load_config_or_exit(config_path: Path | None):
    from acheron.config.loader import load_config
    from acheron.errors import ConfigUnreadable

    try:
        return load_config(config_path, strict=True)
    except ConfigUnreadable as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)


# ============================================================================
# Onboard / Setup
# ============================================================================


@app.command()
def onboard(config_path: Path = _config_option()):
    """Initialize Acheron configuration and data directories."""
    from acheron.config.loader import get_config_path, get_data_dir, save_config
    from acheron.config.schema import Config

    path = config_path or get_config_path()

    if path.exists():
        console.print(f"[yellow]Config already exists at {path}[/yellow]")
        if not typer.confirm("Overwrite?"):
            raise typer.Exit()

    config = Config()
    save_config(config, path)
    console.print(f"[green]✓[/green] Created config at {path}")

    data_dir = get_data_dir(config)
    console.print(f"[green]✓[/green] Created data directory at {data_dir}")

    config.log_path.mkdir(parents=True, exist_ok=True)
    console.print(f"[green]✓[/green] Created log directory at {config.log_path}")

    console.print(f"\n{__logo__} Acheron is ready!")
    console.print("\nNext steps:")
    console.print(f"  1. Set your WhatsApp id as [cyan]owner[/cyan] in [cyan]{path}[/cyan]")
    console.print("  2. Enable [cyan]channels.whatsapp[/cyan] and start the bridge")
    console.print("  3. Run: [cyan]acheron gateway[/cyan]")
    console.print("\n[dim]Try commands locally first with: acheron chat[/dim]")


# ============================================================================
# Gateway
# ============================================================================


def _log_loop_exception(loop: asyncio.AbstractEventLoop, context: dict) -> None:
    from loguru import logger

    exc = context.get("exception")
    message = context.get("message", "Unhandled error in event loop")
    if exc is not None:
        logger.opt(exception=exc).error(f"Unhandled task error: {message}")
    else:
        logger.error(f"Unhandled task error: {message}")


async def _open_store(config):
    """Open the store, importing legacy JSON memory on the very first start."""
    from loguru import logger

    from acheron.memory import MemoryStore, migrate_from_json
    from acheron.errors import MigrationError

    store = MemoryStore(config.data_path)
    first_start = not store.db_path.exists()
    await store.init()

    if first_start:
        try:
            report = await migrate_from_json(store, config.data_path)
            if not report.empty:
                console.print(
                    f"[green]✓[/green] Imported {report.users_imported} user(s) from legacy memory"
                )
        except MigrationError as e:
            logger.error(f"Legacy import skipped: {e}")

    return store


async def _run_gateway(config_source, config) -> bool:
    """
    Run the bot until it stops.

    Returns:
        True when the restart command asked for a fresh start.
    """
    from loguru import logger

    from acheron.auto_reply.dispatch import ReplyDispatcher
    from acheron.bus.queue import MessageBus
    from acheron.channels.whatsapp import WhatsAppChannel
    from acheron.commands import build_default_registry
    from acheron.maintenance import MaintenanceService

    asyncio.get_running_loop().set_exception_handler(_log_loop_exception)

    restart = asyncio.Event()
    store = await _open_store(config)

    bus = MessageBus(max_queue_size=config.dispatch.max_queue_size)
    channel = WhatsAppChannel(config.channels.whatsapp, bus)
    dispatcher = ReplyDispatcher(
        store=store,
        config_source=config_source,
        registry=build_default_registry(),
        transport=channel,
        bus=bus,
        config=config.dispatch,
        on_restart=restart.set,
    )
    maintenance = MaintenanceService(
        store,
        config_source,
        interval_hours=config.maintenance.interval_hours,
    )

    tasks = [
        asyncio.create_task(dispatcher.run(), name="dispatcher"),
        asyncio.create_task(channel.start(), name="whatsapp"),
        asyncio.create_task(restart.wait(), name="restart"),
    ]

    try:
        if config.maintenance.enabled:
            await maintenance.start()
        logger.info("⚡ Acheron is online.")
        await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
    finally:
        dispatcher.stop()
        await channel.stop()
        await maintenance.stop()
        for task in tasks:
            if not task.done():
                task.cancel()
        results = await asyncio.gather(*tasks, return_exceptions=True)
        await store.close()

    for result in results:
        if isinstance(result, Exception):
            raise result

    if restart.is_set():
        logger.info("Restarting per owner command.")
        return True
    return False


@app.command()
def gateway(
    config_path: Path = _config_option(),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Start the Acheron gateway."""
    from acheron.config.loader import ConfigSource
    from acheron.errors import TransportDeauthorized
    from acheron.utils.logging import setup_logging

    config = _load_config_or_exit(config_path)
    setup_logging(config, verbose)

    if not config.channels.whatsapp.enabled:
        console.print("[red]Error: WhatsApp channel is disabled.[/red]")
        console.print("Set channels.whatsapp.enabled to true in your config.")
        raise typer.Exit(1)

    config_source = ConfigSource(config_path)
    console.print(f"{__logo__} Starting Acheron gateway ({config.channels.whatsapp.bridge_url})...")

    while True:
        try:
            restart = asyncio.run(_run_gateway(config_source, config))
        except KeyboardInterrupt:
            console.print("\nShutting down...")
            break
        except TransportDeauthorized:
            console.print("[red]Logged out. Re-pair the bridge session, then restart.[/red]")
            raise typer.Exit(1)

        if not restart:
            break
        config = config_source.load()


# ============================================================================
# Local chat
# ============================================================================


@app.command()
def chat(
    identity: str = typer.Option("console@local", "--as", help="Sender identity"),
    group: str = typer.Option(None, "--group", "-g", help="Pretend to be in this group id"),
    name: str = typer.Option("Console", "--name", "-n", help="Display name"),
    config_path: Path = _config_option(),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Talk to Acheron from the terminal through the normal pipeline."""
    from acheron.auto_reply.dispatch import ReplyDispatcher
    from acheron.bus.queue import MessageBus
    from acheron.channels.console import ConsoleChannel
    from acheron.commands import build_default_registry
    from acheron.config.loader import ConfigSource
    from acheron.utils.logging import setup_logging

    config = _load_config_or_exit(config_path)
    setup_logging(config, verbose)
    config_source = ConfigSource(config_path)

    async def run_interactive():
        store = await _open_store(config)
        bus = MessageBus(max_queue_size=config.dispatch.max_queue_size)
        channel = ConsoleChannel(bus, identity=identity, group_id=group, display_name=name, console=console)
        dispatcher = ReplyDispatcher(
            store=store,
            config_source=config_source,
            registry=build_default_registry(),
            transport=channel,
            bus=bus,
            config=config.dispatch,
            on_restart=lambda: console.print("[dim]Restart requested (ignored in chat mode)[/dim]"),
        )
        await channel.start()
        runner = asyncio.create_task(dispatcher.run())

        console.print(f"{__logo__} Interactive mode as [cyan]{identity}[/cyan] (Ctrl+C to exit)\n")
        try:
            while True:
                try:
                    user_input = await asyncio.to_thread(console.input, "[bold blue]You:[/bold blue] ")
                except (KeyboardInterrupt, EOFError):
                    console.print("\nGoodbye!")
                    break
                if not user_input.strip():
                    continue

                channel.submit(user_input)
                await bus.join()
        finally:
            dispatcher.stop()
            await channel.stop()
            runner.cancel()
            await asyncio.gather(runner, return_exceptions=True)
            await store.close()

    try:
        asyncio.run(run_interactive())
    except KeyboardInterrupt:
        console.print("\nGoodbye!")


# ============================================================================
# Store maintenance
# ============================================================================


@app.command()
def migrate(
    data_dir: Path = typer.Option(None, "--data-dir", "-d", help="Directory holding users.json / stats.json"),
    config_path: Path = _config_option(),
):
    """Import legacy users.json / stats.json into the database."""
    from acheron.errors import MigrationError
    from acheron.memory import MemoryStore, migrate_from_json

    config = _load_config_or_exit(config_path)
    source_dir = data_dir or config.data_path

    async def run():
        async with MemoryStore(config.data_path) as store:
            return await migrate_from_json(store, source_dir)

    try:
        report = asyncio.run(run())
    except MigrationError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    if report.empty:
        console.print(f"No legacy memory files found in {source_dir}")
        return

    console.print(f"[green]✓[/green] Imported {report.users_imported} user(s)")
    if report.total_messages is not None:
        console.print(f"[green]✓[/green] Total messages: {report.total_messages}")


@app.command()
def prune(
    days: int = typer.Option(None, "--days", "-d", help="Override memoryPruneDays"),
    config_path: Path = _config_option(),
):
    """Delete users that have not been seen for a while."""
    from datetime import timedelta

    from acheron.memory import MemoryStore
    from acheron.memory.store import utcnow

    config = _load_config_or_exit(config_path)
    window = days if days is not None else config.memory_prune_days
    cutoff = utcnow() - timedelta(days=window)

    async def run():
        async with MemoryStore(config.data_path) as store:
            return await store.prune_older_than(cutoff)

    removed = asyncio.run(run())
    console.print(f"[green]✓[/green] Pruned {removed} user(s) not seen in {window} day(s)")


# ============================================================================
# Status
# ============================================================================


@app.command()
def status(config_path: Path = _config_option()):
    """Show Acheron status."""
    from acheron.config.loader import get_config_path
    from acheron.memory import MemoryStore

    path = config_path or get_config_path()
    console.print(f"{__logo__} Acheron Status\n")
    console.print(f"Config: {path} {'[green]✓[/green]' if path.exists() else '[red]✗[/red]'}")

    if not path.exists():
        console.print("\nRun [cyan]acheron onboard[/cyan] first.")
        return

    config = _load_config_or_exit(path)

    table = Table(title="Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    table.add_row("Prefix", config.prefix)
    table.add_row("Owner", config.owner)
    table.add_row("Chat mode", "on" if config.chat_mode else "off")
    table.add_row("Mood", config.mood)
    table.add_row("Typing delay", f"{config.typing_delay_ms} ms")
    table.add_row("Prune after", f"{config.memory_prune_days} day(s)")
    table.add_row("Data dir", str(config.data_path))
    console.print(table)

    db_path = config.data_path / "acheron.db"
    if not db_path.exists():
        console.print(f"\nDatabase: {db_path} [dim]not created yet[/dim]")
        return

    async def load_stats():
        async with MemoryStore(config.data_path) as store:
            stats = await store.get_stats()
            prefix = await store.get_global_prefix()
            return stats, prefix

    stats, global_prefix = asyncio.run(load_stats())
    console.print(f"\nDatabase: {db_path} [green]✓[/green]")
    console.print(f"  Total messages: {stats.total_messages}")
    console.print(f"  Known users: {stats.users_count}")
    if global_prefix:
        console.print(f"  Global prefix override: {global_prefix}")


# ============================================================================
# Channel Commands
# ============================================================================


channels_app = typer.Typer(help="Manage channels")
app.add_typer(channels_app, name="channels")


@channels_app.command("status")
def channels_status(config_path: Path = _config_option()):
    """Show channel status."""
    config = _load_config_or_exit(config_path)

    table = Table(title="Channel Status")
    table.add_column("Channel", style="cyan")
    table.add_column("Enabled", style="green")
    table.add_column("Bridge URL", style="yellow")
    table.add_column("Allowed chats")

    wa = config.channels.whatsapp
    table.add_row(
        "WhatsApp",
        "✓" if wa.enabled else "✗",
        wa.bridge_url,
        ", ".join(wa.allow_from) or "all",
    )

    console.print(table)


if __name__ == "__main__":
    app()
