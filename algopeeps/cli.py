import click


@click.group()
def main() -> None:
    """Algopeeps - an AI council watching your editor."""


@main.command()
@click.option("--listen", default=None, help="Editor listen address host:port (default: :9999).")
@click.option("--opencode-url", default=None, help="OpenCode server URL (default: http://localhost:4096).")
@click.option("--log-level", default=None, help="Log level (default: from ALGOPEEPS_LOG_LEVEL or INFO).")
@click.option(
    "--log-file",
    default=None,
    type=click.Path(dir_okay=False),
    help="Write logs to this file (default: algopeeps.log, stderr is used by the dashboard).",
)
def run(listen: str | None, opencode_url: str | None, log_level: str | None, log_file: str | None) -> None:
    """Start the editor listener and the council dashboard."""
    import asyncio

    from algopeeps.council.app import Council, run_dashboard
    from algopeeps.council.errors import BindError
    from algopeeps.council.log import setup_logging
    from algopeeps.council.settings import get_settings

    settings = get_settings()
    overrides = {
        "listen_addr": listen,
        "opencode_url": opencode_url,
        "log_level": log_level,
        "log_file": log_file or settings.log_file or "algopeeps.log",
    }
    settings = settings.model_copy(update={k: v for k, v in overrides.items() if v is not None})
    setup_logging(settings.log_level, settings.log_file)

    try:
        asyncio.run(run_dashboard(Council(settings)))
    except BindError as exc:
        click.echo(f"Error starting editor listener: {exc}", err=True)
        raise SystemExit(1) from exc
    except KeyboardInterrupt:
        pass


@main.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.option("--addr", default="127.0.0.1:9999", help="Editor listener address.")
@click.option("--line", default=0, type=int, help="Cursor line to report.")
@click.option(
    "--event",
    "event_kind",
    default="buffer_write",
    type=click.Choice(["text_changed", "buffer_write", "buffer_enter"]),
    help="Editor event to report.",
)
def send(path: str, addr: str, line: int, event_kind: str) -> None:
    """Send PATH to a running listener as a single buffer event."""
    import socket
    from datetime import UTC, datetime
    from pathlib import Path

    from algopeeps.council.models.events import Buffer, BufferEvent, Cursor
    from algopeeps.council.server import split_host_port

    file = Path(path)
    content = file.read_text(encoding="utf-8")
    event = BufferEvent(
        type="buffer_update",
        event=event_kind,
        timestamp=datetime.now(tz=UTC),
        buffer=Buffer(
            id=1,
            name=file.name,
            path=str(file.resolve()),
            filetype=file.suffix.lstrip("."),
            cursor=Cursor(line=line, col=0),
            line_count=len(content.splitlines()),
            content=content,
        ),
    )
    host, port = split_host_port(addr)
    with socket.create_connection((host or "127.0.0.1", port), timeout=5) as sock:
        sock.sendall(event.encode())
    click.echo(f"Sent {file.name} ({len(content)} chars) to {addr}.")


if __name__ == "__main__":
    main()
