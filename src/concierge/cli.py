"""Command line entry points."""

from __future__ import annotations

import asyncio

import typer
from rich.console import Console

from concierge.config import get_settings
from concierge.errors import ConciergeError, ResponseTimeoutError
from concierge.logging_utils import configure_logging
from concierge.runtime import AppRuntime

app = typer.Typer(name="concierge", help="Calendar, email and contacts assistant over a message bus", add_completion=False)
console = Console()


@app.command()
def serve(
    host: str | None = typer.Option(None, help="Bind host, defaults to CONCIERGE_HOST"),
    port: int | None = typer.Option(None, help="Bind port, defaults to CONCIERGE_PORT"),
) -> None:
    """Run the webhook server."""
    import uvicorn

    from concierge.webhook import create_app

    settings = get_settings()
    configure_logging(settings.log_level)
    web_app = create_app(AppRuntime(settings))
    uvicorn.run(web_app, host=host or settings.host, port=port or settings.port, log_level=settings.log_level.lower())


@app.command()
def ask(
    user_id: str = typer.Argument(..., help="User identifier the session is keyed by"),
    text: str = typer.Argument(..., help="Message to send"),
    timeout: float | None = typer.Option(None, help="Seconds to wait for the answer"),
) -> None:
    """Send one message in-process and print the answer."""
    settings = get_settings()
    configure_logging(settings.log_level)

    async def _run() -> str:
        async with AppRuntime(settings) as runtime:
            return await runtime.ask(user_id, text, timeout=timeout)

    try:
        answer = asyncio.run(_run())
    except ResponseTimeoutError as exc:
        console.print(f"[yellow]no response yet:[/yellow] {exc}")
        raise typer.Exit(code=2) from exc
    except ConciergeError as exc:
        console.print(f"[red]error:[/red] {exc}")
        raise typer.Exit(code=1) from exc
    console.print(answer, markup=False)
