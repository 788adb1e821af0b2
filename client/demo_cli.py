#!/usr/bin/env python3

from __future__ import annotations
import asyncio
from enum import Enum
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from shared.envelope import create_user_message
from shared.log import get_logger, set_level
from shared.utils import is_uuid_v4, new_session_id
from .config import ConfigError, load_config
from .ws_client import DemoClient

app = typer.Typer(help="Agent server demo client")
console = Console()
logger = get_logger(__name__)


class LogLevel(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


def _check_session_id(value: Optional[str]) -> Optional[str]:
    if value is not None and not is_uuid_v4(value):
        raise typer.BadParameter("session id must be a canonical UUIDv4")
    return value


@app.command()
def run(
    url: Optional[str] = typer.Option(None, help="WebSocket URL of the agent server"),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="YAML config file"),
    session_id: Optional[str] = typer.Option(None, callback=_check_session_id, help="UUIDv4 session id; generated if omitted"),
    follow_up_delay: Optional[float] = typer.Option(None, help="Seconds after connecting before the second prompt"),
    close_delay: Optional[float] = typer.Option(None, help="Seconds after connecting before closing"),
    log_level: Optional[LogLevel] = typer.Option(None, case_sensitive=False, help="Console and file log level"),
):
    """Send the two scripted prompts, log responses, and exit when the connection closes."""
    if log_level is not None:
        set_level(log_level.value)

    try:
        cfg = load_config(config).with_overrides(
            url=url,
            follow_up_delay=follow_up_delay,
            close_delay=close_delay,
        )
    except ConfigError as e:
        console.print(f"[red]Config error[/]: {e}")
        raise typer.Exit(code=2)

    client = DemoClient(cfg, session_id=session_id)
    console.print(f"[bold green]Agent demo client starting[/] on {cfg.url}")
    logger.debug("Follow-up in %.1fs, close in %.1fs", cfg.follow_up_delay, cfg.close_delay)

    exit_code = asyncio.run(client.run())
    raise typer.Exit(code=exit_code)


@app.command()
def envelope(
    content: str = typer.Argument(..., help="Prompt text to wrap"),
    session_id: Optional[str] = typer.Option(None, callback=_check_session_id, help="UUIDv4 session id; generated if omitted"),
):
    """Print the user_message envelope that would be sent for CONTENT and exit."""
    message = create_user_message(session_id or new_session_id(), content)
    console.print_json(message.to_json())


def main() -> None:
    app()


if __name__ == "__main__":
    main()
