"""
Command-line interface for the News Digest.

Uses Typer to provide a CLI with options for the main configuration
settings. Loads a .env file for SMTP credentials and the API key.
"""

from __future__ import annotations

import logging
from pathlib import Path

from dotenv import load_dotenv
import typer
from rich.console import Console

from .config import load_config, validate_config
from .errors import ConfigError
from .logging_utils import setup_logging
from .runner import run_pipeline

app = typer.Typer(add_completion=False, help="Compile, publish and email a daily news digest.")
console = Console()
logger = logging.getLogger(__name__)


@app.callback()
def main() -> None:
    """News digest pipeline."""


@app.command()
def run(
    config: Path | None = typer.Option(None, "--config", "-c", exists=True, readable=True),
    progress: bool = typer.Option(True, "--progress/--no-progress"),
    log_level: str | None = typer.Option(None, "--log-level", help="Logging level."),
    log_file: bool | None = typer.Option(
        None, "--log-file/--no-log-file", help="Enable or disable file logging."
    ),
    email: bool | None = typer.Option(
        None, "--email/--no-email", help="Enable or disable sending the digest email."
    ),
    publish: bool | None = typer.Option(
        None, "--publish/--no-publish", help="Enable or disable writing the static archive."
    ),
    batch_size: int | None = typer.Option(
        None, "--batch-size", min=1, help="Sources processed concurrently per batch."
    ),
    api_key: str | None = typer.Option(
        None,
        "--api-key",
        help="Override provider API key (or set OPENROUTER_API_KEY / .env).",
    ),
):
    """Run the daily digest pipeline.

    Fetches every configured news site, extracts and summarizes the day's
    articles, stores the digest, publishes the archive and emails it.

    Args:
        config: Optional path to YAML config file
        progress: Whether to show progress bar
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_file: Enable/disable file logging
        email: Enable/disable email delivery
        publish: Enable/disable static archive output
        batch_size: Concurrent sources per batch (1 = sequential)
        api_key: Override LLM provider API key
    """
    load_dotenv()

    try:
        cfg = load_config(str(config) if config else None)

        # Override with CLI options
        if api_key:
            cfg.provider.api_key = api_key
        if log_level:
            cfg.logging.level = log_level
        if log_file is not None:
            cfg.logging.file = log_file
        if email is not None:
            cfg.mail.enabled = email
        if publish is not None:
            cfg.publish.enabled = publish
        if batch_size is not None:
            cfg.pipeline.batch_size = batch_size

        validate_config(cfg)
    except ConfigError as exc:
        console.print("[bold red]Configuration error[/bold red]")
        for problem in exc.problems:
            console.print(f"  - {problem}", markup=False)
        raise typer.Exit(code=1) from exc

    setup_logging(cfg.logging)

    try:
        result = run_pipeline(cfg, show_progress=progress, console=console)
    except Exception as exc:  # noqa: BLE001
        logger.exception("Pipeline failed: %s", exc, extra={"event": "pipeline_failed"})
        raise typer.Exit(code=1) from exc

    if result is None:
        console.print("No articles found, no digest was created.")
        return

    console.print(f"Digest compiled: {result.digest.date}")
    if result.site is not None:
        console.print(f"Archive page: {result.site.digest_page}")
    if result.emailed:
        console.print(f"Email sent to {cfg.mail.email_to}")


if __name__ == "__main__":
    app()
