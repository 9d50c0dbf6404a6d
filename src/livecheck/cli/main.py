"""
Main CLI application using Typer with router-based command dispatch.

All command groups are registered through the CliRouter.
"""

from __future__ import annotations

import typer

from livecheck.infra.logging import configure_logging

from .commands import manifest
from .router import get_router

app = typer.Typer(help="Live DASH manifest timeline validator")

router = get_router(app)

router.register(
    "manifest",
    manifest.app,
    help_text="Validate live manifests against their playback window",
)


@app.callback()
def main(
    log_level: str = typer.Option(None, "--log-level", help="Override LIVECHECK_LOG_LEVEL"),
    console_logs: bool = typer.Option(False, "--console-logs", help="Human readable log lines"),
):
    """livecheck - find gaps in live DASH timelines."""
    configure_logging(level=log_level, json_output=False if console_logs else None)


def cli():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    cli()
