# ==============================================================================
# Weblog Sessions CLI
# ==============================================================================
"""
Command-line interface for web access-log session analytics.

Usage:
    weblog --help
    weblog analyze data/sample.log
    weblog analyze events.csv --format csv --json
    weblog sessions 203.99.198.151 data/sample.log
    weblog config show
    weblog version
"""

import os
from typing import Annotated, Optional

import typer

# Set consistent terminal width for help output formatting
if "COLUMNS" not in os.environ:
    os.environ["COLUMNS"] = "115"

app = typer.Typer(
    name="weblog",
    help="Web access-log session analytics CLI",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


@app.callback()
def main(
    log_level: Annotated[
        Optional[str],
        typer.Option("--log-level", "-l", help="Logging level (defaults to LOG_LEVEL or INFO)"),
    ] = None,
) -> None:
    """Web access-log session analytics CLI"""
    from weblog.cli.shared import configure_logging
    from weblog.utils.config import get_settings

    configure_logging(log_level or get_settings().log_level)


# Analysis commands are imported from weblog.cli.analyze
from weblog.cli.analyze import analyze, sessions

app.command("analyze")(analyze)
app.command("sessions")(sessions)

config_app = typer.Typer(
    help="Configuration management",
    no_args_is_help=True,
)
app.add_typer(config_app, name="config")

from weblog.cli.config import config_show

config_app.command("show")(config_show)


@app.command("version")
def show_version() -> None:
    """Show the installed version."""
    from weblog.utils.versions import get_library_versions, get_weblog_version

    print(f"weblog-sessions v{get_weblog_version()}")
    for name, installed in get_library_versions().items():
        print(f"  {name} v{installed}")


if __name__ == "__main__":
    app()
