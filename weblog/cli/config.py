# ==============================================================================
# Config Commands
# ==============================================================================
"""
Configuration commands for the weblog CLI.
"""

import json
from typing import Annotated

import typer

from weblog.cli.shared import (
    BOX_WIDTH,
    _box_bottom,
    _box_header,
    _box_line,
    _empty_line,
    _section_header_plain,
)
from weblog.utils.config import get_settings


# ==============================================================================
# Commands
# ==============================================================================


def config_show(
    json_output: Annotated[
        bool, typer.Option("--json", "-j", help="Output configuration as JSON")
    ] = False,
) -> None:
    """Display current configuration (environment variables and .env)."""
    settings = get_settings()

    config = {
        "session": {
            "gap_threshold": settings.session.gap_threshold,
        },
        "engine": {
            "executor": settings.engine.executor,
            "max_workers": settings.engine.max_workers,
            "strict": settings.engine.strict,
            "batch_timeout_seconds": settings.engine.batch_timeout_seconds,
            "top_k": settings.engine.top_k,
        },
        "input": {
            "data_file": str(settings.input.data_file_path),
            "format": settings.input.format,
        },
        "log_level": settings.log_level,
        "debug": settings.debug,
    }

    if json_output:
        print(json.dumps(config, indent=2))
        return

    W = BOX_WIDTH
    print()
    print(_box_header("WEBLOG CONFIGURATION", W))
    print(_empty_line(W))
    for section in ("session", "engine", "input"):
        print(_section_header_plain(section.capitalize(), W))
        for key, value in config[section].items():
            shown = "-" if value is None else value
            print(_box_line(f"  {key:<24}{shown}", W))
        print(_empty_line(W))
    print(_section_header_plain("General", W))
    print(_box_line(f"  {'log_level':<24}{config['log_level']}", W))
    print(_box_line(f"  {'debug':<24}{config['debug']}", W))
    print(_empty_line(W))
    print(_box_bottom(W))
    print()
