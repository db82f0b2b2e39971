# ==============================================================================
# CLI Commands Module
# ==============================================================================
"""
CLI commands for the weblog session analytics tool.

Commands are organized into separate modules for maintainability:
- shared.py: Common utilities, constants, and helpers
- analyze.py: Session analysis and per-client session listing
- config.py: Configuration display
"""

from weblog.cli.analyze import analyze, sessions
from weblog.cli.config import config_show
from weblog.cli.shared import BOX_WIDTH, configure_logging

__all__ = [
    "BOX_WIDTH",
    "analyze",
    "config_show",
    "configure_logging",
    "sessions",
]
