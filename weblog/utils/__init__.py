# ==============================================================================
# Weblog Utilities
# ==============================================================================
"""
Shared utilities: configuration, paths and version lookup.
"""

from weblog.utils.config import (
    EngineSettings,
    InputSettings,
    SessionSettings,
    Settings,
    get_settings,
)
from weblog.utils.paths import get_project_root
from weblog.utils.versions import get_library_versions, get_weblog_version

__all__ = [
    # Config
    "EngineSettings",
    "InputSettings",
    "SessionSettings",
    "Settings",
    "get_settings",
    # Paths
    "get_project_root",
    # Versions
    "get_library_versions",
    "get_weblog_version",
]
