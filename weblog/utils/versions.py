# ==============================================================================
# Version Utilities
# ==============================================================================
"""
Installed versions of weblog-sessions and the libraries it runs on.
"""

from importlib.metadata import PackageNotFoundError, version

DISTRIBUTION = "weblog-sessions"

# Libraries listed by `weblog version`
RUNTIME_LIBRARIES = ("pydantic", "pydantic-settings", "polars", "typer")


def get_weblog_version() -> str:
    """Version of the installed distribution, or the source version when not installed."""
    try:
        return version(DISTRIBUTION)
    except PackageNotFoundError:
        return "0.1.0"


def get_library_versions(names: tuple[str, ...] = RUNTIME_LIBRARIES) -> dict[str, str]:
    """Map each distribution name to its installed version ("unknown" if missing)."""
    versions = {}
    for name in names:
        try:
            versions[name] = version(name)
        except PackageNotFoundError:
            versions[name] = "unknown"
    return versions
