# ==============================================================================
# Path Utilities
# ==============================================================================
"""
Project root detection for resolving relative data paths.
"""

from pathlib import Path


def get_project_root() -> Path:
    """
    Get the project root directory.

    Looks for pyproject.toml next to the package directory. Falls back to
    the current working directory if not found.

    Returns:
        Path to the project root directory
    """
    current = Path(__file__).parent.parent.parent  # utils/paths.py -> weblog -> project
    if (current / "pyproject.toml").exists():
        return current

    return Path.cwd()
