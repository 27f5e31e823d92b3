"""Path utilities for the POP receipt tracking project.

Shared helpers so modules resolve data directories the same way.
"""

from pathlib import Path


def get_workspace_root() -> Path:
    """Get the project workspace root directory.

    The workspace root is the parent directory of the src/ directory.

    Returns:
        Path: The workspace root directory.
    """
    return Path(__file__).parent.parent.parent


def ensure_dir(path: Path) -> None:
    """Ensure a directory exists, creating it if necessary.

    Args:
        path: Path to the directory to ensure.
    """
    path.mkdir(parents=True, exist_ok=True)

