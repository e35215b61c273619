"""
Project resolution — the human-readable project name sent with heartbeats.

WakaTime's `.wakatime-project` convention: first line renames the project,
optional second line overrides the branch. Without the file, the project
directory's name is used.
"""

import logging
from pathlib import Path
from typing import List, Optional, Tuple

logger = logging.getLogger("wakabeat.project")

PROJECT_FILE = ".wakatime-project"
DEFAULT_BRANCH = "master"


def project_file_path(root: Path) -> Path:
    return Path(root) / PROJECT_FILE


def read_project_file(root: Path) -> Optional[List[str]]:
    """Lines of .wakatime-project, or None if the file does not exist."""
    path = project_file_path(root)
    if not path.exists():
        return None
    try:
        return path.read_text(encoding="utf-8").splitlines()
    except OSError as e:
        logger.warning(f"Could not read {path}: {e}")
        return None


def write_project_file(lines: List[str], root: Path) -> Path:
    """Rewrite (or create) .wakatime-project with the given lines."""
    path = project_file_path(root)
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


def resolve_project(
    root: Path,
    override: Optional[str] = None,
    default_branch: str = DEFAULT_BRANCH,
) -> Tuple[str, str]:
    """Resolve (project_name, branch) for a project root.

    Precedence for the name: explicit override, first line of the project
    file, then the directory name.
    """
    root = Path(root)
    name = None
    branch = default_branch

    lines = read_project_file(root)
    if lines:
        stripped = [line.strip() for line in lines]
        if stripped and stripped[0]:
            name = stripped[0]
        if len(stripped) > 1 and stripped[1]:
            branch = stripped[1]

    if override:
        name = override

    if not name:
        name = root.resolve().name

    return name, branch
