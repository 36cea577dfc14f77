"""Version-control initialisation for new projects."""

from __future__ import annotations

from pathlib import Path

from psmodkit.locator import ToolLocator, default_locator
from psmodkit.models import ExternalToolError, MissingDependencyError
from psmodkit.utils import run_command


def _run_git(
    git: Path,
    *args: str,
    cwd: str | Path,
    timeout: float | None = None,
) -> tuple[str, str]:
    """Run a git command and return (stdout, stderr).

    Raises ExternalToolError if the command exits with a non-zero code.
    """
    cmd = [str(git)] + list(args)
    cmd_str = " ".join(["git"] + list(args))
    returncode, stdout, stderr = run_command(cmd, cwd=cwd, timeout=timeout)
    if returncode != 0:
        raise ExternalToolError(
            f"Git command failed (exit {returncode}): {cmd_str}\n{stderr}",
            command=cmd_str,
            stderr=stderr,
        )
    return stdout, stderr


def init_repository(
    project_dir: str | Path,
    locator: ToolLocator | None = None,
    timeout: float | None = None,
) -> None:
    """Run ``git init`` with *project_dir* as the child's working directory.

    Raises:
        MissingDependencyError: If git is not installed.
        ExternalToolError: If ``git init`` fails.
    """
    locator = locator or default_locator()
    git = locator.locate("git")
    if git is None:
        raise MissingDependencyError("git was not found on PATH")
    _run_git(git, "init", cwd=Path(project_dir), timeout=timeout)
