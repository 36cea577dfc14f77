"""Lookup of external commands on the current platform."""

from __future__ import annotations

import os
import shutil
import sys
from pathlib import Path
from typing import Optional, Protocol


class ToolLocator(Protocol):
    """Resolves an external command name to an executable path."""

    def locate(self, name: str) -> Optional[Path]:
        ...


class PosixToolLocator:
    """Searches ``PATH`` (or an explicit search path)."""

    def __init__(self, search_path: str | None = None) -> None:
        self.search_path = search_path

    def locate(self, name: str) -> Optional[Path]:
        found = shutil.which(name, path=self.search_path)
        return Path(found) if found else None


class WindowsToolLocator:
    """Searches ``PATH`` with ``PATHEXT``, then the Chocolatey shim directory.

    Chocolatey installs shims into ``%ChocolateyInstall%\\bin`` which is not
    on ``PATH`` for the process that ran the install.
    """

    def __init__(self, search_path: str | None = None) -> None:
        self.search_path = search_path

    def locate(self, name: str) -> Optional[Path]:
        found = shutil.which(name, path=self.search_path)
        if found:
            return Path(found)

        choco_root = os.environ.get("ChocolateyInstall", r"C:\ProgramData\chocolatey")
        choco_bin = Path(choco_root) / "bin"
        extensions = os.environ.get("PATHEXT", ".COM;.EXE;.BAT;.CMD").split(";")
        for ext in [""] + [e.lower() for e in extensions if e]:
            candidate = choco_bin / f"{name}{ext}"
            if candidate.is_file():
                return candidate
        return None


def default_locator() -> ToolLocator:
    """Return the locator for the running platform."""
    if sys.platform == "win32":
        return WindowsToolLocator()
    return PosixToolLocator()
