"""Package manager front-ends used to install missing tools.

Two kinds are needed: the PowerShell Gallery (through ``pwsh``) for the
PowerShell development modules, and the operating system's package manager
for standalone binaries such as ``nuget``.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Protocol

from psmodkit.locator import ToolLocator, default_locator
from psmodkit.models import ExternalToolError, MissingDependencyError
from psmodkit.utils import ps_quote, run_command


class PackageManager(Protocol):
    """Checks for and installs named packages."""

    def is_installed(self, name: str) -> bool:
        ...

    def install(self, name: str) -> None:
        ...


def _check(cmd: list[str], returncode: int, stderr: str) -> None:
    if returncode != 0:
        cmd_str = " ".join(cmd)
        raise ExternalToolError(
            f"Command failed (exit {returncode}): {cmd_str}\n{stderr}",
            command=cmd_str,
            stderr=stderr,
        )


# ---------------------------------------------------------------------------
# PowerShell Gallery
# ---------------------------------------------------------------------------


class PowerShellGallery:
    """Installs PowerShell modules for the current user via ``Install-Module``."""

    def __init__(
        self,
        pwsh: str = "pwsh",
        locator: ToolLocator | None = None,
        timeout: float | None = None,
    ) -> None:
        self.pwsh = pwsh
        self.locator = locator or default_locator()
        self.timeout = timeout

    def _executable(self) -> Path:
        found = self.locator.locate(self.pwsh)
        if found is None:
            raise MissingDependencyError(f"{self.pwsh} was not found on PATH")
        return found

    def _command(self, script: str) -> list[str]:
        return [str(self._executable()), "-NoProfile", "-NonInteractive", "-Command", script]

    def is_installed(self, name: str) -> bool:
        script = (
            f"if (Get-Module -ListAvailable -Name {ps_quote(name)}) {{ exit 0 }} else {{ exit 1 }}"
        )
        returncode, _stdout, _stderr = run_command(self._command(script), timeout=self.timeout)
        return returncode == 0

    def install(self, name: str) -> None:
        script = (
            f"Install-Module -Name {ps_quote(name)} -Scope CurrentUser -Force -AllowClobber "
            "-ErrorAction Stop"
        )
        cmd = self._command(script)
        returncode, _stdout, stderr = run_command(cmd, timeout=self.timeout)
        _check(cmd, returncode, stderr)


# ---------------------------------------------------------------------------
# System package managers
# ---------------------------------------------------------------------------


class SystemPackageManager:
    """Installs binaries with the platform's package manager.

    ``package_names`` maps a tool name to the package that provides it when
    the two differ (Chocolatey ships nuget as ``nuget.commandline``).
    """

    def __init__(
        self,
        executable: str,
        install_args: list[str],
        package_names: dict[str, str] | None = None,
        locator: ToolLocator | None = None,
        timeout: float | None = None,
    ) -> None:
        self.executable = executable
        self.install_args = install_args
        self.package_names = package_names or {}
        self.locator = locator or default_locator()
        self.timeout = timeout

    def is_installed(self, name: str) -> bool:
        return self.locator.locate(name) is not None

    def install(self, name: str) -> None:
        manager = self.locator.locate(self.executable)
        if manager is None:
            raise MissingDependencyError(f"{self.executable} was not found on PATH")
        package = self.package_names.get(name, name)
        cmd = [str(manager)] + self.install_args + [package]
        returncode, _stdout, stderr = run_command(cmd, timeout=self.timeout)
        _check(cmd, returncode, stderr)


def system_package_manager(
    locator: ToolLocator | None = None,
    timeout: float | None = None,
) -> SystemPackageManager:
    """Return the package manager for the running platform."""
    if sys.platform == "win32":
        return SystemPackageManager(
            "choco",
            ["install", "-y"],
            package_names={"nuget": "nuget.commandline"},
            locator=locator,
            timeout=timeout,
        )
    if sys.platform == "darwin":
        return SystemPackageManager("brew", ["install"], locator=locator, timeout=timeout)
    return SystemPackageManager(
        "apt-get", ["install", "-y"], locator=locator, timeout=timeout
    )
