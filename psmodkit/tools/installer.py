"""Installation of the PowerShell development tool set."""

from __future__ import annotations

from psmodkit.config import DEFAULT_DEV_TOOLS
from psmodkit.models import ModuleKitError, ToolInstallResult
from psmodkit.utils import print_info, print_success, print_warning

from .package_managers import PackageManager, PowerShellGallery


class ToolInstaller:
    """Installs each development tool that is missing (or all, when forced).

    A failure for one tool is recorded and the pass continues with the next.
    """

    def __init__(
        self,
        package_manager: PackageManager,
        tools: list[str] | None = None,
    ) -> None:
        self.package_manager = package_manager
        self.tools = list(tools) if tools is not None else list(DEFAULT_DEV_TOOLS)

    def install(self, force: bool = False) -> ToolInstallResult:
        result = ToolInstallResult()
        for tool in self.tools:
            try:
                if not force and self.package_manager.is_installed(tool):
                    print_info(f"{tool} is already installed")
                    continue
                print_info(f"Installing {tool}...")
                self.package_manager.install(tool)
            except (ModuleKitError, OSError) as exc:
                print_warning(f"Failed to install {tool}: {exc}")
                result.failed.append(tool)
                result.errors[tool] = str(exc)
                continue
            print_success(f"Installed {tool}")
            result.installed.append(tool)
        return result


def install_dev_tools(
    force: bool = False,
    package_manager: PackageManager | None = None,
    tools: list[str] | None = None,
) -> ToolInstallResult:
    """Install the development tools through the PowerShell Gallery."""
    if package_manager is None:
        package_manager = PowerShellGallery()
    return ToolInstaller(package_manager, tools).install(force=force)
