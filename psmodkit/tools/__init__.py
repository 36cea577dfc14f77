"""Development tool installation for module projects."""

from psmodkit.tools.installer import ToolInstaller, install_dev_tools
from psmodkit.tools.package_managers import (
    PackageManager,
    PowerShellGallery,
    SystemPackageManager,
    system_package_manager,
)

__all__ = [
    "PackageManager",
    "PowerShellGallery",
    "SystemPackageManager",
    "ToolInstaller",
    "install_dev_tools",
    "system_package_manager",
]
