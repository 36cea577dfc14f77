"""Shared pytest fixtures for the psmodkit test suite.

Provides reusable fixtures for:
- Sample project metadata
- A Config rooted in a temporary directory
- Fake tool locators and package managers (no external binaries needed)
- A fake ``nuget pack`` that writes a real zip archive
"""

from __future__ import annotations

import zipfile
from pathlib import Path
from typing import Optional

import pytest

from psmodkit.config import Config
from psmodkit.models import ExternalToolError, ProjectMetadata


# ---------------------------------------------------------------------------
# Metadata & configuration
# ---------------------------------------------------------------------------


@pytest.fixture
def metadata() -> ProjectMetadata:
    """A realistic ProjectMetadata with two exported functions."""
    return ProjectMetadata(
        name="Contoso.Tools",
        version="1.2.3",
        author="Jane Doe",
        description="Helpers for Contoso infrastructure.",
        min_runtime_version="5.1",
        functions_to_export=("Get-ContosoUser", "Set-ContosoUser"),
    )


@pytest.fixture
def config(tmp_path: Path) -> Config:
    """Config whose working directory and module root live under tmp_path."""
    work = tmp_path / "work"
    work.mkdir()
    return Config(
        working_dir=work,
        default_author="Test Author",
        modules_root=tmp_path / "modules",
    )


# ---------------------------------------------------------------------------
# Fakes for external binaries
# ---------------------------------------------------------------------------


class FakeLocator:
    """ToolLocator that resolves only the names it was given."""

    def __init__(self, tools: dict[str, Path] | None = None) -> None:
        self.tools = dict(tools or {})
        self.calls: list[str] = []

    def locate(self, name: str) -> Optional[Path]:
        self.calls.append(name)
        return self.tools.get(name)


class FakePackageManager:
    """PackageManager recording every check and install."""

    def __init__(
        self,
        installed: set[str] | None = None,
        broken: set[str] | None = None,
    ) -> None:
        self.installed = set(installed or ())
        self.broken = set(broken or ())
        self.checked: list[str] = []
        self.install_calls: list[str] = []

    def is_installed(self, name: str) -> bool:
        self.checked.append(name)
        return name in self.installed

    def install(self, name: str) -> None:
        self.install_calls.append(name)
        if name in self.broken:
            raise ExternalToolError(f"install of {name} failed", command=f"install {name}")
        self.installed.add(name)


@pytest.fixture
def fake_locator() -> FakeLocator:
    """Locator that knows git, nuget and pwsh."""
    return FakeLocator(
        {
            "git": Path("/usr/bin/git"),
            "nuget": Path("/usr/local/bin/nuget"),
            "pwsh": Path("/usr/bin/pwsh"),
        }
    )


@pytest.fixture
def empty_locator() -> FakeLocator:
    """Locator that finds nothing."""
    return FakeLocator()


@pytest.fixture
def fake_package_manager() -> FakePackageManager:
    return FakePackageManager()


def fake_nuget_pack(cmd: list[str], cwd=None, timeout=None, env=None) -> tuple[int, str, str]:
    """Stand-in for ``run_command`` that behaves like ``nuget pack``.

    Reads the id and version from the nuspec and writes
    ``<id>.<version>.nupkg`` containing the files next to the spec plus the
    bookkeeping entries nuget adds.
    """
    import xml.etree.ElementTree as ET

    spec_path = Path(cmd[2])
    output_dir = Path(cmd[cmd.index("-OutputDirectory") + 1])
    ns = {"n": "http://schemas.microsoft.com/packaging/2011/08/nuspec.xsd"}
    root = ET.parse(spec_path).getroot()
    pkg_id = root.find("n:metadata/n:id", ns).text
    version = root.find("n:metadata/n:version", ns).text

    archive = output_dir / f"{pkg_id}.{version}.nupkg"
    with zipfile.ZipFile(archive, "w") as bundle:
        for file in sorted(spec_path.parent.rglob("*")):
            if file.is_file() and file.suffix != ".nupkg":
                bundle.write(file, file.relative_to(spec_path.parent).as_posix())
        bundle.writestr("[Content_Types].xml", "<Types/>")
        bundle.writestr("_rels/.rels", "<Relationships/>")
        bundle.writestr("package/services/metadata/core-properties/x.psmdcp", "<x/>")
    return (0, f"Successfully created package '{archive}'.", "")


@pytest.fixture
def locator_factory():
    """The FakeLocator class, for tests that need a custom tool set."""
    return FakeLocator


@pytest.fixture
def package_manager_factory():
    """The FakePackageManager class, for tests that need custom state."""
    return FakePackageManager


@pytest.fixture
def nuget_pack():
    """Side effect for patching ``run_command`` with a fake ``nuget pack``."""
    return fake_nuget_pack
