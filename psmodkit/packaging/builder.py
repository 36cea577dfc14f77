"""Module packaging: manifest -> nuspec -> ``.nupkg`` -> optional local install.

Installing replaces any existing copy of the module under the per-user
module root **without asking**.  Callers that need to keep a previous
install must move it away first.
"""

from __future__ import annotations

import shutil
import zipfile
from pathlib import Path, PurePosixPath
from urllib.parse import unquote

from psmodkit.config import Config
from psmodkit.locator import ToolLocator, default_locator
from psmodkit.models import (
    ExternalToolError,
    InvalidManifestError,
    ModuleKitError,
    OperationResult,
    PackagerNotFoundError,
)
from psmodkit.scaffolder.manifest import read_manifest
from psmodkit.scaffolder.templates import TemplateRenderer
from psmodkit.tools.package_managers import PackageManager, system_package_manager
from psmodkit.utils import print_info, print_success, print_warning, run_command

from .nuspec import PackageSpecBuilder, spec_from_manifest

ARCHIVE_EXTENSION = ".nupkg"

# Entries nuget adds to every archive; they are not part of the module.
_NUGET_METADATA_DIRS = ("_rels", "package")
_NUGET_METADATA_FILES = ("[Content_Types].xml",)


def find_manifest(working_dir: Path, name: str | None = None) -> Path:
    """Locate the manifest to package.

    With *name*, looks for ``<name>.psd1`` in *working_dir* and then in
    ``<working_dir>/<name>/``.  Without it, takes the first ``*.psd1`` in
    *working_dir* in name order.
    """
    if name:
        for candidate in (working_dir / f"{name}.psd1", working_dir / name / f"{name}.psd1"):
            if candidate.is_file():
                return candidate
        raise InvalidManifestError(f"No manifest for module '{name}' found in {working_dir}")

    manifests = sorted(p for p in working_dir.glob("*.psd1") if p.is_file())
    if not manifests:
        raise InvalidManifestError(f"No module manifest found in {working_dir}")
    return manifests[0]


def _is_module_entry(member: zipfile.ZipInfo) -> bool:
    parts = PurePosixPath(member.filename).parts
    if not parts or member.is_dir():
        return False
    if parts[0] in _NUGET_METADATA_DIRS:
        return False
    if len(parts) == 1 and (parts[0] in _NUGET_METADATA_FILES or parts[0].endswith(".nuspec")):
        return False
    return True


def extract_module(archive: Path, destination: Path) -> list[Path]:
    """Extract the module files of *archive* into *destination*."""
    written: list[Path] = []
    destination.mkdir(parents=True, exist_ok=True)
    root = destination.resolve()
    with zipfile.ZipFile(archive) as bundle:
        for member in bundle.infolist():
            if not _is_module_entry(member):
                continue
            target = (root / unquote(member.filename)).resolve()
            if root not in target.parents:
                raise ExternalToolError(f"Archive entry escapes install directory: {member.filename}")
            target.parent.mkdir(parents=True, exist_ok=True)
            with bundle.open(member) as src, open(target, "wb") as dst:
                shutil.copyfileobj(src, dst)
            written.append(target)
    return written


class PackageBuilder:
    """Builds (and optionally installs) a NuGet package for a module.

    Every external command runs with ``cwd`` set to the working directory
    passed to :meth:`build`; the process working directory is never changed.
    """

    def __init__(
        self,
        config: Config | None = None,
        locator: ToolLocator | None = None,
        system_packages: PackageManager | None = None,
        renderer: TemplateRenderer | None = None,
    ) -> None:
        self.config = config or Config()
        self.locator = locator or default_locator()
        self.system_packages = system_packages or system_package_manager(
            locator=self.locator, timeout=self.config.command_timeout
        )
        self.spec_builder = PackageSpecBuilder(renderer, tag=self.config.package_tag)

    # -- Public API --------------------------------------------------------

    def build(
        self,
        name: str | None = None,
        install: bool = False,
        install_packager: bool = False,
        working_dir: str | Path | None = None,
    ) -> OperationResult:
        """Package a module.

        Args:
            name: Module name.  Defaults to the first manifest in *working_dir*.
            install: Extract the package into the per-user module root and
                delete the archive.  Any previous install is removed first.
            install_packager: Install nuget through the system package
                manager when it is missing.
            working_dir: Directory holding the manifest.  Defaults to the
                configured working directory.

        Returns:
            ``OperationResult`` whose ``path`` is the archive, or the install
            directory when *install* is set.
        """
        try:
            return self._build(name, install, install_packager, working_dir)
        except (ModuleKitError, OSError, zipfile.BadZipFile) as exc:
            return OperationResult.from_error(exc)

    # -- Steps -------------------------------------------------------------

    def _build(
        self,
        name: str | None,
        install: bool,
        install_packager: bool,
        working_dir: str | Path | None,
    ) -> OperationResult:
        cwd = Path(working_dir) if working_dir else self.config.working_dir
        packager = self.resolve_packager(install_packager)

        manifest_path = find_manifest(cwd, name)
        record = read_manifest(manifest_path)
        spec = spec_from_manifest(record, tag=self.config.package_tag)
        spec_path = self.spec_builder.write(record)
        print_info(f"Wrote package spec {spec_path}")

        output_dir = self.config.package_output_dir or cwd
        output_dir.mkdir(parents=True, exist_ok=True)
        self.pack(packager, spec_path, output_dir, cwd)
        archive = output_dir / f"{spec.id}.{spec.version}{ARCHIVE_EXTENSION}"
        if not archive.is_file():
            raise ExternalToolError(f"Packager did not produce {archive}")
        print_success(f"Built {archive}")

        if not install:
            return OperationResult.ok(archive)

        install_dir = self.install(archive, spec.id)
        return OperationResult.ok(install_dir)

    def resolve_packager(self, install_packager: bool = False) -> Path:
        """Find the packaging binary, installing it first when allowed."""
        name = self.config.packager
        found = self.locator.locate(name)
        if found is not None:
            return found
        if not install_packager:
            raise PackagerNotFoundError(
                f"PackagerNotFound: {name} is not installed (pass --install-packager to install it)"
            )

        print_info(f"Installing {name}...")
        self.system_packages.install(name)
        found = self.locator.locate(name)
        if found is None:
            raise PackagerNotFoundError(f"PackagerNotFound: {name} is still missing after install")
        return found

    def pack(self, packager: Path, spec_path: Path, output_dir: Path, cwd: Path) -> None:
        """Run ``nuget pack`` on *spec_path*."""
        cmd = [
            str(packager),
            "pack",
            str(spec_path),
            "-OutputDirectory",
            str(output_dir),
            "-NoPackageAnalysis",
            "-NonInteractive",
        ]
        returncode, stdout, stderr = run_command(cmd, cwd=cwd, timeout=self.config.command_timeout)
        if returncode != 0:
            cmd_str = " ".join(cmd)
            raise ExternalToolError(
                f"Packager failed (exit {returncode}): {cmd_str}\n{stderr or stdout}",
                command=cmd_str,
                stderr=stderr,
            )

    def install(self, archive: Path, module_name: str) -> Path:
        """Replace the local install of *module_name* with *archive*'s contents."""
        destination = self.config.install_path(module_name)
        if destination.exists():
            print_warning(f"Removing existing install at {destination}")
            shutil.rmtree(destination)
        extract_module(archive, destination)
        archive.unlink()
        print_success(f"Installed {module_name} to {destination}")
        return destination
