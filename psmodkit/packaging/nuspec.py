"""NuGet package specification (``.nuspec``) generation from a manifest."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel

from psmodkit.models import (
    InvalidManifestError,
    InvalidRootModuleError,
    ModuleKitError,
    OperationResult,
)
from psmodkit.scaffolder.manifest import ManifestRecord, read_manifest
from psmodkit.scaffolder.templates import TemplateRenderer

NUSPEC_NAMESPACE = "http://schemas.microsoft.com/packaging/2011/08/nuspec.xsd"
ROOT_MODULE_EXTENSION = ".psm1"
DEFAULT_TAG = "PSModule"


class PackageSpec(BaseModel):
    """The four manifest-derived fields plus the static owner/tag values."""

    id: str
    version: str
    authors: str
    owners: str
    description: str
    tags: str = DEFAULT_TAG

    @property
    def filename(self) -> str:
        return f"{self.id}.nuspec"


def package_id(record: ManifestRecord) -> str:
    """Derive the package id from the manifest's ``RootModule``."""
    root_module = (record.root_module or "").strip()
    if not root_module:
        raise InvalidRootModuleError(f"Manifest {record.path} does not declare a RootModule")
    if not root_module.lower().endswith(ROOT_MODULE_EXTENSION):
        raise InvalidRootModuleError(
            f"RootModule '{root_module}' in {record.path} is not a {ROOT_MODULE_EXTENSION} file"
        )
    return Path(root_module).name[: -len(ROOT_MODULE_EXTENSION)]


def spec_from_manifest(record: ManifestRecord, tag: str = DEFAULT_TAG) -> PackageSpec:
    pkg_id = package_id(record)
    if not record.author:
        raise InvalidManifestError(f"Manifest {record.path} has no Author")
    if not record.description:
        raise InvalidManifestError(f"Manifest {record.path} has no Description")
    return PackageSpec(
        id=pkg_id,
        version=record.module_version,
        authors=record.author,
        owners=record.author,
        description=record.description,
        tags=tag,
    )


class PackageSpecBuilder:
    """Writes ``<id>.nuspec`` next to a module manifest."""

    TEMPLATE = "module.nuspec.j2"

    def __init__(self, renderer: TemplateRenderer | None = None, tag: str = DEFAULT_TAG) -> None:
        self.renderer = renderer or TemplateRenderer()
        self.tag = tag

    def build(self, manifest_path: str | Path) -> OperationResult:
        """Load the manifest at *manifest_path* and write its package spec."""
        try:
            return OperationResult.ok(self.write(read_manifest(manifest_path)))
        except (ModuleKitError, OSError) as exc:
            return OperationResult.from_error(exc)

    def write(self, record: ManifestRecord) -> Path:
        spec = spec_from_manifest(record, tag=self.tag)
        context = {"namespace": NUSPEC_NAMESPACE, "spec": spec}
        # UTF-8 with byte-order mark
        return self.renderer.render_to_file(
            self.TEMPLATE,
            record.path.parent / spec.filename,
            context,
            encoding="utf-8-sig",
        )
