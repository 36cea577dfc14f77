"""psmodkit scaffolder -- generates PowerShell module project structures.

Quick usage::

    from psmodkit.scaffolder import ProjectMetadata, ProjectScaffolder

    metadata = ProjectMetadata(
        name="MyModule",
        version="0.1.0",
        author="Jane Doe",
        description="Does things.",
        functions_to_export=["Get-Thing"],
    )
    result = ProjectScaffolder().create(metadata, "/tmp/projects", include_tests=True)
"""

from psmodkit.models import ProjectMetadata
from psmodkit.scaffolder.generator import ProjectScaffolder, new_project
from psmodkit.scaffolder.loader_gen import LoaderEmitter
from psmodkit.scaffolder.manifest import ManifestBuilder, ManifestRecord, read_manifest
from psmodkit.scaffolder.templates import TemplateRenderer
from psmodkit.scaffolder.test_gen import TestScaffoldEmitter

__all__ = [
    "LoaderEmitter",
    "ManifestBuilder",
    "ManifestRecord",
    "ProjectMetadata",
    "ProjectScaffolder",
    "TemplateRenderer",
    "TestScaffoldEmitter",
    "new_project",
    "read_manifest",
]
