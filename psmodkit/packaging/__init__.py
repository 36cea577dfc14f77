"""NuGet packaging and local installation of module projects.

Quick usage::

    from psmodkit.packaging import PackageBuilder

    result = PackageBuilder().build("MyModule", install=True)
    print(result.path)
"""

from psmodkit.packaging.builder import PackageBuilder, extract_module, find_manifest
from psmodkit.packaging.nuspec import PackageSpec, PackageSpecBuilder, package_id

__all__ = [
    "PackageBuilder",
    "PackageSpec",
    "PackageSpecBuilder",
    "extract_module",
    "find_manifest",
    "package_id",
]
