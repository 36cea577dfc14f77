"""Main scaffolding orchestrator.

Takes a ``ProjectMetadata`` and generates a PowerShell module project::

    <name>/
        Source/Public/
        Source/Private/
        Tests/
        README.md
        <name>.psd1
        <name>.psm1
        .gitignore          (only with VCS init)
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Iterable, Optional

from pydantic import ValidationError

from psmodkit.config import Config
from psmodkit.locator import ToolLocator, default_locator
from psmodkit.models import (
    AlreadyExistsError,
    ModuleKitError,
    OperationResult,
    ProjectMetadata,
)
from psmodkit.tools.installer import ToolInstaller
from psmodkit.tools.package_managers import PackageManager, PowerShellGallery
from psmodkit.utils import print_info, print_success, print_warning
from psmodkit.vcs import init_repository

from .loader_gen import LoaderEmitter
from .manifest import ManifestBuilder, validate_metadata
from .templates import TemplateRenderer
from .test_gen import TestScaffoldEmitter

PROJECT_DIRECTORIES: tuple[str, ...] = (
    "Source/Public",
    "Source/Private",
    "Tests",
)


class ProjectScaffolder:
    """Creates a module project directory and its generated files.

    Steps run in a fixed order: structure, manifest, loader, then the
    optional tests, tool install and VCS init.  A failure in the first three
    aborts the run and leaves whatever was already written in place.  A
    failure in an optional step is reported as a warning and the run still
    succeeds.
    """

    def __init__(
        self,
        config: Config | None = None,
        renderer: TemplateRenderer | None = None,
        locator: ToolLocator | None = None,
        package_manager: PackageManager | None = None,
    ) -> None:
        self.config = config or Config()
        self.renderer = renderer or TemplateRenderer()
        self.locator = locator or default_locator()
        self.package_manager = package_manager
        self.manifest_builder = ManifestBuilder(self.renderer)
        self.loader_emitter = LoaderEmitter(self.renderer)
        self.test_emitter = TestScaffoldEmitter(self.renderer)

    # -- Public API --------------------------------------------------------

    def create(
        self,
        metadata: ProjectMetadata,
        base_dir: str | Path | None = None,
        *,
        include_tests: bool = False,
        install_tools: bool = False,
        init_vcs: bool = False,
    ) -> OperationResult:
        """Scaffold the project for *metadata* under *base_dir*.

        Args:
            metadata: Validated project metadata.
            base_dir: Parent directory of the project folder.  Defaults to
                the configured working directory.
            include_tests: Also write ``Tests/<name>.Tests.ps1``.
            install_tools: Install missing development tools afterwards.
            init_vcs: Run ``git init`` in the new project.

        Returns:
            ``OperationResult`` whose ``path`` is the project root.
        """
        try:
            validate_metadata(metadata)
            project_root = Path(base_dir or self.config.working_dir) / metadata.name
            if project_root.exists():
                raise AlreadyExistsError(f"Project directory already exists: {project_root}")

            self._create_directory_structure(project_root)
            self._render_readme(project_root, metadata)

            manifest = self.manifest_builder.build(metadata, project_root)
            if not manifest.success:
                return manifest
            print_info(f"Wrote manifest {manifest.path}")

            loader = self.loader_emitter.emit(project_root, metadata.name)
            if not loader.success:
                return loader
            print_info(f"Wrote loader {loader.path}")
        except (ModuleKitError, OSError) as exc:
            return OperationResult.from_error(exc)

        warnings: list[str] = []
        if include_tests:
            tests = self.test_emitter.emit(project_root, metadata.name)
            if not tests.success:
                warnings.append(f"Test scaffold was not written: {tests.error}")
        if install_tools:
            warnings.extend(self._install_tools())
        if init_vcs:
            warnings.extend(self._init_vcs(project_root))

        for warning in warnings:
            print_warning(warning)
        print_success(f"Created module project {project_root}")
        return OperationResult.ok(project_root, warnings)

    # -- Steps -------------------------------------------------------------

    def _create_directory_structure(self, root: Path) -> None:
        for directory in PROJECT_DIRECTORIES:
            (root / directory).mkdir(parents=True, exist_ok=True)

    def _render_readme(self, root: Path, metadata: ProjectMetadata) -> Path:
        context = {"name": metadata.name, "description": metadata.description}
        return self.renderer.render_to_file("README.md.j2", root / "README.md", context)

    def _install_tools(self) -> list[str]:
        package_manager = self.package_manager or PowerShellGallery(
            pwsh=self.config.pwsh,
            locator=self.locator,
            timeout=self.config.command_timeout,
        )
        result = ToolInstaller(package_manager, self.config.dev_tools).install()
        return [
            f"Tool {tool} was not installed: {result.errors.get(tool, 'unknown error')}"
            for tool in result.failed
        ]

    def _init_vcs(self, root: Path) -> list[str]:
        try:
            init_repository(root, locator=self.locator, timeout=self.config.command_timeout)
            self.renderer.render_to_file("gitignore.j2", root / ".gitignore")
        except (ModuleKitError, OSError) as exc:
            return [f"Version control was not initialised: {exc}"]
        print_info(f"Initialised git repository in {root}")
        return []


# ---------------------------------------------------------------------------
# Functional entry point
# ---------------------------------------------------------------------------


def new_project(
    name: str,
    path: str | Path | None = None,
    *,
    version: Optional[str] = None,
    author: Optional[str] = None,
    company: Optional[str] = None,
    description: str = "",
    min_runtime_version: Optional[str] = None,
    exports: Iterable[str] = (),
    help_uri: Optional[str] = None,
    copyright: str = "",
    editions: Iterable[str] = (),
    required_modules: Iterable[str] = (),
    cmdlets: Iterable[str] = (),
    variables: Iterable[str] = (),
    aliases: Iterable[str] = (),
    prefix: str = "",
    init_vcs: bool = False,
    install_tools: bool = False,
    include_tests: bool = False,
    config: Config | None = None,
    **scaffolder_kwargs: Any,
) -> OperationResult:
    """Validate the arguments and scaffold a project.

    Unset metadata falls back to the configured defaults.  Invalid values
    are reported as a ``ValidationError`` result before anything is written.
    """
    config = config or Config()
    try:
        metadata = ProjectMetadata(
            name=name,
            version=version or config.default_version,
            author=author if author is not None else config.default_author,
            company=company if company is not None else config.default_company,
            description=description,
            min_runtime_version=min_runtime_version or config.default_runtime_version,
            functions_to_export=tuple(exports),
            help_uri=help_uri,
            copyright=copyright,
            compatible_editions=tuple(editions),
            required_modules=tuple(required_modules),
            cmdlets_to_export=tuple(cmdlets),
            variables_to_export=tuple(variables),
            aliases_to_export=tuple(aliases),
            prefix=prefix,
        )
    except ValidationError as exc:
        return OperationResult.from_error(exc)

    scaffolder = ProjectScaffolder(config, **scaffolder_kwargs)
    return scaffolder.create(
        metadata,
        path,
        include_tests=include_tests,
        install_tools=install_tools,
        init_vcs=init_vcs,
    )
