"""Module loader (``.psm1``) generation.

The loader is a static template: it discovers everything it needs from the
sibling manifest at import time, so no project data is substituted into it.
"""

from __future__ import annotations

from pathlib import Path

from psmodkit.models import ModuleKitError, OperationResult

from .templates import TemplateRenderer


class LoaderEmitter:
    """Writes ``<name>.psm1`` into a project directory."""

    TEMPLATE = "module.psm1.j2"

    def __init__(self, renderer: TemplateRenderer | None = None) -> None:
        self.renderer = renderer or TemplateRenderer()

    def emit(self, project_dir: str | Path, module_name: str) -> OperationResult:
        """Write the loader for *module_name* and return its path."""
        try:
            return OperationResult.ok(self.write(Path(project_dir), module_name))
        except (ModuleKitError, OSError) as exc:
            return OperationResult.from_error(exc)

    def write(self, project_dir: Path, module_name: str) -> Path:
        return self.renderer.render_to_file(self.TEMPLATE, project_dir / f"{module_name}.psm1")
