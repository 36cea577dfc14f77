"""Jinja2 template rendering for module scaffolding and packaging.

Provides the TemplateRenderer class which loads Jinja2 templates from the
``psmodkit/scaffolder/templates/`` directory and renders them with
project-specific context data.  Every template is versioned through
``TEMPLATE_VERSION``, which is injected into each render context and stamped
into the generated artifacts.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Iterable

from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape

from psmodkit.utils import ps_quote, write_text

TEMPLATE_VERSION = "1"

# ---------------------------------------------------------------------------
# Template directory discovery
# ---------------------------------------------------------------------------

_DEFAULT_TEMPLATE_DIR = Path(__file__).parent / "templates"


# ---------------------------------------------------------------------------
# TemplateRenderer
# ---------------------------------------------------------------------------


class TemplateRenderer:
    """Renders Jinja2 templates for module scaffolding.

    The renderer discovers ``.j2`` template files under a configurable
    template directory.  Missing context variables raise instead of rendering
    as empty strings, so a template can never silently lose a slot.
    """

    def __init__(self, template_dir: str | Path | None = None) -> None:
        if template_dir is None:
            template_dir = _DEFAULT_TEMPLATE_DIR
        self.template_dir = Path(template_dir)
        self.env = Environment(
            loader=FileSystemLoader(str(self.template_dir)),
            autoescape=select_autoescape([]),
            undefined=StrictUndefined,
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self.env.filters["psquote"] = ps_quote
        self.env.filters["pslist"] = ps_list

    # -- Rendering ---------------------------------------------------------

    def render(self, template_path: str, context: dict[str, Any] | None = None) -> str:
        """Render a single template with the provided context.

        Args:
            template_path: Path relative to the template directory (e.g.
                ``"module.psd1.j2"``).
            context: Variables available inside the template.  The
                ``template_version`` variable is always provided.

        Returns:
            The rendered template content as a string.
        """
        template = self.env.get_template(template_path)
        return template.render(template_version=TEMPLATE_VERSION, **(context or {}))

    def render_to_file(
        self,
        template_path: str,
        output_path: str | Path,
        context: dict[str, Any] | None = None,
        *,
        encoding: str = "utf-8",
    ) -> Path:
        """Render a template and write the result to *output_path*.

        Parent directories are created automatically.
        """
        content = self.render(template_path, context)
        return write_text(Path(output_path), content, encoding=encoding)

    def list_templates(self) -> list[str]:
        """Return a sorted list of all ``.j2`` template names."""
        if not self.template_dir.is_dir():
            return []
        return sorted(
            str(p.relative_to(self.template_dir))
            for p in self.template_dir.rglob("*.j2")
        )


# ---------------------------------------------------------------------------
# Jinja2 custom filters
# ---------------------------------------------------------------------------


def ps_list(values: Iterable[Any]) -> str:
    """Render *values* as a PowerShell array literal, ``@()`` when empty."""
    items = [ps_quote(v) for v in values]
    return "@(" + ", ".join(items) + ")"
