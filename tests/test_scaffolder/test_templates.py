"""Tests for template rendering (psmodkit.scaffolder.templates).

Covers:
- PowerShell quoting filters
- Golden output for the manifest, test scaffold and nuspec templates
- The loader template rendering verbatim
- StrictUndefined behaviour and template discovery
"""

from __future__ import annotations

from pathlib import Path

import pytest
from jinja2 import UndefinedError

from psmodkit.models import ProjectMetadata
from psmodkit.scaffolder.manifest import build_entries
from psmodkit.scaffolder.templates import TEMPLATE_VERSION, TemplateRenderer, ps_list, ps_quote

pytestmark = pytest.mark.unit

TEMPLATE_DIR = Path(__file__).resolve().parents[2] / "psmodkit" / "scaffolder" / "templates"


GOLDEN_MANIFEST = """\
#
# Module manifest for module 'Foo'
#
# Generated by: A
#
# Generated with psmodkit template v1
#

@{

# Script module file associated with this manifest.
RootModule = 'Foo.psm1'

# Version number of this module.
ModuleVersion = '1.0.0'

# ID used to uniquely identify this module
GUID = '00000000-0000-0000-0000-000000000001'

# Author of this module
Author = 'A'

# Copyright statement for this module
Copyright = '(c) A. All rights reserved.'

# Description of the functionality provided by this module
Description = 'D'

# Minimum version of the PowerShell engine required by this module
PowerShellVersion = '5.1'

# Functions to export from this module
FunctionsToExport = @()

# Cmdlets to export from this module
CmdletsToExport = @()

# Variables to export from this module
VariablesToExport = @()

# Aliases to export from this module
AliasesToExport = @()

}
"""

GOLDEN_TESTS = """\
# Pester tests generated by psmodkit (template v1).

BeforeAll {
    $modulePath = Join-Path -Path $PSScriptRoot -ChildPath '..' | Join-Path -ChildPath 'Foo.psd1'
}

Describe 'Foo module' {
    It 'imports without errors' {
        { Import-Module -Name $modulePath -Force -ErrorAction Stop } | Should -Not -Throw
    }

    It 'has exported commands' {
        Import-Module -Name $modulePath -Force
        $commands = Get-Command -Module 'Foo'
        $commands | Should -Not -BeNullOrEmpty
    }
}

# Add tests for individual functions below, one Describe block per function.
"""


@pytest.fixture
def renderer() -> TemplateRenderer:
    return TemplateRenderer()


class TestFilters:
    def test_quote_plain(self):
        assert ps_quote("Foo") == "'Foo'"

    def test_quote_escapes_single_quotes(self):
        assert ps_quote("O'Brien") == "'O''Brien'"

    def test_quote_leaves_dollar_alone(self):
        assert ps_quote("$env:PATH") == "'$env:PATH'"

    def test_list_empty(self):
        assert ps_list([]) == "@()"

    def test_list_values(self):
        assert ps_list(["Get-A", "Set-B"]) == "@('Get-A', 'Set-B')"


class TestGoldenTemplates:
    def test_template_version(self):
        assert TEMPLATE_VERSION == "1"

    def test_manifest(self, renderer):
        meta = ProjectMetadata(name="Foo", version="1.0.0", author="A", description="D")
        entries = build_entries(meta, guid="00000000-0000-0000-0000-000000000001")
        rendered = renderer.render(
            "module.psd1.j2", {"name": "Foo", "author": "A", "entries": entries}
        )
        assert rendered == GOLDEN_MANIFEST

    def test_test_scaffold(self, renderer):
        assert renderer.render("module.Tests.ps1.j2", {"module_name": "Foo"}) == GOLDEN_TESTS

    def test_loader_is_rendered_verbatim(self, renderer):
        source = (TEMPLATE_DIR / "module.psm1.j2").read_text(encoding="utf-8")
        expected = source.removeprefix("{% raw %}\n").removesuffix("{% endraw %}\n")
        rendered = renderer.render("module.psm1.j2")
        assert rendered == expected
        assert rendered.startswith("# Module loader generated by psmodkit (template v1).")

    def test_nuspec_escapes_xml(self, renderer):
        spec = {
            "id": "Foo",
            "version": "1.0.0",
            "authors": "A & B",
            "owners": "A & B",
            "description": "<desc>",
            "tags": "PSModule",
        }
        rendered = renderer.render("module.nuspec.j2", {"namespace": "urn:x", "spec": spec})
        assert "<authors>A &amp; B</authors>" in rendered
        assert "<description>&lt;desc&gt;</description>" in rendered
        assert rendered.startswith('<?xml version="1.0" encoding="utf-8"?>')


class TestRenderer:
    def test_missing_variable_raises(self, renderer):
        with pytest.raises(UndefinedError):
            renderer.render("module.Tests.ps1.j2", {})

    def test_render_to_file_creates_parents(self, renderer, tmp_path: Path):
        out = renderer.render_to_file(
            "module.Tests.ps1.j2", tmp_path / "a" / "b.ps1", {"module_name": "Foo"}
        )
        assert out.read_text(encoding="utf-8") == GOLDEN_TESTS

    def test_list_templates(self, renderer):
        assert renderer.list_templates() == [
            "README.md.j2",
            "gitignore.j2",
            "module.Tests.ps1.j2",
            "module.nuspec.j2",
            "module.psd1.j2",
            "module.psm1.j2",
        ]

    def test_custom_template_dir(self, tmp_path: Path):
        (tmp_path / "hello.j2").write_text("Hello {{ who }} v{{ template_version }}", encoding="utf-8")
        renderer = TemplateRenderer(tmp_path)
        assert renderer.render("hello.j2", {"who": "world"}) == "Hello world v1"
