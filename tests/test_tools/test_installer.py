"""Tests for development tool installation (psmodkit.tools)."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest

from psmodkit.models import ExternalToolError, MissingDependencyError
from psmodkit.tools.installer import ToolInstaller, install_dev_tools
from psmodkit.tools.package_managers import (
    PowerShellGallery,
    SystemPackageManager,
    system_package_manager,
)

TOOLS = ["Pester", "PSScriptAnalyzer", "platyPS"]


# ---------------------------------------------------------------------------
# ToolInstaller
# ---------------------------------------------------------------------------


class TestToolInstaller:
    @pytest.mark.unit
    def test_everything_present(self, package_manager_factory):
        manager = package_manager_factory(installed=set(TOOLS))
        result = ToolInstaller(manager).install()
        assert result.installed == []
        assert result.failed == []
        assert result.errors == {}
        assert result.success is True
        assert manager.install_calls == []
        assert manager.checked == TOOLS

    @pytest.mark.unit
    def test_installs_missing_only(self, package_manager_factory):
        manager = package_manager_factory(installed={"Pester"})
        result = ToolInstaller(manager).install()
        assert result.installed == ["PSScriptAnalyzer", "platyPS"]
        assert manager.install_calls == ["PSScriptAnalyzer", "platyPS"]

    @pytest.mark.unit
    def test_force_reinstalls_everything(self, package_manager_factory):
        manager = package_manager_factory(installed=set(TOOLS))
        result = ToolInstaller(manager).install(force=True)
        assert result.installed == TOOLS
        assert manager.checked == []

    @pytest.mark.unit
    def test_failure_does_not_stop_the_pass(self, package_manager_factory):
        manager = package_manager_factory(broken={"PSScriptAnalyzer"})
        result = ToolInstaller(manager).install()
        assert result.installed == ["Pester", "platyPS"]
        assert result.failed == ["PSScriptAnalyzer"]
        assert "PSScriptAnalyzer" in result.errors["PSScriptAnalyzer"]
        assert result.success is False

    @pytest.mark.unit
    def test_custom_tool_list(self, fake_package_manager):
        result = ToolInstaller(fake_package_manager, ["InvokeBuild"]).install()
        assert result.installed == ["InvokeBuild"]

    @pytest.mark.unit
    def test_success_serialised(self, package_manager_factory):
        manager = package_manager_factory(broken={"Pester"})
        dumped = ToolInstaller(manager, ["Pester"]).install().model_dump()
        assert dumped["success"] is False
        assert dumped["failed"] == ["Pester"]

    @pytest.mark.unit
    def test_install_dev_tools(self, fake_package_manager):
        result = install_dev_tools(package_manager=fake_package_manager)
        assert result.installed == TOOLS

    @pytest.mark.unit
    def test_missing_pwsh_fails_every_tool(self, empty_locator):
        gallery = PowerShellGallery(locator=empty_locator)
        result = install_dev_tools(package_manager=gallery)
        assert result.failed == TOOLS
        assert "pwsh" in result.errors["Pester"]


# ---------------------------------------------------------------------------
# PowerShellGallery
# ---------------------------------------------------------------------------


class TestPowerShellGallery:
    @pytest.mark.unit
    def test_is_installed(self, fake_locator):
        gallery = PowerShellGallery(locator=fake_locator)
        with patch("psmodkit.tools.package_managers.run_command", return_value=(0, "", "")) as run:
            assert gallery.is_installed("Pester") is True
        cmd = run.call_args.args[0]
        assert cmd[:4] == [str(Path("/usr/bin/pwsh")), "-NoProfile", "-NonInteractive", "-Command"]
        assert "Get-Module -ListAvailable -Name 'Pester'" in cmd[4]

    @pytest.mark.unit
    def test_is_not_installed(self, fake_locator):
        gallery = PowerShellGallery(locator=fake_locator)
        with patch("psmodkit.tools.package_managers.run_command", return_value=(1, "", "")):
            assert gallery.is_installed("Pester") is False

    @pytest.mark.unit
    def test_install(self, fake_locator):
        gallery = PowerShellGallery(locator=fake_locator, timeout=60)
        with patch("psmodkit.tools.package_managers.run_command", return_value=(0, "", "")) as run:
            gallery.install("platyPS")
        script = run.call_args.args[0][4]
        assert "Install-Module -Name 'platyPS'" in script
        assert "-Scope CurrentUser" in script
        assert run.call_args.kwargs["timeout"] == 60

    @pytest.mark.unit
    def test_names_are_quoted(self, fake_locator):
        gallery = PowerShellGallery(locator=fake_locator)
        name = "Evil'; Remove-Item -Recurse C:\\; '"
        with patch("psmodkit.tools.package_managers.run_command", return_value=(0, "", "")) as run:
            gallery.is_installed(name)
            gallery.install(name)
        check_script = run.call_args_list[0].args[0][4]
        install_script = run.call_args_list[1].args[0][4]
        quoted = "'Evil''; Remove-Item -Recurse C:\\; '''"
        assert f"-Name {quoted})" in check_script
        assert f"Install-Module -Name {quoted} -Scope" in install_script

    @pytest.mark.unit
    def test_install_failure(self, fake_locator):
        gallery = PowerShellGallery(locator=fake_locator)
        with patch(
            "psmodkit.tools.package_managers.run_command",
            return_value=(1, "", "No match was found"),
        ):
            with pytest.raises(ExternalToolError) as exc_info:
                gallery.install("Nope")
        assert exc_info.value.stderr == "No match was found"

    @pytest.mark.unit
    def test_missing_pwsh(self, empty_locator):
        with pytest.raises(MissingDependencyError):
            PowerShellGallery(locator=empty_locator).install("Pester")


# ---------------------------------------------------------------------------
# SystemPackageManager
# ---------------------------------------------------------------------------


class TestSystemPackageManager:
    @pytest.mark.unit
    def test_is_installed_uses_locator(self, fake_locator):
        manager = SystemPackageManager("apt-get", ["install", "-y"], locator=fake_locator)
        assert manager.is_installed("nuget") is True
        assert manager.is_installed("mono") is False

    @pytest.mark.unit
    def test_install_maps_package_name(self, locator_factory):
        locator = locator_factory({"choco": Path("C:/choco/bin/choco.exe")})
        manager = SystemPackageManager(
            "choco", ["install", "-y"], package_names={"nuget": "nuget.commandline"}, locator=locator
        )
        with patch("psmodkit.tools.package_managers.run_command", return_value=(0, "", "")) as run:
            manager.install("nuget")
        assert run.call_args.args[0] == [
            str(Path("C:/choco/bin/choco.exe")), "install", "-y", "nuget.commandline"
        ]

    @pytest.mark.unit
    def test_missing_manager(self, empty_locator):
        manager = SystemPackageManager("brew", ["install"], locator=empty_locator)
        with pytest.raises(MissingDependencyError):
            manager.install("nuget")

    @pytest.mark.unit
    def test_install_failure(self, locator_factory):
        locator = locator_factory({"apt-get": Path("/usr/bin/apt-get")})
        manager = SystemPackageManager("apt-get", ["install", "-y"], locator=locator)
        with patch("psmodkit.tools.package_managers.run_command", return_value=(100, "", "E: lock")):
            with pytest.raises(ExternalToolError, match="E: lock"):
                manager.install("nuget")

    @pytest.mark.unit
    @pytest.mark.parametrize(
        ("platform", "executable", "nuget_package"),
        [
            ("win32", "choco", "nuget.commandline"),
            ("darwin", "brew", "nuget"),
            ("linux", "apt-get", "nuget"),
        ],
    )
    def test_platform_selection(self, platform, executable, nuget_package, empty_locator):
        with patch("psmodkit.tools.package_managers.sys.platform", platform):
            manager = system_package_manager(locator=empty_locator)
        assert manager.executable == executable
        assert manager.package_names.get("nuget", "nuget") == nuget_package
