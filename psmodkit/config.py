"""psmodkit configuration.

Typed defaults for every operation.  All settings use Pydantic v2 models so
they are validated at construction time and can be saved to / loaded from
JSON or picked up from environment variables.
"""

from __future__ import annotations

import getpass
import os
import sys
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from psmodkit.models import RUNTIME_VERSION_PATTERN, VERSION_PATTERN

DEFAULT_DEV_TOOLS: list[str] = ["Pester", "PSScriptAnalyzer", "platyPS"]


def _current_user() -> str:
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return "Unknown"


def default_modules_root() -> Path:
    """Per-user PowerShell module directory for the current platform."""
    home = Path.home()
    if sys.platform == "win32":
        return home / "Documents" / "WindowsPowerShell" / "Modules"
    return home / ".local" / "share" / "powershell" / "Modules"


class Config(BaseModel):
    """Global psmodkit configuration.

    Instances are created once by the CLI (from defaults, a JSON file or the
    environment) and passed to the scaffolder, packager and tool installer.
    """

    working_dir: Path = Field(default_factory=Path.cwd)

    # Metadata defaults for new projects
    default_author: str = Field(default_factory=_current_user)
    default_company: str = Field(default="")
    default_version: str = Field(default="0.1.0")
    default_runtime_version: str = Field(default="5.1")

    # External binaries
    packager: str = Field(default="nuget", description="Packaging binary name")
    pwsh: str = Field(default="pwsh", description="PowerShell binary used for gallery installs")
    command_timeout: Optional[float] = Field(
        default=None, description="Seconds before an external command is killed (None waits)"
    )

    # Packaging
    package_tag: str = Field(default="PSModule")
    package_output_dir: Optional[Path] = Field(
        default=None, description="Where nuget writes archives; defaults to the working directory"
    )
    modules_root: Path = Field(default_factory=default_modules_root)

    # Development tools installed by ``install-dev-tools``
    dev_tools: list[str] = Field(default_factory=lambda: list(DEFAULT_DEV_TOOLS))

    @field_validator("default_version")
    @classmethod
    def _check_version(cls, value: str) -> str:
        if not VERSION_PATTERN.match(value):
            raise ValueError(f"Version '{value}' must match MAJOR.MINOR.PATCH")
        return value

    @field_validator("default_runtime_version")
    @classmethod
    def _check_runtime_version(cls, value: str) -> str:
        if not RUNTIME_VERSION_PATTERN.match(value):
            raise ValueError(f"Runtime version '{value}' must match MAJOR.MINOR")
        return value

    # ------------------------------------------------------------------
    # Derived paths
    # ------------------------------------------------------------------

    @property
    def output_path(self) -> Path:
        """Directory receiving built ``.nupkg`` archives."""
        return self.package_output_dir or self.working_dir

    def install_path(self, module_name: str) -> Path:
        """Local install location for *module_name*."""
        return self.modules_root / module_name

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def save(self, path: Path) -> Path:
        """Persist the configuration to a JSON file."""
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(self.model_dump_json(indent=2), encoding="utf-8")
        return target

    @classmethod
    def load(cls, path: Path) -> "Config":
        """Load a previously-saved configuration from JSON."""
        raw = Path(path).read_text(encoding="utf-8")
        return cls.model_validate_json(raw)

    @classmethod
    def from_env(cls) -> "Config":
        """Build a ``Config`` from environment variables.

        Recognised variables (all optional):
            PSMK_WORKING_DIR, PSMK_AUTHOR, PSMK_COMPANY, PSMK_VERSION,
            PSMK_RUNTIME_VERSION, PSMK_PACKAGER, PSMK_PWSH, PSMK_TIMEOUT,
            PSMK_PACKAGE_TAG, PSMK_OUTPUT_DIR, PSMK_MODULES_ROOT,
            PSMK_DEV_TOOLS (comma-separated).
        """
        kwargs: dict[str, Any] = {}
        simple = {
            "PSMK_AUTHOR": "default_author",
            "PSMK_COMPANY": "default_company",
            "PSMK_VERSION": "default_version",
            "PSMK_RUNTIME_VERSION": "default_runtime_version",
            "PSMK_PACKAGER": "packager",
            "PSMK_PWSH": "pwsh",
            "PSMK_PACKAGE_TAG": "package_tag",
        }
        for env_name, field_name in simple.items():
            if os.environ.get(env_name):
                kwargs[field_name] = os.environ[env_name]

        if os.environ.get("PSMK_WORKING_DIR"):
            kwargs["working_dir"] = Path(os.environ["PSMK_WORKING_DIR"])
        if os.environ.get("PSMK_OUTPUT_DIR"):
            kwargs["package_output_dir"] = Path(os.environ["PSMK_OUTPUT_DIR"])
        if os.environ.get("PSMK_MODULES_ROOT"):
            kwargs["modules_root"] = Path(os.environ["PSMK_MODULES_ROOT"])
        if os.environ.get("PSMK_TIMEOUT"):
            kwargs["command_timeout"] = float(os.environ["PSMK_TIMEOUT"])
        if os.environ.get("PSMK_DEV_TOOLS"):
            kwargs["dev_tools"] = [
                t.strip() for t in os.environ["PSMK_DEV_TOOLS"].split(",") if t.strip()
            ]

        return cls(**kwargs)
