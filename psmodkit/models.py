"""Shared data models and the error taxonomy for psmodkit.

Every public operation returns an :class:`OperationResult` (or the
:class:`ToolInstallResult` extension for tool installs).  Internally the
components raise :class:`ModuleKitError` subclasses; the public boundaries
convert them with :meth:`OperationResult.from_error`.
"""

from __future__ import annotations

import re
from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, computed_field, field_validator


# ---------------------------------------------------------------------------
# Patterns
# ---------------------------------------------------------------------------

VERSION_PATTERN = re.compile(r"^\d+\.\d+\.\d+$")
RUNTIME_VERSION_PATTERN = re.compile(r"^\d+\.\d+$")
HELP_URI_PATTERN = re.compile(r"^https?://\S+$")

_INVALID_NAME_CHARS = set('/\\:*?"<>|\'')

COMPATIBLE_EDITIONS = ("Desktop", "Core")


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class ErrorKind(str, Enum):
    """Failure categories reported in :attr:`OperationResult.error_kind`."""

    VALIDATION = "ValidationError"
    ALREADY_EXISTS = "AlreadyExists"
    MISSING_DEPENDENCY = "MissingDependency"
    INVALID_MANIFEST = "InvalidManifest"
    INVALID_ROOT_MODULE = "InvalidRootModule"
    EXTERNAL_TOOL_FAILURE = "ExternalToolFailure"
    PARTIAL_FAILURE = "PartialFailure"
    FILESYSTEM = "FileSystemError"


class ModuleKitError(Exception):
    """Base class for every error raised inside psmodkit."""

    kind: ErrorKind = ErrorKind.EXTERNAL_TOOL_FAILURE


class MetadataValidationError(ModuleKitError):
    """Raised when project metadata fails validation (before any I/O)."""

    kind = ErrorKind.VALIDATION


class AlreadyExistsError(ModuleKitError):
    """Raised when the target project directory is already present."""

    kind = ErrorKind.ALREADY_EXISTS


class MissingDependencyError(ModuleKitError):
    """Raised when an external binary is not available."""

    kind = ErrorKind.MISSING_DEPENDENCY


class PackagerNotFoundError(MissingDependencyError):
    """Raised when the packaging binary cannot be located or installed."""


class InvalidManifestError(ModuleKitError):
    """Raised when a manifest is missing, unparsable or lacks a required key."""

    kind = ErrorKind.INVALID_MANIFEST


class InvalidRootModuleError(ModuleKitError):
    """Raised when ``RootModule`` is absent or is not a ``.psm1`` file."""

    kind = ErrorKind.INVALID_ROOT_MODULE


class ExternalToolError(ModuleKitError):
    """Raised when an external command exits non-zero."""

    kind = ErrorKind.EXTERNAL_TOOL_FAILURE

    def __init__(self, message: str, command: str = "", stderr: str = ""):
        self.command = command
        self.stderr = stderr
        super().__init__(message)


# ---------------------------------------------------------------------------
# Project metadata
# ---------------------------------------------------------------------------


def validate_module_name(name: str) -> str:
    stripped = name.strip()
    if not stripped:
        raise ValueError("Module name must not be empty")
    if stripped != name or any(ch.isspace() for ch in name):
        raise ValueError(f"Module name '{name}' must not contain whitespace")
    bad = sorted(set(name) & _INVALID_NAME_CHARS)
    if bad:
        raise ValueError(f"Module name '{name}' contains invalid characters: {''.join(bad)}")
    return name


class ProjectMetadata(BaseModel):
    """Everything needed to scaffold a module project.

    Instances are immutable.  Construction validates the pattern-constrained
    fields, so a successfully built instance can be written without further
    checks.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Module name, used for every file name")
    version: str = Field(default="0.1.0", description="MAJOR.MINOR.PATCH")
    author: str = Field(default="")
    company: str = Field(default="")
    description: str = Field(default="")
    min_runtime_version: str = Field(default="5.1", description="MAJOR.MINOR")
    functions_to_export: tuple[str, ...] = Field(default=())
    help_uri: Optional[str] = Field(default=None)
    copyright: str = Field(default="")
    compatible_editions: tuple[str, ...] = Field(default=())
    required_modules: tuple[str, ...] = Field(default=())
    cmdlets_to_export: tuple[str, ...] = Field(default=())
    variables_to_export: tuple[str, ...] = Field(default=())
    aliases_to_export: tuple[str, ...] = Field(default=())
    prefix: str = Field(default="")

    @field_validator("name")
    @classmethod
    def _check_name(cls, value: str) -> str:
        return validate_module_name(value)

    @field_validator("version")
    @classmethod
    def _check_version(cls, value: str) -> str:
        if not VERSION_PATTERN.match(value):
            raise ValueError(f"Version '{value}' must match MAJOR.MINOR.PATCH")
        return value

    @field_validator("min_runtime_version")
    @classmethod
    def _check_runtime_version(cls, value: str) -> str:
        if not RUNTIME_VERSION_PATTERN.match(value):
            raise ValueError(f"Runtime version '{value}' must match MAJOR.MINOR")
        return value

    @field_validator("help_uri")
    @classmethod
    def _check_help_uri(cls, value: Optional[str]) -> Optional[str]:
        if value in (None, ""):
            return None
        if not HELP_URI_PATTERN.match(value):
            raise ValueError(f"Help URI '{value}' must start with http:// or https://")
        return value

    @field_validator("compatible_editions")
    @classmethod
    def _check_editions(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        unknown = [v for v in value if v not in COMPATIBLE_EDITIONS]
        if unknown:
            raise ValueError(
                f"Unknown edition(s) {', '.join(unknown)}; expected one of {', '.join(COMPATIBLE_EDITIONS)}"
            )
        return value

    @property
    def root_module(self) -> str:
        return f"{self.name}.psm1"

    @property
    def manifest_filename(self) -> str:
        return f"{self.name}.psd1"


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


class OperationResult(BaseModel):
    """Uniform outcome of a public operation."""

    success: bool
    path: Optional[Path] = Field(default=None, description="Primary artifact produced")
    error: Optional[str] = Field(default=None)
    error_kind: Optional[ErrorKind] = Field(default=None)
    warnings: list[str] = Field(default_factory=list)

    @classmethod
    def ok(cls, path: Path | None = None, warnings: list[str] | None = None) -> "OperationResult":
        warnings = list(warnings or [])
        return cls(
            success=True,
            path=path,
            error_kind=ErrorKind.PARTIAL_FAILURE if warnings else None,
            warnings=warnings,
        )

    @classmethod
    def from_error(cls, exc: BaseException) -> "OperationResult":
        """Convert an exception caught at an operation boundary.

        A plain ``OSError`` (permissions, disk full, missing directory) comes
        from psmodkit's own file writes and maps to ``FileSystemError``;
        failures of external commands arrive as ``ExternalToolError``.
        """
        if isinstance(exc, ModuleKitError):
            return cls(success=False, error=str(exc), error_kind=exc.kind)
        if isinstance(exc, ValidationError):
            messages = [err["msg"].removeprefix("Value error, ") for err in exc.errors()]
            return cls(success=False, error="; ".join(messages), error_kind=ErrorKind.VALIDATION)
        if isinstance(exc, OSError):
            return cls(success=False, error=str(exc), error_kind=ErrorKind.FILESYSTEM)
        return cls(success=False, error=str(exc), error_kind=ErrorKind.EXTERNAL_TOOL_FAILURE)


class ToolInstallResult(BaseModel):
    """Per-tool outcome of a development tool install pass."""

    installed: list[str] = Field(default_factory=list)
    failed: list[str] = Field(default_factory=list)
    errors: dict[str, str] = Field(default_factory=dict)

    @computed_field  # type: ignore[misc]
    @property
    def success(self) -> bool:
        """True when no tool failed."""
        return not self.failed
