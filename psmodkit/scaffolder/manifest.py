"""Module manifest (``.psd1``) writing and reading.

:class:`ManifestBuilder` turns a :class:`ProjectMetadata` into a manifest on
disk.  :func:`read_manifest` parses an existing manifest back into a
:class:`ManifestRecord`; it understands the PowerShell data-file subset that
both this builder and ``New-ModuleManifest`` emit.
"""

from __future__ import annotations

import codecs
import re
import uuid
from pathlib import Path
from typing import Any, Iterator, Optional

from pydantic import BaseModel, Field, ValidationError

from psmodkit.models import (
    HELP_URI_PATTERN,
    RUNTIME_VERSION_PATTERN,
    VERSION_PATTERN,
    InvalidManifestError,
    MetadataValidationError,
    ModuleKitError,
    OperationResult,
    ProjectMetadata,
)

from .templates import TemplateRenderer, ps_list, ps_quote


# ---------------------------------------------------------------------------
# Manifest parameters
# ---------------------------------------------------------------------------


class ManifestEntry(BaseModel):
    """One ``Key = value`` line of the manifest, value already rendered."""

    key: str
    value: str
    comment: str


def validate_metadata(metadata: ProjectMetadata) -> None:
    """Re-check the pattern-constrained fields.

    ``ProjectMetadata`` validates on construction, but ``model_construct``
    and ``model_copy(update=...)`` bypass validators.
    """
    if not metadata.name:
        raise MetadataValidationError("Module name must not be empty")
    if not VERSION_PATTERN.match(metadata.version):
        raise MetadataValidationError(
            f"Version '{metadata.version}' must match MAJOR.MINOR.PATCH"
        )
    if not RUNTIME_VERSION_PATTERN.match(metadata.min_runtime_version):
        raise MetadataValidationError(
            f"Runtime version '{metadata.min_runtime_version}' must match MAJOR.MINOR"
        )
    if metadata.help_uri and not HELP_URI_PATTERN.match(metadata.help_uri):
        raise MetadataValidationError(
            f"Help URI '{metadata.help_uri}' must start with http:// or https://"
        )


def build_entries(metadata: ProjectMetadata, guid: str | None = None) -> list[ManifestEntry]:
    """Assemble the ordered manifest entries for *metadata*.

    Optional keys (company, editions, required modules, help URI, command
    prefix) are left out entirely when empty.
    """
    copyright_text = metadata.copyright or f"(c) {metadata.author}. All rights reserved."

    candidates: list[tuple[str, Any, str, bool]] = [
        # key, rendered value (None = omit), comment, required
        ("RootModule", ps_quote(metadata.root_module),
         "Script module file associated with this manifest.", True),
        ("ModuleVersion", ps_quote(metadata.version), "Version number of this module.", True),
        ("CompatiblePSEditions",
         ps_list(metadata.compatible_editions) if metadata.compatible_editions else None,
         "Supported PSEditions", False),
        ("GUID", ps_quote(guid or str(uuid.uuid4())), "ID used to uniquely identify this module", True),
        ("Author", ps_quote(metadata.author), "Author of this module", True),
        ("CompanyName", ps_quote(metadata.company) if metadata.company else None,
         "Company or vendor of this module", False),
        ("Copyright", ps_quote(copyright_text), "Copyright statement for this module", True),
        ("Description", ps_quote(metadata.description),
         "Description of the functionality provided by this module", True),
        ("PowerShellVersion", ps_quote(metadata.min_runtime_version),
         "Minimum version of the PowerShell engine required by this module", True),
        ("RequiredModules",
         ps_list(metadata.required_modules) if metadata.required_modules else None,
         "Modules that must be imported into the global environment prior to importing this module",
         False),
        ("FunctionsToExport", ps_list(metadata.functions_to_export),
         "Functions to export from this module", True),
        ("CmdletsToExport", ps_list(metadata.cmdlets_to_export),
         "Cmdlets to export from this module", True),
        ("VariablesToExport", ps_list(metadata.variables_to_export),
         "Variables to export from this module", True),
        ("AliasesToExport", ps_list(metadata.aliases_to_export),
         "Aliases to export from this module", True),
        ("HelpInfoURI", ps_quote(metadata.help_uri) if metadata.help_uri else None,
         "HelpInfo URI of this module", False),
        ("DefaultCommandPrefix", ps_quote(metadata.prefix) if metadata.prefix else None,
         "Default prefix for commands exported from this module", False),
    ]

    return [
        ManifestEntry(key=key, value=value, comment=comment)
        for key, value, comment, _required in candidates
        if value is not None
    ]


# ---------------------------------------------------------------------------
# Builder
# ---------------------------------------------------------------------------


class ManifestBuilder:
    """Writes ``<name>.psd1`` for a project."""

    TEMPLATE = "module.psd1.j2"

    def __init__(self, renderer: TemplateRenderer | None = None) -> None:
        self.renderer = renderer or TemplateRenderer()

    def build(self, metadata: ProjectMetadata, target_dir: str | Path) -> OperationResult:
        """Validate *metadata* and write its manifest into *target_dir*.

        Returns:
            ``OperationResult`` whose ``path`` is the manifest file.
        """
        try:
            return OperationResult.ok(self.write(metadata, Path(target_dir)))
        except (ModuleKitError, OSError) as exc:
            return OperationResult.from_error(exc)

    def write(self, metadata: ProjectMetadata, target_dir: Path) -> Path:
        """Like :meth:`build` but raises instead of returning a result."""
        validate_metadata(metadata)
        context = {
            "name": metadata.name,
            "author": metadata.author,
            "entries": build_entries(metadata),
        }
        return self.renderer.render_to_file(
            self.TEMPLATE, target_dir / metadata.manifest_filename, context
        )


# ---------------------------------------------------------------------------
# Manifest record
# ---------------------------------------------------------------------------


class ManifestRecord(BaseModel):
    """A manifest as read back from disk."""

    path: Path
    root_module: Optional[str] = None
    module_version: str
    guid: Optional[str] = None
    author: Optional[str] = None
    company_name: Optional[str] = None
    copyright: Optional[str] = None
    description: Optional[str] = None
    powershell_version: Optional[str] = None
    functions_to_export: list[str] = Field(default_factory=list)
    cmdlets_to_export: list[str] = Field(default_factory=list)
    variables_to_export: list[str] = Field(default_factory=list)
    aliases_to_export: list[str] = Field(default_factory=list)
    compatible_ps_editions: list[str] = Field(default_factory=list)
    required_modules: list[Any] = Field(default_factory=list)
    help_info_uri: Optional[str] = None
    default_command_prefix: Optional[str] = None
    raw: dict[str, Any] = Field(default_factory=dict, description="Every parsed key, as written")

    @property
    def name(self) -> str:
        """Module name, taken from the manifest file name."""
        return self.path.stem


_RECORD_FIELDS: dict[str, str] = {
    "rootmodule": "root_module",
    "moduleversion": "module_version",
    "guid": "guid",
    "author": "author",
    "companyname": "company_name",
    "copyright": "copyright",
    "description": "description",
    "powershellversion": "powershell_version",
    "functionstoexport": "functions_to_export",
    "cmdletstoexport": "cmdlets_to_export",
    "variablestoexport": "variables_to_export",
    "aliasestoexport": "aliases_to_export",
    "compatiblepseditions": "compatible_ps_editions",
    "requiredmodules": "required_modules",
    "helpinfouri": "help_info_uri",
    "defaultcommandprefix": "default_command_prefix",
}

_LIST_FIELDS = {
    "functions_to_export",
    "cmdlets_to_export",
    "variables_to_export",
    "aliases_to_export",
    "compatible_ps_editions",
    "required_modules",
}


def _as_list(value: Any) -> list[Any]:
    if value is None:
        return []
    items = value if isinstance(value, list) else [value]
    return [str(v) if isinstance(v, (int, float)) and not isinstance(v, bool) else v
            for v in items if v is not None]


def _as_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, list):
        return ", ".join(str(v) for v in value)
    return str(value)


def _decode(raw: bytes) -> str:
    # Windows PowerShell 5.1 writes manifests as UTF-16 with a byte-order mark
    if raw.startswith((codecs.BOM_UTF16_LE, codecs.BOM_UTF16_BE)):
        return raw.decode("utf-16")
    return raw.decode("utf-8-sig")


def read_manifest(path: str | Path) -> ManifestRecord:
    """Parse the manifest at *path*.

    UTF-8 (with or without BOM) and UTF-16 with BOM are accepted.

    Raises:
        InvalidManifestError: If the file is missing or undecodable, is not a
            valid data file, has no ``ModuleVersion``, or holds a value of the
            wrong shape (for example a hashtable inside ``FunctionsToExport``).
    """
    manifest_path = Path(path)
    try:
        text = _decode(manifest_path.read_bytes())
    except OSError as exc:
        raise InvalidManifestError(f"Cannot read manifest {manifest_path}: {exc}") from exc
    except UnicodeError as exc:
        raise InvalidManifestError(f"Manifest {manifest_path} is not UTF-8 or UTF-16 text: {exc}") from exc

    data = parse_data_file(text, source=str(manifest_path))

    fields: dict[str, Any] = {}
    for key, value in data.items():
        field_name = _RECORD_FIELDS.get(key.lower())
        if field_name is None:
            continue
        if field_name in _LIST_FIELDS:
            fields[field_name] = _as_list(value)
        else:
            fields[field_name] = _as_text(value)

    if not fields.get("module_version"):
        raise InvalidManifestError(f"Manifest {manifest_path} has no ModuleVersion")

    try:
        return ManifestRecord(path=manifest_path, raw=data, **fields)
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
        )
        raise InvalidManifestError(f"Manifest {manifest_path} is malformed: {problems}") from exc


# ---------------------------------------------------------------------------
# PowerShell data-file parser
# ---------------------------------------------------------------------------

_TOKEN_RE = re.compile(
    r"""
      (?P<ws>[ \t\r\f\v]+)
    | (?P<newline>\n)
    | (?P<block_comment><\#.*?\#>)
    | (?P<comment>\#[^\n]*)
    | (?P<hash_open>@\{)
    | (?P<array_open>@\()
    | (?P<punct>[{}()=;,])
    | (?P<squote>'(?:[^']|'')*')
    | (?P<dquote>"(?:[^"`]|`.)*")
    | (?P<variable>\$[A-Za-z_][A-Za-z0-9_]*)
    | (?P<number>-?\d+(?:\.\d+)?(?![A-Za-z0-9_.]))
    | (?P<bareword>[A-Za-z0-9_][A-Za-z0-9_.\-]*)
    """,
    re.VERBOSE | re.DOTALL,
)

_BACKTICK_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "0": "\0", "`": "`", '"': '"', "$": "$"}

_VARIABLES = {"$true": True, "$false": False, "$null": None}


def _tokenize(text: str, source: str) -> Iterator[tuple[str, str, int]]:
    pos = 0
    line = 1
    while pos < len(text):
        match = _TOKEN_RE.match(text, pos)
        if match is None:
            raise InvalidManifestError(
                f"{source}:{line}: unexpected character {text[pos]!r}"
            )
        kind = match.lastgroup or ""
        value = match.group()
        if kind not in ("ws", "comment", "block_comment"):
            yield kind, value, line
        line += value.count("\n")
        pos = match.end()


class _DataFileParser:
    """Recursive-descent parser for ``Import-PowerShellDataFile`` input."""

    def __init__(self, text: str, source: str) -> None:
        self.source = source
        self.tokens = list(_tokenize(text, source))
        self.pos = 0

    # -- Token helpers -----------------------------------------------------

    def _peek(self) -> Optional[tuple[str, str, int]]:
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def _next(self) -> tuple[str, str, int]:
        token = self._peek()
        if token is None:
            raise InvalidManifestError(f"{self.source}: unexpected end of file")
        self.pos += 1
        return token

    def _error(self, token: tuple[str, str, int], expected: str) -> InvalidManifestError:
        _kind, value, line = token
        return InvalidManifestError(f"{self.source}:{line}: expected {expected}, found {value!r}")

    def _skip(self, *values: str) -> None:
        while True:
            token = self._peek()
            if token is None:
                return
            kind, value, _line = token
            if kind == "newline" or (kind == "punct" and value in values):
                self.pos += 1
                continue
            return

    def _at_punct(self, value: str) -> bool:
        token = self._peek()
        return token is not None and token[0] == "punct" and token[1] == value

    # -- Grammar -----------------------------------------------------------

    def parse(self) -> dict[str, Any]:
        self._skip()
        token = self._next()
        if token[0] != "hash_open":
            raise self._error(token, "'@{'")
        result = self._hashtable()
        self._skip()
        trailing = self._peek()
        if trailing is not None:
            raise self._error(trailing, "end of file")
        return result

    def _hashtable(self) -> dict[str, Any]:
        result: dict[str, Any] = {}
        while True:
            self._skip(";")
            if self._at_punct("}"):
                self.pos += 1
                return result
            key_token = self._next()
            kind, value, _line = key_token
            if kind == "bareword":
                key = value
            elif kind in ("squote", "dquote"):
                key = self._string(kind, value)
            else:
                raise self._error(key_token, "a key")
            equals = self._next()
            if equals[0] != "punct" or equals[1] != "=":
                raise self._error(equals, "'='")
            result[key] = self._value()

    def _array(self) -> list[Any]:
        items: list[Any] = []
        while True:
            self._skip(",", ";")
            if self._at_punct(")"):
                self.pos += 1
                return items
            value = self._value()
            if isinstance(value, list):
                items.extend(value)
            else:
                items.append(value)

    def _value(self) -> Any:
        first = self._single()
        if not self._at_punct(","):
            return first
        items = [first]
        while self._at_punct(","):
            self.pos += 1
            self._skip()
            items.append(self._single())
        return items

    def _single(self) -> Any:
        token = self._next()
        kind, value, _line = token
        if kind in ("squote", "dquote"):
            return self._string(kind, value)
        if kind == "number":
            return float(value) if "." in value else int(value)
        if kind == "variable":
            lowered = value.lower()
            if lowered not in _VARIABLES:
                raise self._error(token, "$true, $false or $null")
            return _VARIABLES[lowered]
        if kind == "hash_open":
            return self._hashtable()
        if kind == "array_open":
            return self._array()
        if kind == "bareword":
            return value
        raise self._error(token, "a value")

    @staticmethod
    def _string(kind: str, literal: str) -> str:
        body = literal[1:-1]
        if kind == "squote":
            return body.replace("''", "'")
        return re.sub(r"`(.)", lambda m: _BACKTICK_ESCAPES.get(m.group(1), m.group(1)), body)


def parse_data_file(text: str, source: str = "<string>") -> dict[str, Any]:
    """Parse PowerShell data-file text into a dict."""
    return _DataFileParser(text, source).parse()
