"""psmodkit command-line interface.

Usage::

    python -m psmodkit new-project MyModule --author "Jane Doe" --exports Get-Thing
    python -m psmodkit package MyModule --install
    python -m psmodkit install-dev-tools --force
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from psmodkit import __version__
from psmodkit.config import Config
from psmodkit.models import OperationResult
from psmodkit.packaging.builder import PackageBuilder
from psmodkit.scaffolder.generator import new_project
from psmodkit.tools.installer import install_dev_tools
from psmodkit.tools.package_managers import PowerShellGallery
from psmodkit.utils import print_error, print_success, print_summary_table


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="psmodkit",
        description="psmodkit -- scaffold, package and tool PowerShell module projects",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  psmodkit new-project MyModule --include-tests --init-vcs\n"
            "  psmodkit package MyModule --install\n"
            "  psmodkit install-dev-tools --force\n"
        ),
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--config",
        default=None,
        help="JSON configuration file (default: built from PSMK_* environment variables)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    # -- new-project -------------------------------------------------------
    new = sub.add_parser("new-project", help="Create a new module project")
    new.add_argument("name", help="Module name")
    new.add_argument("--path", default=None, help="Parent directory (default: working directory)")
    new.add_argument("--module-version", dest="module_version", default=None,
                     help="MAJOR.MINOR.PATCH (default from config)")
    new.add_argument("--author", default=None)
    new.add_argument("--company", default=None)
    new.add_argument("--description", default="")
    new.add_argument("--min-runtime-version", default=None, help="MAJOR.MINOR")
    new.add_argument("--exports", nargs="*", default=[], help="Functions to export")
    new.add_argument("--help-uri", default=None)
    new.add_argument("--copyright", default="")
    new.add_argument("--editions", nargs="*", default=[], choices=["Desktop", "Core"])
    new.add_argument("--required-modules", nargs="*", default=[])
    new.add_argument("--cmdlets", nargs="*", default=[])
    new.add_argument("--variables", nargs="*", default=[])
    new.add_argument("--aliases", nargs="*", default=[])
    new.add_argument("--prefix", default="")
    new.add_argument("--init-vcs", action="store_true", help="Run git init in the project")
    new.add_argument("--install-tools", action="store_true", help="Install missing dev tools")
    new.add_argument("--include-tests", action="store_true", help="Write a Pester test scaffold")

    # -- package -----------------------------------------------------------
    pkg = sub.add_parser("package", help="Build a NuGet package from a module manifest")
    pkg.add_argument("name", nargs="?", default=None,
                     help="Module name (default: first manifest in the working directory)")
    pkg.add_argument("--path", default=None, help="Directory holding the manifest")
    pkg.add_argument("--install", action="store_true",
                     help="Install into the per-user module path, replacing any existing copy")
    pkg.add_argument("--install-packager", action="store_true",
                     help="Install nuget with the system package manager when missing")

    # -- install-dev-tools -------------------------------------------------
    tools = sub.add_parser("install-dev-tools", help="Install Pester, PSScriptAnalyzer and platyPS")
    tools.add_argument("--force", action="store_true", help="Reinstall tools that are present")

    return parser


def _load_config(path: str | None) -> Config:
    if path:
        return Config.load(Path(path))
    return Config.from_env()


def _report(result: OperationResult, label: str) -> int:
    if result.success:
        print_success(f"{label}: {result.path}")
        return 0
    kind = result.error_kind.value if result.error_kind else "Error"
    print_error(f"{kind}: {result.error}")
    return 1


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for ``psmodkit`` / ``python -m psmodkit``."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        config = _load_config(args.config)
    except (OSError, ValueError) as exc:
        print_error(f"Invalid configuration: {exc}")
        sys.exit(1)

    if args.command == "new-project":
        result = new_project(
            args.name,
            args.path,
            version=args.module_version,
            author=args.author,
            company=args.company,
            description=args.description,
            min_runtime_version=args.min_runtime_version,
            exports=args.exports,
            help_uri=args.help_uri,
            copyright=args.copyright,
            editions=args.editions,
            required_modules=args.required_modules,
            cmdlets=args.cmdlets,
            variables=args.variables,
            aliases=args.aliases,
            prefix=args.prefix,
            init_vcs=args.init_vcs,
            install_tools=args.install_tools,
            include_tests=args.include_tests,
            config=config,
        )
        code = _report(result, "Project created")

    elif args.command == "package":
        builder = PackageBuilder(config)
        result = builder.build(
            args.name,
            install=args.install,
            install_packager=args.install_packager,
            working_dir=args.path,
        )
        code = _report(result, "Installed to" if args.install else "Package")

    else:
        gallery = PowerShellGallery(pwsh=config.pwsh, timeout=config.command_timeout)
        tool_result = install_dev_tools(
            force=args.force, package_manager=gallery, tools=config.dev_tools
        )
        print_summary_table(
            {
                "Installed": ", ".join(tool_result.installed) or "-",
                "Failed": ", ".join(tool_result.failed) or "-",
            },
            title="Development tools",
        )
        code = 0 if tool_result.success else 1

    sys.exit(code)


if __name__ == "__main__":
    main()
