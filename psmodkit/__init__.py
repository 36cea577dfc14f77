"""psmodkit -- scaffolding, packaging and tooling for PowerShell module projects."""

__version__ = "0.1.0"
