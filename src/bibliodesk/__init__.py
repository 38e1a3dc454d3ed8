"""bibliodesk - library circulation tooling."""

__version__ = "0.1.0"
