"""modforge: resolves the template modules a generated project depends on."""

__version__ = "0.4.0"
