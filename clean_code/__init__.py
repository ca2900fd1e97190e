"""Clean Code engine: incremental structural analysis of TypeScript and JavaScript sources."""

__version__ = "0.3.0"
