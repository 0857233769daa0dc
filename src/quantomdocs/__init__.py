"""QuantomDocs: markdown documentation content resolution and search."""

__version__ = "0.1.0"
