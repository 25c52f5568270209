"""confsync - synchronise a Confluence wiki into an index."""

__version__ = "0.1.0"
