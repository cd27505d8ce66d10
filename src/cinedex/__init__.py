"""Cinedex: faceted full-text search over movies and persons."""

__version__ = "0.1.0"
