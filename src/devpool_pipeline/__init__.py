"""Embed GitHub issue and pull-request conversations into CSV tables."""

__version__ = "0.1.0"
