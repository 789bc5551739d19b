"""Artwork duplicate-detection scoring engine."""

__version__ = "0.3.0"
