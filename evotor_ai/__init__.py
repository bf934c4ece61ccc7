"""Evotor AI: natural-language questions over Evotor point-of-sale data."""

__version__ = "0.1.0"
