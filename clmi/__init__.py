"""Bounded-context command-line chat client."""

__version__ = "0.1.0"
