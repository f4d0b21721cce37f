"""Idempotent migrations for stand documents."""

__version__ = "0.1.0"
