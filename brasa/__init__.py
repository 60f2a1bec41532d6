"""Brasa Forge: asynchronous site generation queue and worker."""

__version__ = "0.1.0"
