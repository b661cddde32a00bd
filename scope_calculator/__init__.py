"""Scope-of-work calculator for insurance restoration claims."""

__version__ = "0.1.0"
