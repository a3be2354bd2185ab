"""Coursenav - course navigation and ordering service."""

__version__ = "0.1.0"
