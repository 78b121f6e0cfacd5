"""
Command-line interface for the serversnap package.

This module provides the main CLI entry point for the snapshot tool.
"""

from .main import main_cli

__all__ = [
    "main_cli",
]
