"""
ImageForge CLI - Command-line interface.
"""

from imageforge.cli.main import cli, main

__all__ = ["cli", "main"]
