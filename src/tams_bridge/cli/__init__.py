"""
TAMS Bridge CLI Module

Contains the command-line interface:
- main: CLI entry point with typer
- Commands: backends, status, switch, test, flows, version
- output: Rich terminal output
"""

from .main import app, main
from .output import OutputManager

__all__ = [
    "app",
    "main",
    "OutputManager",
]
