"""
Stage Gate CLI Module

Contains the command-line interface:
- main: CLI entry point with typer
- Commands: stages, actions, run, console, config
- output: Rich tables and panels for stage screens
"""

from .main import app, main

__all__ = [
    "app",
    "main",
]
