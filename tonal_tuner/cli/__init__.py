"""Command-line interface for Tonal Tuner."""

from .main import main as cli_main

__all__ = ["cli_main"]
