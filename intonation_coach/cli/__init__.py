"""Command-line interface for Intonation Coach."""

from .main import main

__all__ = ["main"]
