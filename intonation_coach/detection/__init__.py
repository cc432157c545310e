"""Intonation analysis engine."""

from .intonation_analyzer import IntonationAnalyzer
from .pure_intonation import get_pure_intonation_suggestions

__all__ = ["IntonationAnalyzer", "get_pure_intonation_suggestions"]
