"""Temporal stabilization of pitch estimates."""

from .smoothing import smooth_frequency
from .pitch_analyzer import ListeningState, PitchAnalyzer

__all__ = ["smooth_frequency", "ListeningState", "PitchAnalyzer"]
