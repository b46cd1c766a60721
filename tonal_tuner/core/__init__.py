"""Core components for the Tonal Tuner application."""

# Import interfaces for easier access
from .interfaces import (
    IBufferSource,
    IPitchEstimator,
    ITuningSession,
)

__all__ = ["IBufferSource", "IPitchEstimator", "ITuningSession"]
