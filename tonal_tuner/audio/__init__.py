"""Signal analysis for Tonal Tuner: presence gating, pitch estimation and buffer sources."""

from .signal_gate import has_signal, rms
from .yin import YinPitchEstimator, detect_pitch

__all__ = ["has_signal", "rms", "detect_pitch", "YinPitchEstimator"]
