"""Defines the core interfaces for the Tonal Tuner application."""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Optional, Callable

import numpy as np

from ..note_types import DetectedPitch, PitchEstimate, Tuning


class IBufferSource(ABC):
    """Interface for suppliers of fixed-length mono sample buffers."""

    @abstractmethod
    def read(self) -> Optional[np.ndarray]:
        """Return the next buffer, or None when the source is exhausted."""
        pass

    @abstractmethod
    def reset(self) -> None:
        """Drop buffered samples so the next read starts a fresh buffer."""
        pass

    @abstractmethod
    def close(self) -> None:
        """Release any resources held by the source."""
        pass

    @property
    @abstractmethod
    def sample_rate(self) -> int:
        """The sample rate of the buffers, in Hz."""
        pass

    @property
    @abstractmethod
    def buffer_size(self) -> int:
        """Number of samples in each buffer."""
        pass


class IPitchEstimator(ABC):
    """Interface for fundamental frequency estimators."""

    @abstractmethod
    def estimate(self, buffer: np.ndarray, sample_rate: float) -> Optional[PitchEstimate]:
        """Estimate the pitch of a buffer, or return None if none is found."""
        pass

    @abstractmethod
    def reset(self) -> None:
        """Drop any state carried between calls."""
        pass


class ITuningSession(ABC):
    """Interface for a running tuner session."""

    @abstractmethod
    def start(self, callback: Optional[Callable[[Optional[DetectedPitch]], None]] = None) -> bool:
        """Start analysing buffers."""
        pass

    @abstractmethod
    def stop(self) -> None:
        """Stop analysing; no callbacks fire after this returns."""
        pass

    @abstractmethod
    def set_tuning(self, tuning: Optional[Tuning]) -> None:
        """Select the tuning used from the next cycle on (None for chromatic)."""
        pass

    @property
    @abstractmethod
    def is_listening(self) -> bool:
        """Whether the session is running."""
        pass
