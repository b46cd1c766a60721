"""Buffer sources that feed the analysis loop.

A source hands out fixed-length mono buffers. With a hop size smaller than
the buffer size, consecutive buffers overlap: each read appends ``hop_size``
fresh samples and returns the latest ``buffer_size`` samples, which is how
a live analyser node presents audio at display-refresh cadence.
"""

from __future__ import annotations
from abc import abstractmethod
from typing import Optional

import numpy as np
import soundfile as sf

from ..logger import get_logger
from ..core.interfaces import IBufferSource

logger = get_logger(__name__)


def to_mono(data: np.ndarray) -> np.ndarray:
    """Take the first channel of (frames x channels) audio as float32."""
    data = np.asarray(data)
    if data.ndim > 1:
        data = data[:, 0]
    return data.astype(np.float32, copy=False)


class FramedBufferSource(IBufferSource):
    """Base class turning a stream of samples into overlapping buffers."""

    def __init__(self, sample_rate: int, buffer_size: int, hop_size: Optional[int] = None) -> None:
        """Initialize the framing.

        Args:
            sample_rate: Sample rate in Hz
            buffer_size: Samples per buffer
            hop_size: Fresh samples per read after the first; defaults to buffer_size

        Raises:
            ValueError: If any size is not positive or hop_size exceeds buffer_size
        """
        if sample_rate <= 0:
            raise ValueError("Sample rate must be positive")
        if buffer_size <= 0:
            raise ValueError("buffer_size must be positive")
        hop_size = buffer_size if hop_size is None else int(hop_size)
        if not 0 < hop_size <= buffer_size:
            raise ValueError("hop_size must be between 1 and buffer_size")

        self._sample_rate = int(sample_rate)
        self._buffer_size = int(buffer_size)
        self._hop_size = hop_size
        self._window = np.zeros(0, dtype=np.float32)

    @abstractmethod
    def _read_samples(self, count: int) -> np.ndarray:
        """Return up to count fresh mono samples; fewer means the stream ended."""
        pass

    def read(self) -> Optional[np.ndarray]:
        needed = self._buffer_size if self._window.size == 0 else self._hop_size
        fresh = self._read_samples(needed)
        if fresh.size < needed:
            logger.debug(f"Source exhausted ({fresh.size}/{needed} samples)")
            return None

        self._window = np.concatenate((self._window, fresh))[-self._buffer_size :]
        return self._window.copy()

    def reset(self) -> None:
        self._window = np.zeros(0, dtype=np.float32)

    @property
    def sample_rate(self) -> int:
        return self._sample_rate

    @property
    def buffer_size(self) -> int:
        return self._buffer_size

    @property
    def hop_size(self) -> int:
        return self._hop_size

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


class ArrayBufferSource(FramedBufferSource):
    """Serves buffers from an in-memory array of samples."""

    def __init__(
        self,
        samples: np.ndarray,
        sample_rate: int,
        buffer_size: int = 4096,
        hop_size: Optional[int] = None,
    ) -> None:
        super().__init__(sample_rate, buffer_size, hop_size)
        self._samples = to_mono(samples)
        self._position = 0

    def _read_samples(self, count: int) -> np.ndarray:
        chunk = self._samples[self._position : self._position + count]
        self._position += chunk.size
        return chunk

    def close(self) -> None:
        self._position = self._samples.size


class WavFileBufferSource(FramedBufferSource):
    """Serves buffers read from an audio file with soundfile.

    Multi-channel files are reduced to their first channel.
    """

    def __init__(
        self,
        file_path: str,
        buffer_size: int = 4096,
        hop_size: Optional[int] = None,
    ) -> None:
        self._file_path = file_path
        self._file = sf.SoundFile(file_path)
        self._channels = self._file.channels
        self._frames = self._file.frames
        super().__init__(self._file.samplerate, buffer_size, hop_size)
        logger.info(
            f"Opened {file_path}: {self._sample_rate}Hz, {self._channels}ch, {self._frames} frames"
        )

    def _read_samples(self, count: int) -> np.ndarray:
        if self._file.closed:
            return np.zeros(0, dtype=np.float32)

        return to_mono(self._file.read(count, dtype="float32", always_2d=True))

    def close(self) -> None:
        if not self._file.closed:
            self._file.close()
            logger.debug(f"Closed {self._file_path}")

    @property
    def channels(self) -> int:
        return self._channels

    @property
    def duration(self) -> float:
        """Length of the file in seconds."""
        return self._frames / self._sample_rate
