"""Factory for creating Tonal Tuner components from configuration."""

from typing import Any, Callable, Dict, Optional, Type

import soundfile as sf

from ..logger import get_logger
from ..note_types import Tuning
from ..tunings import get_tuning_by_id
from ..audio.yin import YinPitchEstimator
from ..audio.audio_providers import WavFileBufferSource
from ..detection.pitch_analyzer import PitchAnalyzer
from ..services.tuning_session import TuningSession
from .config import ANALYZER, SESSION, ConfigManager
from .interfaces import IBufferSource, IPitchEstimator
from .timers import Clock

logger = get_logger(__name__)

# Analyzer settings that belong to the estimator rather than the state machine
_ESTIMATOR_KEYS = {
    "yin_threshold": "threshold",
    "min_frequency": "min_frequency",
    "max_frequency": "max_frequency",
}
_ANALYZER_KEYS = ("signal_threshold", "min_clarity", "smoothing_factor", "hold_time", "clear_delay")


class ComponentFactory:
    """Builds estimators, analyzers, sources and sessions from ConfigManager settings.

    Keyword overrides passed to the ``create_*`` methods take precedence
    over stored settings and use the same key names.
    """

    def __init__(self, config_manager: Optional[ConfigManager] = None):
        """Initialize the component factory.

        Args:
            config_manager: Configuration manager, or None to create a default one
        """
        self.config_manager = config_manager or ConfigManager()

        self.estimator_classes: Dict[str, Type[IPitchEstimator]] = {
            "yin": YinPitchEstimator,
        }

    def _settings(self, section: str, overrides: Dict[str, Any]) -> Dict[str, Any]:
        settings = self.config_manager.get_config(section)
        settings.update(overrides)
        return settings

    def create_estimator(self, implementation: str = "yin", **overrides) -> IPitchEstimator:
        """Create a pitch estimator.

        Raises:
            ValueError: If the implementation is not registered
        """
        if implementation not in self.estimator_classes:
            raise ValueError(f"Unknown pitch estimator implementation: {implementation}")

        settings = self._settings(ANALYZER, overrides)
        kwargs = {arg: settings[key] for key, arg in _ESTIMATOR_KEYS.items() if key in settings}
        estimator = self.estimator_classes[implementation](**kwargs)
        logger.debug(f"Created pitch estimator: {implementation} {kwargs}")
        return estimator

    def create_analyzer(
        self,
        tuning_provider: Optional[Callable[[], Optional[Tuning]]] = None,
        clock: Optional[Clock] = None,
        **overrides,
    ) -> PitchAnalyzer:
        """Create a PitchAnalyzer with a configured estimator."""
        settings = self._settings(ANALYZER, overrides)
        kwargs = {key: settings[key] for key in _ANALYZER_KEYS if key in settings}
        analyzer = PitchAnalyzer(
            tuning_provider=tuning_provider,
            estimator=self.create_estimator(**overrides),
            clock=clock,
            **kwargs,
        )
        logger.debug(f"Created pitch analyzer: {kwargs}")
        return analyzer

    def create_file_source(self, file_path: str, **overrides) -> WavFileBufferSource:
        """Open an audio file as a buffer source.

        Buffers overlap so that one buffer is produced per frame at the
        configured frame rate, as a live input would.
        """
        analyzer_settings = self._settings(ANALYZER, overrides)
        session_settings = self._settings(SESSION, overrides)
        buffer_size = int(analyzer_settings["buffer_size"])

        sample_rate = sf.info(file_path).samplerate
        hop_size = max(1, min(buffer_size, round(sample_rate / session_settings["frame_rate"])))
        return WavFileBufferSource(file_path, buffer_size=buffer_size, hop_size=hop_size)

    def resolve_tuning(self, tuning_id: Optional[str] = None) -> Optional[Tuning]:
        """Catalog tuning for an id, the configured default for None, or None for 'chromatic'.

        Raises:
            ValueError: If the id is not in the catalog
        """
        if tuning_id is None:
            tuning_id = self.config_manager.get_config(SESSION).get("default_tuning", "chromatic")
        if tuning_id == "chromatic":
            return None
        tuning = get_tuning_by_id(tuning_id)
        if tuning is None:
            raise ValueError(f"Unknown tuning: {tuning_id}")
        return tuning

    def create_session(
        self,
        source: IBufferSource,
        tuning_id: Optional[str] = None,
        clock: Optional[Clock] = None,
        **overrides,
    ) -> TuningSession:
        """Create a TuningSession over a source.

        Args:
            source: Buffer source to analyse
            tuning_id: Catalog id, 'chromatic', or None for the configured default
            clock: Clock for the hold window, e.g. a ManualClock for offline replay
            **overrides: Setting overrides for the analyzer and session
        """
        session_settings = self._settings(SESSION, overrides)
        session = TuningSession(
            source,
            tuning=self.resolve_tuning(tuning_id),
            frame_rate=session_settings["frame_rate"],
            analyzer_factory=lambda provider: self.create_analyzer(provider, clock, **overrides),
        )
        logger.info(f"Created tuning session ({tuning_id or session_settings.get('default_tuning')})")
        return session
