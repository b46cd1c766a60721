"""JSON-backed settings for the analysis loop and session."""

from typing import Dict, Any, Optional
import json
import os
from pathlib import Path

from ..logger import get_logger

logger = get_logger(__name__)

ANALYZER = "analyzer"
SESSION = "session"


class ConfigManager:
    """Keeps one JSON file per settings section under a config directory.

    Missing files are created from the defaults; files missing keys are
    completed from the defaults when read. A file that cannot be parsed is
    ignored in favour of the defaults.
    """

    DEFAULT_CONFIGS: Dict[str, Dict[str, Any]] = {
        ANALYZER: {
            "buffer_size": 4096,  # Samples per cycle
            "signal_threshold": 0.008,  # RMS
            "yin_threshold": 0.25,
            "min_frequency": 27.5,  # Hz, A0
            "max_frequency": 2000.0,  # Hz
            "min_clarity": 0.65,
            "smoothing_factor": 0.4,
            "hold_time": 1.5,  # Seconds
            "clear_delay": 0.1,  # Seconds
        },
        SESSION: {
            "frame_rate": 60.0,  # Upper bound on cycles per second
            "default_tuning": "guitar-standard",
        },
    }

    def __init__(self, config_dir: Optional[str] = None):
        """Open (and create if needed) the settings directory.

        Args:
            config_dir: Where the section files live; defaults to ~/.config/tonal_tuner
        """
        if config_dir is None:
            config_dir = os.path.join(os.path.expanduser("~"), ".config", "tonal_tuner")

        self.config_dir = Path(config_dir)
        self.config_dir.mkdir(parents=True, exist_ok=True)

        self.configs: Dict[str, Dict[str, Any]] = {
            section: self.load_config(section, defaults)
            for section, defaults in self.DEFAULT_CONFIGS.items()
        }

    def _path(self, section: str) -> Path:
        return self.config_dir / f"{section}.json"

    def load_config(self, section: str, defaults: Dict[str, Any]) -> Dict[str, Any]:
        """Read a section file, completing it with defaults.

        Args:
            section: Section name, also the file stem
            defaults: Values for keys the file does not set

        Returns:
            The section's settings
        """
        path = self._path(section)
        if not path.exists():
            settings = dict(defaults)
            self.save_config(section, settings)
            return settings

        try:
            with open(path, "r") as f:
                stored = json.load(f)
            if not isinstance(stored, dict):
                raise ValueError("expected a JSON object")
        except (OSError, ValueError) as e:
            logger.error(f"Ignoring unreadable settings in {path}: {e}")
            return dict(defaults)

        logger.info(f"Loaded {section} settings from {path}")
        return {**defaults, **stored}

    def save_config(self, section: str, settings: Dict[str, Any]) -> bool:
        """Write a section file. Returns False (after logging) if it cannot be written."""
        path = self._path(section)
        try:
            with open(path, "w") as f:
                json.dump(settings, f, indent=2)
        except OSError as e:
            logger.error(f"Could not write settings to {path}: {e}")
            return False
        logger.debug(f"Saved {section} settings to {path}")
        return True

    def get_config(self, section: str) -> Dict[str, Any]:
        """A copy of a section's settings; empty for an unknown section."""
        return dict(self.configs.get(section, {}))

    def update_config(self, section: str, updates: Dict[str, Any]) -> bool:
        """Merge updates into a known section and persist it."""
        if section not in self.configs:
            logger.error(f"Unknown settings section: {section}")
            return False
        self.configs[section].update(updates)
        return self.save_config(section, self.configs[section])

    def reset_config(self, section: str) -> bool:
        """Restore a section to its defaults and persist it."""
        if section not in self.DEFAULT_CONFIGS:
            logger.error(f"Unknown settings section: {section}")
            return False
        self.configs[section] = dict(self.DEFAULT_CONFIGS[section])
        return self.save_config(section, self.configs[section])
