"""Session-level services built on the analysis loop."""

from .tuning_session import TuningSession

__all__ = ["TuningSession"]
