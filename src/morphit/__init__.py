"""MorphIt - in-memory file format conversion engine."""

from morphit.logger import ConversionLogger, LogConfig, VerboseLevel
from morphit.pipeline import (
    ConversionInProgressError,
    ConversionPipeline,
    ConversionRequest,
    ConversionSession,
    SessionState,
    SessionStateError,
)

__version__ = "0.1.0"

__all__ = [
    "ConversionInProgressError",
    "ConversionLogger",
    "ConversionPipeline",
    "ConversionRequest",
    "ConversionSession",
    "LogConfig",
    "SessionState",
    "SessionStateError",
    "VerboseLevel",
]
