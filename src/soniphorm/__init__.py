"""Offline audio effects engine for sampled audio buffers."""

from soniphorm.config import EngineConfig
from soniphorm.core.buffer import Region, SampleBuffer
from soniphorm.engine import EffectEngine
from soniphorm.errors import RenderingFailure, SoniphormError, UnknownEffectError
from soniphorm.session import EditSession

__version__ = "0.1.0"
__all__ = [
    "EngineConfig",
    "Region",
    "SampleBuffer",
    "EffectEngine",
    "EditSession",
    "SoniphormError",
    "RenderingFailure",
    "UnknownEffectError",
]
