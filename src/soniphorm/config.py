"""
Engine configuration.
"""

import os
from dataclasses import dataclass
from typing import Mapping


@dataclass
class EngineConfig:
    """Tunable limits and defaults for the effects engine."""

    # Seed for the engine's random generator (None: fresh entropy).
    # One generator serves every call on an engine, so a seed reproduces
    # a sequence of calls from a fresh engine, not each call on its own.
    seed: int | None = None

    # Previews process at most this much audio from the region start
    preview_seconds: float = 3.0

    # Undo snapshots kept by an editing session
    max_undo: int = 5

    # Cross-buffer convolution truncates the impulse response to this
    ir_max_seconds: float = 3.0

    # Morph renders are capped at this duration
    morph_max_seconds: float = 5.0

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "EngineConfig":
        """
        Build a config from SONIPHORM_* environment variables.

        Recognized: SONIPHORM_SEED, SONIPHORM_PREVIEW_SECONDS,
        SONIPHORM_MAX_UNDO. Unset variables keep their defaults.
        """
        env = os.environ if environ is None else environ
        config = cls()

        if env.get("SONIPHORM_SEED"):
            config.seed = int(env["SONIPHORM_SEED"])
        if env.get("SONIPHORM_PREVIEW_SECONDS"):
            config.preview_seconds = float(env["SONIPHORM_PREVIEW_SECONDS"])
        if env.get("SONIPHORM_MAX_UNDO"):
            config.max_undo = int(env["SONIPHORM_MAX_UNDO"])

        return config
