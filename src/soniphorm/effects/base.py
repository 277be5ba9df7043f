"""
Effect contract shared by the whole catalog.
"""

import abc
from dataclasses import dataclass, field
from typing import Any, Mapping

import numpy as np

from soniphorm.config import EngineConfig
from soniphorm.core.buffer import Region, SampleBuffer, splice
from soniphorm.core.params import (
    ParameterSpec,
    ParameterValue,
    validate_values,
)
from soniphorm.core.rendering import RenderingFacility, ScipyRenderingFacility


@dataclass
class EffectContext:
    """Collaborators handed to an effect for a single invocation."""

    rng: np.random.Generator = field(default_factory=np.random.default_rng)
    renderer: RenderingFacility = field(default_factory=ScipyRenderingFacility)
    # Second buffer for cross-buffer operators
    source: SampleBuffer | None = None
    config: EngineConfig = field(default_factory=EngineConfig)


class Effect(abc.ABC):
    """
    A catalog entry: parameter schema plus processing algorithm.

    Subclasses implement render(), which receives a float64 copy of the
    selected region and returns the processed region. process() takes care
    of validation and splices the result back into a new buffer, so the
    caller's buffer is never written to.
    """

    key: str = ""
    label: str = ""
    parameters: tuple[ParameterSpec, ...] = ()

    # True when render() may return a different number of samples
    changes_length: bool = False

    # True for cross-buffer operators that need context.source
    requires_source: bool = False

    def validate(self, values: Mapping[str, Any] | None) -> dict[str, ParameterValue]:
        return validate_values(self.parameters, values)

    async def process(
        self,
        buffer: SampleBuffer,
        sample_rate: int,
        start: int,
        end: int,
        values: Mapping[str, Any] | None = None,
        context: EffectContext | None = None,
    ) -> SampleBuffer:
        """
        Apply the effect to [start, end) of a buffer.

        Args:
            buffer: Input audio (not modified).
            sample_rate: Sample rate (Hz).
            start: Region start sample.
            end: Region end sample (exclusive, > start).
            values: Raw parameter values; validated against the schema.
            context: RNG, renderer, and optional source buffer.

        Returns:
            New buffer with the processed region spliced in.

        Raises:
            ValueError: On an invalid region or a missing source buffer, and
                when an effect without changes_length returns a new length.
            RenderingFailure: If the rendering facility fails.
        """
        region = Region(start, end).validate(buffer.length)
        params = self.validate(values)
        context = context or EffectContext()

        if self.requires_source and context.source is None:
            raise ValueError(f"{self.label} needs a source buffer")

        processed = await self.render(buffer.region(region), sample_rate, params, context)
        if not self.changes_length and processed.shape[-1] != region.length:
            raise ValueError(
                f"{self.label} returned {processed.shape[-1]} samples "
                f"for a region of {region.length}"
            )
        return splice(buffer, region, processed, sample_rate)

    @abc.abstractmethod
    async def render(
        self,
        segment: np.ndarray,
        sample_rate: int,
        params: dict[str, ParameterValue],
        context: EffectContext,
    ) -> np.ndarray:
        """
        Process a region.

        Args:
            segment: Region samples shaped (n_channels, n), float64 copy.
            sample_rate: Sample rate (Hz).
            params: Validated parameter values.
            context: Invocation collaborators.

        Returns:
            Processed samples shaped (n_channels, m).
        """

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.key!r}>"


def percent(value: ParameterValue) -> float:
    """Map a 0..100 % parameter to 0..1."""
    return float(value) / 100.0


def normalize_peak(samples: np.ndarray, target: float = 1.0, only_if_above: bool = True) -> np.ndarray:
    """
    Scale samples so their absolute peak equals target.

    With only_if_above, quieter signals are returned unchanged.
    """
    peak = float(np.max(np.abs(samples))) if samples.size else 0.0
    if peak == 0.0:
        return samples
    if only_if_above and peak <= target:
        return samples
    return samples * (target / peak)
