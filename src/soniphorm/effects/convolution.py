"""
Effects rendered through the rendering facility: algorithmic reverb and
biquad filtering.
"""

import math

import numpy as np

from soniphorm.core.params import ParameterSpec
from soniphorm.core.rendering import FILTER_TYPES, FilterDescriptor
from soniphorm.effects.base import Effect, percent


def generate_impulse_response(
    sample_rate: int,
    decay: float,
    n_channels: int,
    rng: np.random.Generator,
) -> np.ndarray:
    """
    Exponentially decaying white noise, one independent row per channel.

        ir[i] = (rand * 2 - 1) * exp(-3 * i / length)

    Returns:
        Array shaped (n_channels, floor(sample_rate * decay)).
    """
    length = int(math.floor(sample_rate * decay))
    envelope = np.exp(-3.0 * np.arange(length) / max(length, 1))
    noise = rng.random((n_channels, length)) * 2.0 - 1.0
    return noise * envelope


class Reverb(Effect):
    """Convolution with a synthetic IR, blended with the dry signal."""

    key = "reverb"
    label = "Reverb"
    parameters = (
        ParameterSpec("decay", "Decay", 0.1, 8, 0.1, 2, unit="s"),
        ParameterSpec("mix", "Mix", 0, 100, 1, 40, unit="%"),
    )

    async def render(self, segment, sample_rate, params, context):
        mix = percent(params["mix"])
        impulse = generate_impulse_response(
            sample_rate, float(params["decay"]), segment.shape[0], context.rng
        )
        wet = await context.renderer.convolve(segment, sample_rate, impulse)
        return segment * (1.0 - mix) + wet * mix


class Filter(Effect):
    """Biquad filter; the rendered result replaces the region outright."""

    key = "filter"
    label = "Filter"
    parameters = (
        ParameterSpec("type", "Type", default="lowpass", options=FILTER_TYPES),
        ParameterSpec("frequency", "Frequency", 20, 20000, 1, 1000, unit="Hz", scale="log"),
        ParameterSpec("q", "Q", 0.1, 30, 0.1, 1),
    )

    async def render(self, segment, sample_rate, params, context):
        descriptor = FilterDescriptor(
            type=params["type"],
            frequency=float(params["frequency"]),
            q=float(params["q"]),
        )
        return await context.renderer.filter(segment, sample_rate, descriptor)
