"""Signal processing primitives shared by every effect."""

from soniphorm.core.buffer import Region, SampleBuffer, splice
from soniphorm.core.ola import overlap_add
from soniphorm.core.params import ParameterSpec, validate_values
from soniphorm.core.rendering import (
    FilterDescriptor,
    RenderingFacility,
    ScipyRenderingFacility,
)
from soniphorm.core.resampler import resample
from soniphorm.core.spectral import fft, hamming_window, hann_window, ifft, next_pow2
from soniphorm.core.vocoder import pitch_shift, time_stretch

__all__ = [
    "Region",
    "SampleBuffer",
    "splice",
    "overlap_add",
    "ParameterSpec",
    "validate_values",
    "FilterDescriptor",
    "RenderingFacility",
    "ScipyRenderingFacility",
    "resample",
    "fft",
    "ifft",
    "hann_window",
    "hamming_window",
    "next_pow2",
    "pitch_shift",
    "time_stretch",
]
