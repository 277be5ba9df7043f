"""
Offline rendering facility.

Convolution and biquad filtering are delegated to a rendering facility so
that callers can swap in another backend. The default implementation uses
scipy and mirrors the behaviour of a browser offline audio graph: impulse
responses are power-normalized like a convolver node, and biquads follow
the Audio EQ Cookbook formulas used by biquad filter nodes.
"""

import abc
import asyncio
import logging
import math
import time
from dataclasses import dataclass

import numpy as np
from scipy import signal as scipy_signal

from soniphorm.errors import RenderingFailure

logger = logging.getLogger(__name__)

FILTER_TYPES = ("lowpass", "highpass", "bandpass", "notch")

# Impulse response normalization constants
IR_GAIN_CALIBRATION_DB = -58.0
IR_CALIBRATION_SAMPLE_RATE = 44100.0
IR_MIN_POWER = 0.000125


@dataclass(frozen=True)
class FilterDescriptor:
    """Biquad filter request."""

    type: str
    frequency: float
    q: float


class RenderingFacility(abc.ABC):
    """Backend that renders convolution and filter graphs over a region."""

    @abc.abstractmethod
    async def convolve(
        self,
        region: np.ndarray,
        sample_rate: int,
        impulse: np.ndarray,
    ) -> np.ndarray:
        """
        Convolve each channel with an impulse response.

        Args:
            region: Samples shaped (n_channels, n).
            sample_rate: Sample rate (Hz).
            impulse: IR shaped (ir_channels, ir_length) or (ir_length,).

        Returns:
            Rendered samples, same shape as region.

        Raises:
            RenderingFailure: If rendering is not possible.
        """

    @abc.abstractmethod
    async def filter(
        self,
        region: np.ndarray,
        sample_rate: int,
        descriptor: FilterDescriptor,
    ) -> np.ndarray:
        """Run each channel through a biquad filter; same shape as region."""


def impulse_normalization_scale(impulse: np.ndarray, sample_rate: int) -> float:
    """Equal-power gain applied to an IR before convolution."""
    n_channels, length = impulse.shape
    power = math.sqrt(float(np.sum(impulse.astype(np.float64) ** 2)) / (n_channels * length))
    if not math.isfinite(power) or power < IR_MIN_POWER:
        power = IR_MIN_POWER

    scale = 1.0 / power
    scale *= 10.0 ** (IR_GAIN_CALIBRATION_DB * 0.05)
    scale *= IR_CALIBRATION_SAMPLE_RATE / sample_rate

    # True-stereo IRs feed each output twice
    if n_channels == 4:
        scale *= 0.5
    return scale


def biquad_coefficients(
    descriptor: FilterDescriptor,
    sample_rate: int,
) -> tuple[np.ndarray, np.ndarray]:
    """
    Audio EQ Cookbook coefficients, normalized so a[0] == 1.

    Lowpass/highpass interpret Q in dB (resonance); bandpass/notch use
    it as the quality factor.
    """
    if descriptor.type not in FILTER_TYPES:
        raise ValueError(f"Unknown filter type: {descriptor.type}")

    nyquist = sample_rate / 2.0
    frequency = min(max(descriptor.frequency, 1e-3), 0.999 * nyquist)
    w0 = 2.0 * math.pi * frequency / sample_rate
    cos_w0 = math.cos(w0)
    sin_w0 = math.sin(w0)

    if descriptor.type in ("lowpass", "highpass"):
        alpha = sin_w0 / (2.0 * 10.0 ** (descriptor.q / 20.0))
    else:
        alpha = sin_w0 / (2.0 * max(descriptor.q, 1e-4))

    if descriptor.type == "lowpass":
        b = [(1 - cos_w0) / 2, 1 - cos_w0, (1 - cos_w0) / 2]
    elif descriptor.type == "highpass":
        b = [(1 + cos_w0) / 2, -(1 + cos_w0), (1 + cos_w0) / 2]
    elif descriptor.type == "bandpass":
        b = [alpha, 0.0, -alpha]
    else:  # notch
        b = [1.0, -2.0 * cos_w0, 1.0]
    a = [1 + alpha, -2.0 * cos_w0, 1 - alpha]

    a0 = a[0]
    return np.array(b) / a0, np.array(a) / a0


class ScipyRenderingFacility(RenderingFacility):
    """
    Default renderer backed by scipy.signal.

    Work runs in a worker thread so awaiting callers can interleave.
    """

    def __init__(self, normalize_impulse: bool = True):
        """
        Initialize the renderer.

        Args:
            normalize_impulse: Apply equal-power IR normalization.
        """
        self.normalize_impulse = normalize_impulse

    async def convolve(self, region, sample_rate, impulse):
        return await self._run("convolve", self._convolve, region, sample_rate, impulse)

    async def filter(self, region, sample_rate, descriptor):
        return await self._run("filter", self._filter, region, sample_rate, descriptor)

    async def _run(self, name, fn, *args):
        started = time.perf_counter()
        try:
            result = await asyncio.to_thread(fn, *args)
        except RenderingFailure:
            raise
        except (MemoryError, ValueError) as exc:
            logger.warning("Rendering %s failed: %s", name, exc)
            raise RenderingFailure(f"{name} rendering failed: {exc}") from exc
        logger.debug("Rendered %s in %.1f ms", name, (time.perf_counter() - started) * 1000)
        return result

    def _convolve(self, region: np.ndarray, sample_rate: int, impulse: np.ndarray) -> np.ndarray:
        region = np.atleast_2d(np.asarray(region, dtype=np.float64))
        impulse = np.atleast_2d(np.asarray(impulse, dtype=np.float64))
        n_channels, length = region.shape

        if impulse.shape[1] == 0:
            raise RenderingFailure("Impulse response is empty")

        scale = impulse_normalization_scale(impulse, sample_rate) if self.normalize_impulse else 1.0

        rendered = np.zeros_like(region)
        for ch in range(n_channels):
            ir = impulse[min(ch, impulse.shape[0] - 1)]
            wet = scipy_signal.fftconvolve(region[ch], ir)[:length]
            rendered[ch, :len(wet)] = wet * scale
        return rendered

    def _filter(
        self,
        region: np.ndarray,
        sample_rate: int,
        descriptor: FilterDescriptor,
    ) -> np.ndarray:
        region = np.atleast_2d(np.asarray(region, dtype=np.float64))
        b, a = biquad_coefficients(descriptor, sample_rate)
        return scipy_signal.lfilter(b, a, region, axis=-1)
