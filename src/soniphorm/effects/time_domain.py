"""
Sample-by-sample effects: delay, distortion, quantization, modulation,
folding, slicing, and region copies.
"""

import math

import numpy as np
from scipy import signal as scipy_signal

from soniphorm.core.buffer import Region, SampleBuffer
from soniphorm.core.params import ParameterSpec
from soniphorm.edits import normalise_samples
from soniphorm.effects.base import Effect, percent


class Delay(Effect):
    """Feedback delay line confined to the region."""

    key = "delay"
    label = "Delay"
    parameters = (
        ParameterSpec("time", "Time", 10, 1000, 10, 300, unit="ms"),
        ParameterSpec("feedback", "Feedback", 0, 90, 1, 40, unit="%"),
        ParameterSpec("mix", "Mix", 0, 100, 1, 50, unit="%"),
    )

    async def render(self, segment, sample_rate, params, context):
        delay_samples = int(math.floor(params["time"] / 1000.0 * sample_rate))
        feedback = percent(params["feedback"])
        mix = percent(params["mix"])
        n = segment.shape[1]

        out = np.empty_like(segment)
        for ch, dry in enumerate(segment):
            line = dry.copy()
            delayed = np.zeros(n)

            # line[i] = dry[i] + line[i - D] * feedback, one block of D at a time
            if 0 < delay_samples < n:
                for block in range(delay_samples, n, delay_samples):
                    stop = min(block + delay_samples, n)
                    delayed[block:stop] = line[block - delay_samples:stop - delay_samples]
                    line[block:stop] = dry[block:stop] + delayed[block:stop] * feedback

            out[ch] = dry * (1.0 - mix) + delayed * mix
        return out


class Overdrive(Effect):
    """tanh saturation followed by a one-pole low-pass tone control."""

    key = "overdrive"
    label = "Overdrive"
    parameters = (
        ParameterSpec("drive", "Drive", 1, 50, 1, 10),
        ParameterSpec("tone", "Tone", 0, 100, 1, 50, unit="%"),
    )

    async def render(self, segment, sample_rate, params, context):
        drive = float(params["drive"])
        tone = percent(params["tone"])

        # tone 0 -> 200 Hz (dark), tone 1 -> 20 kHz (open)
        cutoff = 200.0 + tone * 19800.0
        rc = 1.0 / (2.0 * math.pi * cutoff)
        dt = 1.0 / sample_rate
        alpha = dt / (rc + dt)

        saturated = np.tanh(segment * drive)
        # prev += alpha * (x - prev)
        return scipy_signal.lfilter([alpha], [1.0, alpha - 1.0], saturated, axis=-1)


class Bitcrush(Effect):
    """Amplitude quantization plus sample-and-hold rate reduction."""

    key = "bitcrush"
    label = "Bitcrush"
    parameters = (
        ParameterSpec("bits", "Bits", 1, 16, 1, 8),
        ParameterSpec("downsample", "Downsample", 1, 50, 1, 1),
    )

    async def render(self, segment, sample_rate, params, context):
        levels = 2.0 ** float(params["bits"])
        hold = max(1, int(params["downsample"]))
        n = segment.shape[1]

        held = np.floor(segment[:, ::hold] * levels + 0.5) / levels
        return np.repeat(held, hold, axis=1)[:, :n]


class RingMod(Effect):
    """Multiply by a sine carrier, phase-aligned to the region start."""

    key = "ringmod"
    label = "Ring Mod"
    parameters = (
        ParameterSpec("frequency", "Frequency", 1, 5000, 1, 440, unit="Hz"),
        ParameterSpec("mix", "Mix", 0, 100, 1, 100, unit="%"),
    )

    async def render(self, segment, sample_rate, params, context):
        frequency = float(params["frequency"])
        mix = percent(params["mix"])

        i = np.arange(segment.shape[1])
        carrier = np.sin(2.0 * np.pi * frequency * i / sample_rate)
        return segment * (1.0 - mix) + segment * carrier * mix


class Wavefolding(Effect):
    """Amplify, then reflect back inside +/- threshold until it fits."""

    key = "wavefolding"
    label = "Wavefolding"
    parameters = (
        ParameterSpec("threshold", "Threshold", 0.1, 1.0, 0.01, 0.5),
        ParameterSpec("gain", "Gain", 1, 10, 0.1, 2),
    )

    async def render(self, segment, sample_rate, params, context):
        threshold = float(params["threshold"])
        x = segment * float(params["gain"])
        x = np.where(np.isfinite(x), x, 0.0)

        over = np.abs(x) > threshold
        while over.any():
            x = np.where(
                x > threshold,
                2.0 * threshold - x,
                np.where(x < -threshold, -2.0 * threshold - x, x),
            )
            over = np.abs(x) > threshold

        return np.clip(x, -1.0, 1.0)


class Stutter(Effect):
    """
    Repeat consecutive slices of the region.

    Each slice is written once and then repeated; the write cursor stops at
    the region end, so later source slices are dropped. With scatter, a
    repeat (never the first copy) may be skipped, leaving the original
    audio in that gap.
    """

    key = "stutter"
    label = "Stutter"
    parameters = (
        ParameterSpec("sliceMs", "Slice", 10, 500, 10, 100, unit="ms"),
        ParameterSpec("repeats", "Repeats", 1, 16, 1, 4),
        ParameterSpec("scatter", "Scatter", 0, 100, 1, 0, unit="%"),
    )

    async def render(self, segment, sample_rate, params, context):
        slice_samples = max(1, int(math.floor(params["sliceMs"] / 1000.0 * sample_rate)))
        repeats = max(1, int(params["repeats"]))
        scatter = percent(params["scatter"])
        n = segment.shape[1]

        out = segment.copy()
        write_pos = 0

        for slice_start in range(0, n, slice_samples):
            slice_length = min(slice_samples, n - slice_start)

            for r in range(repeats):
                if write_pos >= n:
                    break

                if r > 0 and scatter > 0 and context.rng.random() < scatter:
                    write_pos += slice_length
                    continue

                count = min(slice_length, n - write_pos)
                out[:, write_pos:write_pos + count] = segment[:, slice_start:slice_start + count]
                write_pos += slice_length

        return out


class Bounce(Effect):
    """Copy of the region as a standalone buffer."""

    key = "bounce"
    label = "Bounce"

    async def process(self, buffer, sample_rate, start, end, values=None, context=None):
        region = Region(start, end).validate(buffer.length)
        return SampleBuffer(buffer.channels[:, region.slice], sample_rate)

    async def render(self, segment, sample_rate, params, context):
        return segment.copy()


class Normalise(Effect):
    """Raise a quiet region so its loudest sample reaches 0.95."""

    key = "normalise"
    label = "Normalise"

    async def render(self, segment, sample_rate, params, context):
        return normalise_samples(segment)
