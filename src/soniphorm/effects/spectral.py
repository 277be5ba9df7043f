"""
Frame-based spectral effects.

Time-stretch and pitch-shift use the phase vocoder; paulstretch and the
two freeze effects synthesize new material from captured spectra or grains
and therefore produce regions of a new length.
"""

import math

import numpy as np

from soniphorm.core.params import ParameterSpec
from soniphorm.core.spectral import fft, hann_window, ifft, next_pow2, round_half_up
from soniphorm.core.vocoder import pitch_shift, time_stretch
from soniphorm.effects.base import Effect, normalize_peak, percent

TWO_PI = 2.0 * np.pi

FREEZE_FRAME_SIZE = 4096
FREEZE_HOP = FREEZE_FRAME_SIZE // 4


class TimeStretch(Effect):
    """Phase-vocoder duration change; the region is replaced by the OLA output."""

    key = "timestretch"
    label = "Time Stretch"
    parameters = (ParameterSpec("rate", "Rate", 0.25, 4.0, 0.05, 1.0),)
    changes_length = True

    async def render(self, segment, sample_rate, params, context):
        rate = float(params["rate"])
        return np.stack([time_stretch(ch, rate) for ch in segment])


class PitchShift(Effect):
    """Phase-vocoder pitch change; region length is preserved."""

    key = "pitchshift"
    label = "Pitch Shift"
    parameters = (ParameterSpec("semitones", "Semitones", -12, 12, 1, 0),)

    async def render(self, segment, sample_rate, params, context):
        semitones = float(params["semitones"])
        return np.stack([pitch_shift(ch, semitones, sample_rate) for ch in segment])


class Paulstretch(Effect):
    """
    Extreme time-stretch by phase randomization.

    Frames are read every window/stretch samples and written every
    window/2 samples, with every bin's phase replaced by a random value.
    """

    key = "paulstretch"
    label = "Paulstretch"
    parameters = (
        ParameterSpec("stretch", "Stretch", 2, 50, 1, 8),
        ParameterSpec("windowSize", "Window Size", 0.1, 1.0, 0.05, 0.3, unit="s"),
    )
    changes_length = True

    async def render(self, segment, sample_rate, params, context):
        stretch = float(params["stretch"])
        window_size = next_pow2(math.ceil(float(params["windowSize"]) * sample_rate))
        window_size = max(window_size, 2)
        hop_in = max(1, round_half_up(window_size / stretch))
        hop_out = window_size // 2

        n = segment.shape[1]
        n_frames = math.ceil(n / hop_in)
        output_length = n_frames * hop_out + window_size
        window = hann_window(window_size)

        out = np.zeros((segment.shape[0], output_length))
        for ch, samples in enumerate(segment):
            padded = np.zeros(n + window_size)
            padded[:n] = samples

            for f in range(n_frames):
                read_pos = f * hop_in
                write_pos = f * hop_out

                real = padded[read_pos:read_pos + window_size] * window
                imag = np.zeros(window_size)
                fft(real, imag)

                magnitude = np.hypot(real, imag)
                phase = context.rng.random(window_size) * TWO_PI
                real = magnitude * np.cos(phase)
                imag = magnitude * np.sin(phase)

                ifft(real, imag)
                out[ch, write_pos:write_pos + window_size] += real * window

            out[ch] = normalize_peak(out[ch])
        return out


class GranularFreeze(Effect):
    """
    Sustain the sound around a point by scattering Hann-windowed grains.

    Grain sources jitter by up to half a grain around the freeze point;
    destinations are uniformly random over the output.
    """

    key = "granularfreeze"
    label = "Granular Freeze"
    parameters = (
        ParameterSpec("position", "Position", 0, 100, 1, 50, unit="%"),
        ParameterSpec("grainSize", "Grain Size", 10, 200, 5, 50, unit="ms"),
        ParameterSpec("density", "Density", 1, 20, 1, 8),
        ParameterSpec("duration", "Duration", 0.5, 10, 0.5, 3, unit="s"),
    )
    changes_length = True

    async def render(self, segment, sample_rate, params, context):
        rng = context.rng
        n = segment.shape[1]

        grain = max(2, int(math.floor(float(params["grainSize"]) / 1000.0 * sample_rate)))
        output_length = int(math.floor(float(params["duration"]) * sample_rate))
        half_grain = grain // 2
        freeze_point = int(math.floor(percent(params["position"]) * n))
        total_grains = math.ceil(output_length / grain) * int(params["density"])
        window = hann_window(grain)

        out = np.zeros((segment.shape[0], output_length))
        for ch, samples in enumerate(segment):
            output = out[ch]

            for _ in range(total_grains):
                source_offset = freeze_point + math.floor((rng.random() - 0.5) * grain)
                source_start = source_offset - half_grain
                out_pos = max(0, math.floor(rng.random() * (output_length - grain)))

                # Source samples outside the region are skipped, writes past the end clipped
                lo = max(0, -source_start)
                hi = min(grain, n - source_start, output_length - out_pos)
                if hi <= lo:
                    continue
                output[out_pos + lo:out_pos + hi] += (
                    samples[source_start + lo:source_start + hi] * window[lo:hi]
                )

            out[ch] = normalize_peak(output)
        return out


class SpectralFreeze(Effect):
    """
    Hold one magnitude spectrum and resynthesize it with drifting phases.

    Each frame blends the running phase toward a fresh random phase by
    (1 - smoothing): high smoothing gives a static drone, low smoothing a
    noisy shimmer.
    """

    key = "spectralfreeze"
    label = "Spectral Freeze"
    parameters = (
        ParameterSpec("position", "Position", 0, 100, 1, 50, unit="%"),
        ParameterSpec("duration", "Duration", 0.5, 10, 0.5, 3, unit="s"),
        ParameterSpec("smoothing", "Smoothing", 0, 100, 1, 80, unit="%"),
    )
    changes_length = True

    async def render(self, segment, sample_rate, params, context):
        rng = context.rng
        frame_size = FREEZE_FRAME_SIZE
        hop = FREEZE_HOP
        smoothing = percent(params["smoothing"])
        n = segment.shape[1]

        output_length = int(math.floor(float(params["duration"]) * sample_rate))
        n_frames = math.ceil(output_length / hop)
        freeze_sample = int(math.floor(percent(params["position"]) * n))
        window = hann_window(frame_size)

        out = np.zeros((segment.shape[0], output_length))
        for ch, samples in enumerate(segment):
            magnitudes = self._capture(samples, freeze_sample - frame_size // 2, window)
            phases = rng.random(frame_size) * TWO_PI
            output = out[ch]

            for f in range(n_frames):
                fresh = rng.random(frame_size) * TWO_PI
                phases = phases * smoothing + fresh * (1.0 - smoothing)

                real = magnitudes * np.cos(phases)
                imag = magnitudes * np.sin(phases)
                ifft(real, imag)

                write_pos = f * hop
                count = min(frame_size, output_length - write_pos)
                output[write_pos:write_pos + count] += real[:count] * window[:count]

            out[ch] = normalize_peak(output)
        return out

    @staticmethod
    def _capture(samples: np.ndarray, start: int, window: np.ndarray) -> np.ndarray:
        """Magnitude spectrum of one windowed frame; out-of-range samples read as zero."""
        frame_size = len(window)
        real = np.zeros(frame_size)
        lo = max(0, -start)
        hi = min(frame_size, len(samples) - start)
        if hi > lo:
            real[lo:hi] = samples[start + lo:start + hi] * window[lo:hi]
        imag = np.zeros(frame_size)
        fft(real, imag)
        return np.hypot(real, imag)
