"""
Phase vocoder time-stretch and pitch-shift.

Tracks per-bin instantaneous frequency across OLA frames and re-accumulates
output phase at the synthesis hop, keeping each bin's magnitude unchanged.
"""

from dataclasses import dataclass

import numpy as np

from soniphorm.core.ola import overlap_add
from soniphorm.core.resampler import resample
from soniphorm.core.spectral import round_half_up

TWO_PI = 2.0 * np.pi

DEFAULT_FRAME_SIZE = 4096


@dataclass
class PhaseVocoderState:
    """Per-channel phase tracking carried from one OLA frame to the next."""

    frame_size: int
    hop_in: int
    hop_out: int
    prev_phase: np.ndarray | None = None
    phase_accum: np.ndarray | None = None
    first_frame: bool = True

    def __post_init__(self):
        n_bins = self.frame_size // 2 + 1
        if self.prev_phase is None:
            self.prev_phase = np.zeros(n_bins)
        if self.phase_accum is None:
            self.phase_accum = np.zeros(n_bins)

    @property
    def n_bins(self) -> int:
        return self.frame_size // 2 + 1


def wrap_phase(phase: np.ndarray) -> np.ndarray:
    """Wrap phase values to [-pi, pi]."""
    return phase - np.floor(phase / TWO_PI + 0.5) * TWO_PI


def phase_vocoder_frame(
    real: np.ndarray,
    imag: np.ndarray,
    frame_index: int,
    state: PhaseVocoderState,
) -> None:
    """
    OLA callback rebuilding the lower half-spectrum with accumulated phase.

    The upper half is mirrored as the conjugate of the lower half so the
    inverse transform stays real-valued.
    """
    n = state.frame_size
    half = state.n_bins

    re = real[:half]
    im = imag[:half]
    magnitude = np.hypot(re, im)
    phase = np.arctan2(im, re)

    if state.first_frame:
        state.phase_accum = phase.copy()
    else:
        expected = np.arange(half) * TWO_PI * state.hop_in / n
        wrapped = wrap_phase(phase - state.prev_phase - expected)
        true_freq = expected + wrapped
        state.phase_accum = state.phase_accum + true_freq * (state.hop_out / state.hop_in)

    state.prev_phase = phase
    real[:half] = magnitude * np.cos(state.phase_accum)
    imag[:half] = magnitude * np.sin(state.phase_accum)

    # Negative frequencies: bin k mirrors bin n - k
    real[half:] = real[1:n // 2][::-1]
    imag[half:] = -imag[1:n // 2][::-1]

    state.first_frame = False


def time_stretch(
    channel: np.ndarray,
    rate: float,
    frame_size: int = DEFAULT_FRAME_SIZE,
) -> np.ndarray:
    """
    Change duration without changing pitch.

    Args:
        channel: Mono input samples.
        rate: Output/input duration ratio (2.0 doubles the length).
        frame_size: FFT size.

    Returns:
        Raw OLA output; not padded or trimmed.
    """
    hop_in = frame_size // 4
    hop_out = max(1, round_half_up(hop_in * rate))
    state = PhaseVocoderState(frame_size=frame_size, hop_in=hop_in, hop_out=hop_out)
    return overlap_add(channel, frame_size, hop_in, hop_out, phase_vocoder_frame, state)


def pitch_shift(
    channel: np.ndarray,
    semitones: float,
    sample_rate: int,
    frame_size: int = DEFAULT_FRAME_SIZE,
) -> np.ndarray:
    """
    Shift pitch by time-stretching at 1/ratio then resampling.

    The stretched signal is resampled from sample_rate * ratio to
    sample_rate and trimmed or zero-padded to the input length.
    """
    samples = np.asarray(channel, dtype=np.float64)
    pitch_ratio = 2.0 ** (semitones / 12.0)

    stretched = time_stretch(samples, 1.0 / pitch_ratio, frame_size)
    resampled = resample(stretched, sample_rate * pitch_ratio, sample_rate)

    out = np.zeros(len(samples))
    count = min(len(resampled), len(samples))
    out[:count] = resampled[:count]
    return out
