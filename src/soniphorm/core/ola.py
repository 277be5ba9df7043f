"""
Overlap-add (OLA) analysis/synthesis driver.

Every spectral effect frames its input through this loop: Hann-windowed
analysis, forward FFT, a caller-supplied spectral callback, inverse FFT,
Hann-windowed synthesis, and overlap-add with window-energy normalization.
"""

from typing import Any, Callable

import numpy as np

from soniphorm.core.spectral import fft, hann_window, ifft, is_pow2

# callback(real, imag, frame_index, state) mutates the spectrum in place
FrameProcessor = Callable[[np.ndarray, np.ndarray, int, Any], None]

# Energy below this is treated as "no window coverage"
ENERGY_FLOOR = 1e-8


def frame_count(input_length: int, frame_size: int, hop_in: int) -> int:
    """Number of analysis frames; short inputs still get one zero-padded frame."""
    return max(1, (input_length - frame_size) // hop_in + 1)


def normalize_window_energy(output: np.ndarray, energy: np.ndarray) -> np.ndarray:
    """
    Divide accumulated output by accumulated squared-window energy.

    Samples at or above half the peak energy are divided directly. Below
    that, the leading edge is still divided as-is so transients survive,
    while the trailing edge is faded by (energy / threshold) so the
    vanishing denominator cannot spike the amplitude. Samples with
    negligible energy stay at zero.
    """
    result = np.zeros_like(output)
    if len(energy) == 0:
        return result

    threshold = 0.5 * float(np.max(energy))

    stable = np.flatnonzero(energy >= threshold)
    stable_end = int(stable[-1]) + 1 if stable.size else len(energy)

    covered = energy > ENERGY_FLOOR
    result[covered] = output[covered] / energy[covered]

    tail = covered & (energy < threshold)
    tail[:stable_end] = False
    result[tail] *= energy[tail] / threshold

    return result


def overlap_add(
    channel: np.ndarray,
    frame_size: int,
    hop_in: int,
    hop_out: int,
    process_frame: FrameProcessor,
    state: Any = None,
) -> np.ndarray:
    """
    Run the generic overlap-add processor over one channel.

    Args:
        channel: Mono input samples.
        frame_size: FFT size (power of two).
        hop_in: Analysis hop in input samples.
        hop_out: Synthesis hop in output samples.
        process_frame: Spectral callback, see FrameProcessor.
        state: Caller-owned record handed to every process_frame call.

    Returns:
        Processed signal of length (n_frames - 1) * hop_out + frame_size.
    """
    assert is_pow2(frame_size), f"frame_size must be a power of two, got {frame_size}"
    assert hop_in > 0 and hop_out > 0, "hops must be positive"

    samples = np.asarray(channel, dtype=np.float64)
    n_frames = frame_count(len(samples), frame_size, hop_in)
    output_length = (n_frames - 1) * hop_out + frame_size

    # Zero-extend so the last analysis window never reads past the end
    padded = np.zeros((n_frames - 1) * hop_in + frame_size)
    available = min(len(samples), len(padded))
    padded[:available] = samples[:available]

    output = np.zeros(output_length)
    energy = np.zeros(output_length)

    window = hann_window(frame_size)
    window_sq = window * window

    for f in range(n_frames):
        in_offset = f * hop_in
        out_offset = f * hop_out

        real = padded[in_offset:in_offset + frame_size] * window
        imag = np.zeros(frame_size)

        fft(real, imag)
        process_frame(real, imag, f, state)
        ifft(real, imag)

        output[out_offset:out_offset + frame_size] += real * window
        energy[out_offset:out_offset + frame_size] += window_sq

    return normalize_window_energy(output, energy)
