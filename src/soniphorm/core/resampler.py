"""Linear-interpolation sample-rate conversion."""

import numpy as np

from soniphorm.core.spectral import round_half_up


def resample(channel: np.ndarray, from_rate: float, to_rate: float) -> np.ndarray:
    """
    Resample a mono channel by linear interpolation.

    Args:
        channel: Input samples.
        from_rate: Original sample rate (Hz).
        to_rate: Target sample rate (Hz).

    Returns:
        New array at to_rate. Equal rates return a copy.
    """
    samples = np.asarray(channel, dtype=np.float64)
    if from_rate == to_rate:
        return samples.copy()

    ratio = from_rate / to_rate
    out_length = round_half_up(len(samples) / ratio)
    if out_length <= 0 or len(samples) == 0:
        return np.zeros(max(out_length, 0))

    last = len(samples) - 1
    positions = np.arange(out_length) * ratio
    idx = np.minimum(np.floor(positions).astype(np.int64), last)
    frac = positions - idx

    a = samples[idx]
    # Upper neighbour clamped to the final sample
    b = samples[np.minimum(idx + 1, last)]
    return a + frac * (b - a)
