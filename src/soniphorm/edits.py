"""
Destructive buffer edits.

Simple region operations used by the editor toolbar. Each returns a new
SampleBuffer; the input is never modified.
"""

import numpy as np

from soniphorm.core.buffer import Region, SampleBuffer

NORMALISE_TARGET = 0.95


def _checked(buffer: SampleBuffer, start: int, end: int) -> Region:
    return Region(start, end).validate(buffer.length)


def trim(buffer: SampleBuffer, start: int, end: int) -> SampleBuffer:
    """Keep only [start, end)."""
    region = _checked(buffer, start, end)
    return SampleBuffer(buffer.channels[:, region.slice], buffer.sample_rate)


def cut(buffer: SampleBuffer, start: int, end: int) -> SampleBuffer:
    """Remove [start, end) and close the gap."""
    region = _checked(buffer, start, end)
    kept = np.concatenate(
        (buffer.channels[:, :region.start], buffer.channels[:, region.end:]),
        axis=1,
    )
    return SampleBuffer(kept, buffer.sample_rate)


def silence(buffer: SampleBuffer, start: int, end: int) -> SampleBuffer:
    """Zero every sample in [start, end)."""
    region = _checked(buffer, start, end)
    result = buffer.copy()
    result.channels[:, region.slice] = 0.0
    return result


def fade_in(buffer: SampleBuffer, start: int, end: int) -> SampleBuffer:
    """Linear ramp from 0 towards 1 across the region (gain i / length)."""
    region = _checked(buffer, start, end)
    result = buffer.copy()
    gain = np.arange(region.length, dtype=np.float64) / region.length
    result.channels[:, region.slice] *= gain.astype(np.float32)
    return result


def fade_out(buffer: SampleBuffer, start: int, end: int) -> SampleBuffer:
    """Linear ramp from 1 towards 0 across the region (gain 1 - i / length)."""
    region = _checked(buffer, start, end)
    result = buffer.copy()
    gain = 1.0 - np.arange(region.length, dtype=np.float64) / region.length
    result.channels[:, region.slice] *= gain.astype(np.float32)
    return result


def reverse(buffer: SampleBuffer, start: int, end: int) -> SampleBuffer:
    """Reverse sample order inside the region."""
    region = _checked(buffer, start, end)
    result = buffer.copy()
    result.channels[:, region.slice] = buffer.channels[:, region.slice][:, ::-1]
    return result


def normalise_samples(samples: np.ndarray, target: float = NORMALISE_TARGET) -> np.ndarray:
    """
    Raise quiet material so its peak reaches target.

    Silent input and input already at or above target come back unchanged.
    """
    peak = float(np.max(np.abs(samples))) if samples.size else 0.0
    if peak == 0.0 or peak >= target:
        return samples
    return samples * (target / peak)


def normalise(buffer: SampleBuffer, start: int, end: int) -> SampleBuffer:
    """Normalise the region (peak over all channels) to 0.95."""
    region = _checked(buffer, start, end)
    result = buffer.copy()
    result.channels[:, region.slice] = normalise_samples(buffer.region(region))
    return result


def paste(buffer: SampleBuffer, clipboard: SampleBuffer, position: int) -> SampleBuffer:
    """
    Insert clipboard audio at position.

    Channel counts are reconciled by padding the narrower side with silence.
    """
    if not 0 <= position <= buffer.length:
        raise ValueError(f"Paste position {position} outside buffer of length {buffer.length}")

    n_channels = max(buffer.n_channels, clipboard.n_channels)
    out = np.zeros((n_channels, buffer.length + clipboard.length), dtype=np.float32)
    clip_end = position + clipboard.length

    out[:buffer.n_channels, :position] = buffer.channels[:, :position]
    out[:clipboard.n_channels, position:clip_end] = clipboard.channels
    out[:buffer.n_channels, clip_end:] = buffer.channels[:, position:]
    return SampleBuffer(out, buffer.sample_rate)


EDITS = {
    "trim": trim,
    "cut": cut,
    "silence": silence,
    "fadeIn": fade_in,
    "fadeOut": fade_out,
    "reverse": reverse,
    "normalise": normalise,
}
