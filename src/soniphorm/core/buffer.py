"""
Sample buffer data model and the region splice protocol.

Buffers have value semantics: construction copies the incoming samples and
every operation in the engine returns a fresh buffer.
"""

from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True)
class Region:
    """Half-open sample range [start, end)."""

    start: int
    end: int

    @property
    def length(self) -> int:
        return self.end - self.start

    @property
    def slice(self) -> slice:
        return slice(self.start, self.end)

    def validate(self, length: int) -> "Region":
        """
        Check the region against a channel length.

        Raises:
            ValueError: If the region is empty or falls outside [0, length].
        """
        if self.start < 0 or self.end > length:
            raise ValueError(
                f"Region [{self.start}, {self.end}) is outside buffer of length {length}"
            )
        if self.end <= self.start:
            raise ValueError(f"Region [{self.start}, {self.end}) is empty")
        return self


@dataclass
class SampleBuffer:
    """Multi-channel audio sharing one length and one sample rate."""

    channels: np.ndarray  # Shape: (n_channels, length), float32
    sample_rate: int

    def __post_init__(self):
        if isinstance(self.channels, (list, tuple)):
            lengths = {len(ch) for ch in self.channels}
            if len(lengths) > 1:
                raise ValueError(f"All channels must share one length, got {sorted(lengths)}")

        data = np.array(self.channels, dtype=np.float32)
        if data.ndim == 1:
            data = data[np.newaxis, :]
        if data.ndim != 2 or data.shape[0] == 0:
            raise ValueError(f"Expected (n_channels, length) samples, got shape {data.shape}")

        self.channels = data
        self.sample_rate = int(self.sample_rate)

    @classmethod
    def from_mono(
        cls,
        samples: np.ndarray,
        sample_rate: int,
        n_channels: int = 1,
    ) -> "SampleBuffer":
        """Build a buffer by copying one channel n_channels times."""
        mono = np.asarray(samples, dtype=np.float32)
        return cls(np.tile(mono, (n_channels, 1)), sample_rate)

    @property
    def n_channels(self) -> int:
        return self.channels.shape[0]

    @property
    def length(self) -> int:
        return self.channels.shape[1]

    @property
    def duration(self) -> float:
        """Duration in seconds."""
        return self.length / self.sample_rate if self.sample_rate else 0.0

    def copy(self) -> "SampleBuffer":
        return SampleBuffer(self.channels, self.sample_rate)

    def region(self, region: Region) -> np.ndarray:
        """Float64 copy of the samples inside a region, shape (n_channels, n)."""
        return self.channels[:, region.slice].astype(np.float64)

    def peak(self, region: Region | None = None) -> float:
        """Largest absolute sample value across all channels."""
        data = self.channels if region is None else self.channels[:, region.slice]
        if data.size == 0:
            return 0.0
        return float(np.max(np.abs(data)))


def splice(
    buffer: SampleBuffer,
    region: Region,
    processed: np.ndarray,
    sample_rate: int | None = None,
) -> SampleBuffer:
    """
    Recombine a processed region with the untouched head and tail.

    Each channel becomes concat(original[:start], processed, original[end:]),
    so equal-length results replace the region in place while
    length-changing results grow or shrink the buffer.

    Args:
        buffer: Source buffer (not modified).
        region: Region that was processed.
        processed: Processed samples shaped (n_channels, new_length).
        sample_rate: Rate for the result; defaults to the buffer's.

    Returns:
        New SampleBuffer.
    """
    processed = np.atleast_2d(np.asarray(processed, dtype=np.float32))
    if processed.shape[0] != buffer.n_channels:
        raise ValueError(
            f"Processed region has {processed.shape[0]} channels, "
            f"buffer has {buffer.n_channels}"
        )

    head = buffer.channels[:, :region.start]
    tail = buffer.channels[:, region.end:]
    return SampleBuffer(
        np.concatenate((head, processed, tail), axis=1),
        sample_rate if sample_rate is not None else buffer.sample_rate,
    )
