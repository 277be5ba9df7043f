"""
Reading and writing sample buffers as audio files.
"""

from pathlib import Path
from typing import Union

import librosa
import numpy as np
import soundfile as sf

from soniphorm.core.buffer import SampleBuffer


def load_audio(audio_path: Union[str, Path], sr: int | None = None) -> SampleBuffer:
    """
    Load audio from file, keeping every channel.

    Args:
        audio_path: Path to audio file (wav, mp3, flac).
        sr: Target sample rate. None preserves original.

    Returns:
        SampleBuffer shaped (n_channels, length).
    """
    y, sr_out = librosa.load(audio_path, sr=sr, mono=False)
    return SampleBuffer(np.atleast_2d(y), int(sr_out))


def save_audio(
    buffer: SampleBuffer,
    output_path: Union[str, Path],
    subtype: str = "PCM_16",
) -> Path:
    """
    Write a buffer to disk. Samples are clipped to [-1, 1].

    Returns:
        Path to written file.
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    frames = np.clip(buffer.channels, -1.0, 1.0).T
    sf.write(output_path, frames, buffer.sample_rate, subtype=subtype)
    return output_path
