"""Pytest configuration and shared fixtures."""

import asyncio

import numpy as np
import pytest

from soniphorm.core.buffer import SampleBuffer

# Default sample rate for test audio
TEST_SR = 22050


@pytest.fixture
def run_async():
    """Drive a coroutine to completion from a synchronous test."""
    return asyncio.run


@pytest.fixture
def sample_rate() -> int:
    """Default sample rate for tests."""
    return TEST_SR


@pytest.fixture
def pure_sine(sample_rate: int) -> tuple[np.ndarray, int]:
    """
    Generate a pure 440Hz sine wave (A4 note).

    Returns:
        Tuple of (audio_signal, sample_rate).
    """
    duration = 1.0
    t = np.arange(int(sample_rate * duration)) / sample_rate
    y = 0.5 * np.sin(2 * np.pi * 440.0 * t)
    return y, sample_rate


@pytest.fixture
def white_noise(sample_rate: int) -> tuple[np.ndarray, int]:
    """
    Generate white noise.

    Returns:
        Tuple of (audio_signal, sample_rate).
    """
    rng = np.random.default_rng(42)  # Reproducible
    y = rng.standard_normal(sample_rate) * 0.3
    return y, sample_rate


@pytest.fixture
def mono_buffer(pure_sine) -> SampleBuffer:
    """One second of 440Hz sine as a mono buffer."""
    y, sr = pure_sine
    return SampleBuffer(y, sr)


@pytest.fixture
def stereo_buffer(pure_sine, white_noise) -> SampleBuffer:
    """Sine on the left, quiet noise on the right."""
    sine, sr = pure_sine
    noise, _ = white_noise
    return SampleBuffer(np.stack([sine, noise * 0.5]), sr)


@pytest.fixture
def temp_audio_file(tmp_path, stereo_buffer):
    """Create a temporary stereo wav file for testing file I/O."""
    import soundfile as sf

    audio_path = tmp_path / "test_audio.wav"
    sf.write(audio_path, stereo_buffer.channels.T, stereo_buffer.sample_rate)
    return audio_path
