"""Tests for destructive buffer edits."""

import numpy as np
import pytest

from soniphorm.core.buffer import SampleBuffer
from soniphorm.edits import (
    EDITS,
    cut,
    fade_in,
    fade_out,
    normalise,
    normalise_samples,
    paste,
    reverse,
    silence,
    trim,
)


@pytest.fixture
def second_of_noise():
    """48000-sample mono buffer at 48 kHz."""
    rng = np.random.default_rng(7)
    return SampleBuffer(rng.uniform(-0.5, 0.5, 48000), 48000)


class TestFades:
    def test_fade_in_whole_buffer(self, second_of_noise):
        result = fade_in(second_of_noise, 0, 48000)
        original = second_of_noise.channels[0]

        assert result.channels[0, 0] == 0.0
        assert result.channels[0, 47999] == pytest.approx(original[47999] * 47999 / 48000, rel=1e-6)

    def test_fade_out_starts_at_full_gain(self, second_of_noise):
        result = fade_out(second_of_noise, 100, 200)
        original = second_of_noise.channels[0]

        assert result.channels[0, 100] == original[100]
        assert abs(result.channels[0, 199]) < abs(original[199]) * 0.02
        np.testing.assert_array_equal(result.channels[0, 200:], original[200:])


class TestSilence:
    def test_region_zeroed_rest_identical(self, second_of_noise):
        result = silence(second_of_noise, 1000, 2000)
        original = second_of_noise.channels[0]

        assert np.all(result.channels[0, 1000:2000] == 0.0)
        np.testing.assert_array_equal(result.channels[0, :1000], original[:1000])
        np.testing.assert_array_equal(result.channels[0, 2000:], original[2000:])


class TestTrimAndCut:
    def test_trim(self, stereo_buffer):
        result = trim(stereo_buffer, 100, 200)

        assert result.length == 100
        np.testing.assert_array_equal(result.channels, stereo_buffer.channels[:, 100:200])

    def test_cut(self, stereo_buffer):
        result = cut(stereo_buffer, 100, 200)

        assert result.length == stereo_buffer.length - 100
        np.testing.assert_array_equal(result.channels[:, 100:], stereo_buffer.channels[:, 200:])

    def test_empty_region_raises(self, stereo_buffer):
        with pytest.raises(ValueError):
            trim(stereo_buffer, 200, 200)


class TestReverse:
    def test_double_reverse_is_identity(self, stereo_buffer):
        once = reverse(stereo_buffer, 10, 5000)
        twice = reverse(once, 10, 5000)

        assert not np.array_equal(once.channels, stereo_buffer.channels)
        np.testing.assert_array_equal(twice.channels, stereo_buffer.channels)


class TestNormalise:
    """Tests for peak normalisation."""

    def test_quiet_region_raised_to_target(self):
        buffer = SampleBuffer(np.array([0.1, -0.25, 0.2, 0.9]), 8000)
        result = normalise(buffer, 0, 3)

        assert np.max(np.abs(result.channels[0, :3])) == pytest.approx(0.95, abs=1e-6)
        assert result.channels[0, 3] == buffer.channels[0, 3]

    def test_loud_region_unchanged(self):
        samples = np.array([0.99, -0.2])
        assert normalise_samples(samples) is samples

    def test_silence_unchanged(self):
        samples = np.zeros(10)
        np.testing.assert_array_equal(normalise_samples(samples), samples)


class TestPaste:
    def test_insert_in_middle(self):
        buffer = SampleBuffer(np.array([1.0, 2.0, 3.0]), 8000)
        clip = SampleBuffer(np.array([9.0, 9.0]), 8000)

        result = paste(buffer, clip, 1)
        np.testing.assert_array_equal(result.channels[0], [1, 9, 9, 2, 3])

    def test_mono_clip_into_stereo(self, stereo_buffer):
        clip = SampleBuffer(np.ones(10), stereo_buffer.sample_rate)
        result = paste(stereo_buffer, clip, 0)

        assert result.n_channels == 2
        assert np.all(result.channels[0, :10] == 1.0)
        assert np.all(result.channels[1, :10] == 0.0)

    def test_position_out_of_range(self, stereo_buffer):
        clip = SampleBuffer(np.ones(10), stereo_buffer.sample_rate)
        with pytest.raises(ValueError):
            paste(stereo_buffer, clip, stereo_buffer.length + 1)


class TestEditTable:
    def test_names(self):
        assert set(EDITS) == {"trim", "cut", "silence", "fadeIn", "fadeOut", "reverse", "normalise"}

    @pytest.mark.parametrize("op", sorted(EDITS))
    def test_input_not_mutated(self, op, stereo_buffer):
        before = stereo_buffer.channels.copy()
        EDITS[op](stereo_buffer, 100, 1000)
        np.testing.assert_array_equal(stereo_buffer.channels, before)
