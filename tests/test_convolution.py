"""Tests for reverb, filter, and the scipy rendering facility."""

import numpy as np
import pytest

from soniphorm.core.buffer import SampleBuffer
from soniphorm.core.rendering import (
    FilterDescriptor,
    RenderingFacility,
    ScipyRenderingFacility,
    biquad_coefficients,
    impulse_normalization_scale,
)
from soniphorm.effects import EffectContext, get_effect
from soniphorm.effects.convolution import generate_impulse_response
from soniphorm.errors import RenderingFailure


class FailingRenderer(RenderingFacility):
    async def convolve(self, region, sample_rate, impulse):
        raise RenderingFailure("no audio graph available")

    async def filter(self, region, sample_rate, descriptor):
        raise RenderingFailure("no audio graph available")


def rms(y: np.ndarray) -> float:
    return float(np.sqrt(np.mean(np.square(y, dtype=np.float64))))


class TestImpulseResponse:
    """Tests for synthetic reverb IRs."""

    def test_shape_and_decay(self):
        ir = generate_impulse_response(1000, 2.0, 2, np.random.default_rng(0))

        assert ir.shape == (2, 2000)
        assert np.max(np.abs(ir[:, :200])) > np.max(np.abs(ir[:, -200:]))

    def test_seeded(self):
        a = generate_impulse_response(1000, 0.5, 1, np.random.default_rng(9))
        b = generate_impulse_response(1000, 0.5, 1, np.random.default_rng(9))
        np.testing.assert_array_equal(a, b)


class TestReverb:
    """Tests for the reverb effect."""

    def test_mix_zero_is_dry(self, stereo_buffer, run_async):
        context = EffectContext(rng=np.random.default_rng(0))
        result = run_async(get_effect("reverb").process(
            stereo_buffer, stereo_buffer.sample_rate, 0, stereo_buffer.length,
            {"decay": 0.5, "mix": 0}, context,
        ))
        np.testing.assert_allclose(result.channels, stereo_buffer.channels)

    def test_seeded_reverb_is_reproducible(self, stereo_buffer, run_async):
        def render(seed):
            context = EffectContext(rng=np.random.default_rng(seed))
            return run_async(get_effect("reverb").process(
                stereo_buffer, stereo_buffer.sample_rate, 0, 4096, {"decay": 0.2}, context,
            ))

        np.testing.assert_array_equal(render(5).channels, render(5).channels)

    def test_length_preserved(self, stereo_buffer, run_async):
        result = run_async(get_effect("reverb").process(
            stereo_buffer, stereo_buffer.sample_rate, 1000, 3000, {"decay": 0.3},
        ))
        assert result.length == stereo_buffer.length

    def test_rendering_failure_leaves_input_untouched(self, stereo_buffer, run_async):
        before = stereo_buffer.channels.copy()
        context = EffectContext(renderer=FailingRenderer())

        with pytest.raises(RenderingFailure):
            run_async(get_effect("reverb").process(
                stereo_buffer, stereo_buffer.sample_rate, 0, stereo_buffer.length, None, context,
            ))
        np.testing.assert_array_equal(stereo_buffer.channels, before)


class TestFilter:
    """Tests for the biquad filter effect."""

    def test_lowpass_attenuates_high_tone(self, sample_rate, run_async):
        t = np.arange(sample_rate) / sample_rate
        high = 0.5 * np.sin(2 * np.pi * 5000 * t)
        buffer = SampleBuffer(high, sample_rate)

        result = run_async(get_effect("filter").process(
            buffer, sample_rate, 0, buffer.length,
            {"type": "lowpass", "frequency": 200, "q": 1},
        ))
        assert rms(result.channels[0, 1000:]) < 0.05 * rms(high[1000:])

    def test_highpass_passes_high_tone(self, sample_rate, run_async):
        t = np.arange(sample_rate) / sample_rate
        high = 0.5 * np.sin(2 * np.pi * 5000 * t)
        buffer = SampleBuffer(high, sample_rate)

        result = run_async(get_effect("filter").process(
            buffer, sample_rate, 0, buffer.length,
            {"type": "highpass", "frequency": 200, "q": 0},
        ))
        assert rms(result.channels[0, 1000:]) == pytest.approx(rms(high[1000:]), rel=0.05)

    def test_unknown_type_falls_back_to_lowpass(self, mono_buffer, run_async):
        a = run_async(get_effect("filter").process(
            mono_buffer, mono_buffer.sample_rate, 0, mono_buffer.length, {"type": "comb"},
        ))
        b = run_async(get_effect("filter").process(
            mono_buffer, mono_buffer.sample_rate, 0, mono_buffer.length, {"type": "lowpass"},
        ))
        np.testing.assert_array_equal(a.channels, b.channels)


class TestScipyRenderingFacility:
    """Tests for the default renderer."""

    def test_coefficients_normalized(self):
        b, a = biquad_coefficients(FilterDescriptor("bandpass", 1000, 2), 44100)
        assert a[0] == 1.0
        assert len(b) == 3

    def test_unknown_filter_type_raises(self):
        with pytest.raises(ValueError):
            biquad_coefficients(FilterDescriptor("comb", 1000, 1), 44100)

    def test_unknown_filter_type_becomes_rendering_failure(self, run_async):
        renderer = ScipyRenderingFacility()
        with pytest.raises(RenderingFailure):
            run_async(renderer.filter(np.zeros((1, 16)), 44100, FilterDescriptor("comb", 1000, 1)))

    def test_empty_impulse_raises(self, run_async):
        renderer = ScipyRenderingFacility()
        with pytest.raises(RenderingFailure):
            run_async(renderer.convolve(np.zeros((1, 16)), 44100, np.zeros((1, 0))))

    def test_delta_impulse_without_normalization(self, run_async):
        renderer = ScipyRenderingFacility(normalize_impulse=False)
        region = np.random.default_rng(0).standard_normal((2, 64))

        out = run_async(renderer.convolve(region, 44100, np.array([1.0, 0.0, 0.0])))
        np.testing.assert_allclose(out, region, atol=1e-12)

    def test_quiet_impulse_uses_power_floor(self):
        quiet = np.full((1, 100), 1e-9)
        floor = np.full((1, 100), 1e-5)
        assert impulse_normalization_scale(quiet, 44100) == impulse_normalization_scale(floor, 44100)
