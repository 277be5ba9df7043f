"""Tests for the phase vocoder."""

import numpy as np
import pytest

from soniphorm.core.ola import frame_count
from soniphorm.core.vocoder import (
    PhaseVocoderState,
    phase_vocoder_frame,
    pitch_shift,
    time_stretch,
    wrap_phase,
)


def dominant_frequency(y: np.ndarray, sr: int) -> float:
    spectrum = np.abs(np.fft.rfft(y * np.hanning(len(y))))
    return float(np.argmax(spectrum)) * sr / len(y)


class TestPhaseVocoderState:
    """Tests for the explicit frame state."""

    def test_arrays_sized_to_half_spectrum(self):
        state = PhaseVocoderState(frame_size=1024, hop_in=256, hop_out=512)

        assert state.n_bins == 513
        assert state.prev_phase.shape == (513,)
        assert state.phase_accum.shape == (513,)
        assert state.first_frame

    def test_frame_clears_first_frame_flag(self):
        state = PhaseVocoderState(frame_size=8, hop_in=2, hop_out=2)
        real = np.arange(8, dtype=float)
        imag = np.zeros(8)

        phase_vocoder_frame(real, imag, 0, state)
        assert not state.first_frame

    def test_spectrum_stays_conjugate_symmetric(self):
        """Upper bins mirror the lower half so the inverse is real."""
        rng = np.random.default_rng(3)
        state = PhaseVocoderState(frame_size=16, hop_in=4, hop_out=8)
        for f in range(2):
            real = rng.standard_normal(16)
            imag = rng.standard_normal(16)
            phase_vocoder_frame(real, imag, f, state)

        for k in range(1, 8):
            assert real[16 - k] == pytest.approx(real[k])
            assert imag[16 - k] == pytest.approx(-imag[k])


class TestWrapPhase:
    def test_range(self):
        phases = np.linspace(-20, 20, 1001)
        wrapped = wrap_phase(phases)

        assert np.all(wrapped >= -np.pi - 1e-12)
        assert np.all(wrapped <= np.pi + 1e-12)
        np.testing.assert_allclose(np.cos(wrapped), np.cos(phases), atol=1e-9)


class TestTimeStretch:
    """Tests for time_stretch()."""

    def test_rate_one_is_near_identity(self, pure_sine):
        """At rate 1 the synthesis hop equals the analysis hop."""
        y, _ = pure_sine
        out = time_stretch(y, 1.0)

        interior = slice(4096, len(y) - 8192)
        np.testing.assert_allclose(out[interior], y[interior], atol=1e-6)

    def test_output_length(self, pure_sine):
        """Length follows the OLA formula with hop_out = round(hop_in * rate)."""
        y, _ = pure_sine
        out = time_stretch(y, 2.0)

        n_frames = frame_count(len(y), 4096, 1024)
        assert len(out) == (n_frames - 1) * 2048 + 4096

    def test_preserves_pitch(self, pure_sine):
        y, sr = pure_sine
        out = time_stretch(y, 1.5)

        segment = out[4096:4096 + 16384]
        assert dominant_frequency(segment, sr) == pytest.approx(440.0, abs=5.0)


class TestPitchShift:
    """Tests for pitch_shift()."""

    def test_zero_semitones_keeps_length_and_content(self, pure_sine):
        y, sr = pure_sine
        out = pitch_shift(y, 0, sr)

        assert len(out) == len(y)
        interior = slice(4096, len(y) - 8192)
        np.testing.assert_allclose(out[interior], y[interior], atol=1e-3)

    def test_octave_down(self, pure_sine):
        """-12 semitones moves 440Hz to about 220Hz."""
        y, sr = pure_sine
        out = pitch_shift(y, -12, sr)

        assert len(out) == len(y)
        segment = out[4096:4096 + 16384]
        assert dominant_frequency(segment, sr) == pytest.approx(220.0, abs=5.0)
