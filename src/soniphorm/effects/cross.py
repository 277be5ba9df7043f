"""
Cross-buffer operators.

These take a second buffer (a sample from another slot) as impulse
response, modulator, or morph partner. Only its first channel is used.
"""

import logging
from dataclasses import dataclass

import numpy as np

from soniphorm.core.buffer import SampleBuffer
from soniphorm.core.ola import overlap_add
from soniphorm.core.spectral import fft, hann_window
from soniphorm.effects.base import Effect, normalize_peak

logger = logging.getLogger(__name__)

CROSS_TARGET_PEAK = 0.9

VOCODER_FRAME_SIZE = 2048
VOCODER_HOP = VOCODER_FRAME_SIZE // 4

MORPH_FRAME_SIZE = 2048
MORPH_HOP = MORPH_FRAME_SIZE // 2
MORPH_SPECTRAL_MAX_SECONDS = 2.0
MORPH_KINDS = ("ring", "am", "spectral", "phase", "gate")

MAGNITUDE_EPSILON = 1e-10


def _source_channel(source: SampleBuffer) -> np.ndarray:
    mono = source.channels[0].astype(np.float64)
    if len(mono) == 0:
        raise ValueError("Source buffer is empty")
    return mono


@dataclass
class ModulatorFrames:
    """Windowed spectra read from a modulator in step with OLA frames."""

    samples: np.ndarray
    frame_size: int
    hop: int
    wrap: bool = True

    def __post_init__(self):
        self.window = hann_window(self.frame_size)

    def spectrum(self, frame_index: int) -> tuple[np.ndarray, np.ndarray]:
        """
        FFT of the modulator frame aligned with frame_index.

        With wrap, the start offset cycles through the modulator so a short
        modulator keeps driving a long carrier. Reads past the end are zero.
        """
        offset = frame_index * self.hop
        if self.wrap:
            offset %= max(1, len(self.samples) - self.frame_size)

        real = np.zeros(self.frame_size)
        chunk = self.samples[offset:offset + self.frame_size]
        real[:len(chunk)] = chunk
        real *= self.window
        imag = np.zeros(self.frame_size)
        fft(real, imag)
        return real, imag


def envelope_transfer_frame(
    real: np.ndarray,
    imag: np.ndarray,
    frame_index: int,
    modulator: ModulatorFrames,
) -> None:
    """OLA callback: give each carrier bin the modulator's magnitude, keep its phase."""
    mod_real, mod_imag = modulator.spectrum(frame_index)
    mod_mag = np.hypot(mod_real, mod_imag)
    car_mag = np.hypot(real, imag)

    scale = np.ones_like(car_mag)
    audible = car_mag > MAGNITUDE_EPSILON
    scale[audible] = mod_mag[audible] / car_mag[audible]

    real *= scale
    imag *= scale


class Convolve(Effect):
    """Use the source buffer (up to 3 s) as an impulse response."""

    key = "convolve"
    label = "Convolve"
    requires_source = True

    async def render(self, segment, sample_rate, params, context):
        source = _source_channel(context.source)
        ir_length = min(len(source), int(sample_rate * context.config.ir_max_seconds))
        impulse = source[np.newaxis, :ir_length]

        rendered = await context.renderer.convolve(segment, sample_rate, impulse)
        return np.stack([normalize_peak(ch, CROSS_TARGET_PEAK, only_if_above=False) for ch in rendered])


class RingModBuffer(Effect):
    """Multiply the region by the source buffer, looping the source."""

    key = "ringmod-by-buffer"
    label = "Ring Mod (buffer)"
    requires_source = True

    async def render(self, segment, sample_rate, params, context):
        modulator = _source_channel(context.source)
        idx = np.arange(segment.shape[1]) % len(modulator)
        return segment * modulator[idx]


class Vocoder(Effect):
    """
    Spectral envelope transfer: carrier phases, modulator magnitudes.

    The processed signal overwrites the start of the region; any trailing
    samples the frames do not reach keep the carrier audio.
    """

    key = "vocoder"
    label = "Vocoder"
    requires_source = True

    async def render(self, segment, sample_rate, params, context):
        modulator = ModulatorFrames(
            _source_channel(context.source), VOCODER_FRAME_SIZE, VOCODER_HOP
        )
        n = segment.shape[1]

        out = segment.copy()
        for ch, carrier in enumerate(segment):
            processed = overlap_add(
                carrier,
                VOCODER_FRAME_SIZE,
                VOCODER_HOP,
                VOCODER_HOP,
                envelope_transfer_frame,
                modulator,
            )
            processed = normalize_peak(processed, CROSS_TARGET_PEAK, only_if_above=False)
            count = min(len(processed), n)
            out[ch, :count] = processed[:count]
        return out


# --- Morph engine -----------------------------------------------------------

def _padded(samples: np.ndarray, length: int) -> np.ndarray:
    out = np.zeros(length)
    count = min(len(samples), length)
    out[:count] = samples[:count]
    return out


def _morph_spectral_frame(real, imag, frame_index, state):
    b_real, b_imag = state.partner.spectrum(frame_index)
    mag_a = np.hypot(real, imag)
    mag_b = np.hypot(b_real, b_imag)
    phase_a = np.arctan2(imag, real)

    magnitude = mag_a * (1.0 - state.amount) + mag_b * state.amount
    real[:] = magnitude * np.cos(phase_a)
    imag[:] = magnitude * np.sin(phase_a)


def _morph_phase_frame(real, imag, frame_index, state):
    b_real, b_imag = state.partner.spectrum(frame_index)
    mag_a = np.hypot(real, imag)
    phase_a = np.arctan2(imag, real)
    phase_b = np.arctan2(b_imag, b_real)

    phase = phase_a * (1.0 - state.amount) + phase_b * state.amount
    real[:] = mag_a * np.cos(phase)
    imag[:] = mag_a * np.sin(phase)


def _morph_gate_frame(real, imag, frame_index, state):
    b_real, b_imag = state.partner.spectrum(frame_index)
    mag_b = np.hypot(b_real, b_imag)

    # Bins where B is quiet relative to its own peak get ducked by 40 dB
    threshold = float(np.max(mag_b)) * (1.0 - state.amount) * 0.1
    quiet = mag_b < threshold
    real[quiet] *= 0.01
    imag[quiet] *= 0.01


@dataclass
class MorphState:
    partner: ModulatorFrames
    amount: float


_MORPH_FRAMES = {
    "spectral": _morph_spectral_frame,
    "phase": _morph_phase_frame,
    "gate": _morph_gate_frame,
}


def render_morph(
    a: SampleBuffer,
    b: SampleBuffer,
    kind: str,
    amount: float,
    max_seconds: float = 5.0,
) -> SampleBuffer:
    """
    Render an inter-sample morph of a with b.

    Args:
        a: Primary sample; its rate and channel count shape the result.
        b: Partner sample.
        kind: "ring", "am", "spectral", "phase" or "gate".
        amount: Blend amount in [0, 1].
        max_seconds: Cap on the rendered length.

    Returns:
        Mono morph normalized to 0.9 peak, copied to every channel of a.
    """
    if kind not in MORPH_KINDS:
        raise ValueError(f"Unknown morph type: {kind}")
    amount = min(max(float(amount), 0.0), 1.0)

    sr = a.sample_rate
    sa = a.channels[0].astype(np.float64)
    sb = b.channels[0].astype(np.float64)
    length = min(max(len(sa), len(sb)), int(sr * max_seconds))

    if kind == "ring":
        pa, pb = _padded(sa, length), _padded(sb, length)
        result = pa * (1.0 - amount) + (pa * pb) * amount
    elif kind == "am":
        pa, pb = _padded(sa, length), _padded(sb, length)
        result = pa * (1.0 - amount + amount * np.abs(pb))
    else:
        length = min(length, int(sr * MORPH_SPECTRAL_MAX_SECONDS))
        pa, pb = _padded(sa, length), _padded(sb, length)
        state = MorphState(
            partner=ModulatorFrames(pb, MORPH_FRAME_SIZE, MORPH_HOP, wrap=False),
            amount=amount,
        )
        result = overlap_add(
            pa, MORPH_FRAME_SIZE, MORPH_HOP, MORPH_HOP, _MORPH_FRAMES[kind], state
        )

    result = normalize_peak(result, CROSS_TARGET_PEAK, only_if_above=False)
    logger.debug("Rendered %s morph (amount %.2f, %d samples)", kind, amount, len(result))
    return SampleBuffer.from_mono(result, sr, a.n_channels)
