"""Effect catalog."""

from soniphorm.effects.base import Effect, EffectContext
from soniphorm.effects.convolution import Filter, Reverb
from soniphorm.effects.cross import Convolve, RingModBuffer, Vocoder, render_morph
from soniphorm.effects.spectral import (
    GranularFreeze,
    Paulstretch,
    PitchShift,
    SpectralFreeze,
    TimeStretch,
)
from soniphorm.effects.time_domain import (
    Bitcrush,
    Bounce,
    Delay,
    Normalise,
    Overdrive,
    RingMod,
    Stutter,
    Wavefolding,
)
from soniphorm.errors import UnknownEffectError

EFFECTS: dict[str, Effect] = {
    effect.key: effect
    for effect in (
        Reverb(),
        Delay(),
        Overdrive(),
        Bitcrush(),
        Filter(),
        RingMod(),
        Wavefolding(),
        Stutter(),
        TimeStretch(),
        PitchShift(),
        Paulstretch(),
        GranularFreeze(),
        SpectralFreeze(),
        Bounce(),
        Normalise(),
        Convolve(),
        RingModBuffer(),
        Vocoder(),
    )
}


def get_effect(key: str) -> Effect:
    """Look up a catalog entry by key."""
    try:
        return EFFECTS[key]
    except KeyError:
        raise UnknownEffectError(f"Unknown effect: {key}") from None


__all__ = ["EFFECTS", "Effect", "EffectContext", "get_effect", "render_morph"]
