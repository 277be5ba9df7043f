"""Exception types raised by the effects engine."""


class SoniphormError(Exception):
    """Base class for engine errors."""


class RenderingFailure(SoniphormError):
    """The rendering facility could not produce a result."""


class UnknownEffectError(SoniphormError, KeyError):
    """No effect or edit is registered under the requested name."""

    def __str__(self) -> str:
        return Exception.__str__(self)
