"""
Effect parameter schema and value validation.

Values arriving from a UI or command line are never trusted: numbers are
clamped to the declared range, and anything missing, unparseable, or not
among an enumerated parameter's options falls back to the declared default.
"""

import logging
import math
from dataclasses import dataclass
from typing import Any, Mapping, Sequence, Union

logger = logging.getLogger(__name__)

ParameterValue = Union[float, str]


@dataclass(frozen=True)
class ParameterSpec:
    """Declaration of a single effect control."""

    key: str
    label: str
    min: float = 0.0
    max: float = 1.0
    step: float = 1.0
    default: ParameterValue = 0.0
    unit: str | None = None
    scale: str = "linear"  # "linear" or "log"
    options: tuple[str, ...] | None = None

    @property
    def is_choice(self) -> bool:
        """True for enumerated (string) parameters."""
        return self.options is not None

    def coerce(self, value: Any) -> ParameterValue:
        """
        Turn a raw value into a valid value for this parameter.

        Args:
            value: Raw value, possibly None or out of range.

        Returns:
            Clamped number, a listed option, or the default.
        """
        if self.is_choice:
            if isinstance(value, str) and value in self.options:
                return value
            return self.default

        if value is None or isinstance(value, str) and not value.strip():
            return self.default
        try:
            number = float(value)
        except (TypeError, ValueError):
            return self.default
        if not math.isfinite(number):
            return self.default

        return min(max(number, self.min), self.max)

    def describe(self) -> str:
        """One-line human readable summary."""
        if self.is_choice:
            return f"{self.key}: one of {', '.join(self.options)} (default {self.default})"
        unit = f" {self.unit}" if self.unit else ""
        scale = ", log" if self.scale == "log" else ""
        return (
            f"{self.key}: {self.min:g}..{self.max:g}{unit} "
            f"(step {self.step:g}, default {self.default:g}{scale})"
        )


def validate_values(
    specs: Sequence[ParameterSpec],
    raw: Mapping[str, Any] | None,
) -> dict[str, ParameterValue]:
    """
    Validate raw values against a parameter schema.

    Returns a mapping containing exactly one valid value per declared key.
    """
    raw = raw or {}
    values: dict[str, ParameterValue] = {}

    for spec in specs:
        given = raw.get(spec.key)
        value = spec.coerce(given)
        if given is not None and value != given:
            logger.debug("Parameter %s=%r coerced to %r", spec.key, given, value)
        values[spec.key] = value

    unknown = set(raw) - {spec.key for spec in specs}
    if unknown:
        logger.debug("Ignoring unknown parameters: %s", ", ".join(sorted(unknown)))

    return values

