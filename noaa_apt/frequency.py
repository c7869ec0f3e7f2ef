"""Discrete-time frequencies and sample rates.

*Frequency* is not the same as *rate* here:

- ``Freq`` is a discrete-time frequency, stored as a fraction of pi radians
  per sample. Converting it to Hertz needs a sample rate.
- ``Rate`` is a sample rate in Hertz.

They are different types so they are hard to confuse, and there are no
operators between them because the result depends on the unit wanted.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from numbers import Real

from .errors import InvalidParameterError


@dataclass(frozen=True, order=True)
class Rate:
    """Integer sample rate in Hertz, always positive."""
    hz: int

    def __post_init__(self) -> None:
        if isinstance(self.hz, bool) or not isinstance(self.hz, int):
            raise InvalidParameterError(f"Rate must be an integer, got {self.hz!r}")
        if self.hz <= 0:
            raise InvalidParameterError(f"Rate must be positive, got {self.hz}")

    def get_hz(self) -> int:
        return self.hz

    def checked_mul(self, other: int) -> Rate | None:
        """Multiply by an integer, ``None`` if the result is not a valid rate."""
        try:
            return self * other
        except InvalidParameterError:
            return None

    @staticmethod
    def _value(other: Rate | int) -> int:
        if isinstance(other, Rate):
            return other.hz
        if isinstance(other, int) and not isinstance(other, bool):
            return other
        return NotImplemented

    def __add__(self, other: Rate | int) -> Rate:
        value = self._value(other)
        if value is NotImplemented:
            return NotImplemented
        return Rate(self.hz + value)

    def __sub__(self, other: Rate | int) -> Rate:
        value = self._value(other)
        if value is NotImplemented:
            return NotImplemented
        if value >= self.hz:
            raise InvalidParameterError(
                f"Rate subtraction underflow: {self.hz} - {value}")
        return Rate(self.hz - value)

    def __mul__(self, other: Rate | int) -> Rate:
        value = self._value(other)
        if value is NotImplemented:
            return NotImplemented
        return Rate(self.hz * value)

    __rmul__ = __mul__

    def __floordiv__(self, other: Rate | int) -> Rate:
        value = self._value(other)
        if value is NotImplemented:
            return NotImplemented
        return Rate(self.hz // value)

    def __str__(self) -> str:
        return f"{self.hz}Hz"


@dataclass(frozen=True, order=True)
class Freq:
    """Discrete-time frequency.

    Stored as fractions of pi radians per sample, so 1 is the Nyquist
    frequency and 2 wraps around to 0. When resampling, a frequency measured
    in Hertz stays the same but its value in radians per sample changes.

    Build it with ``Freq.pi_rad()``, ``Freq.rad()`` or ``Freq.hz()``.
    Arithmetic is done directly on the pi-fraction value.
    """
    pi_fraction: float

    @classmethod
    def pi_rad(cls, f: float) -> Freq:
        """Create from fractions of pi radians per sample."""
        return cls(float(f))

    @classmethod
    def rad(cls, f: float) -> Freq:
        """Create from radians per sample."""
        return cls(f / math.pi)

    @classmethod
    def hz(cls, f: float, rate: Rate) -> Freq:
        """Create from Hertz and the sample rate used."""
        return cls(2. * f / rate.hz)

    def get_pi_rad(self) -> float:
        return self.pi_fraction

    def get_rad(self) -> float:
        return self.pi_fraction * math.pi

    def get_hz(self, rate: Rate) -> float:
        return self.pi_fraction * rate.hz / 2.

    @staticmethod
    def _value(other: Freq | Real) -> float:
        if isinstance(other, Freq):
            return other.pi_fraction
        if isinstance(other, Real):
            return float(other)
        return NotImplemented

    def __add__(self, other: Freq | Real) -> Freq:
        value = self._value(other)
        if value is NotImplemented:
            return NotImplemented
        return Freq(self.pi_fraction + value)

    __radd__ = __add__

    def __sub__(self, other: Freq | Real) -> Freq:
        value = self._value(other)
        if value is NotImplemented:
            return NotImplemented
        return Freq(self.pi_fraction - value)

    def __mul__(self, other: Freq | Real) -> Freq:
        value = self._value(other)
        if value is NotImplemented:
            return NotImplemented
        return Freq(self.pi_fraction * value)

    __rmul__ = __mul__

    def __truediv__(self, other: Freq | Real) -> Freq:
        value = self._value(other)
        if value is NotImplemented:
            return NotImplemented
        return Freq(self.pi_fraction / value)

    def __neg__(self) -> Freq:
        return Freq(-self.pi_fraction)

    def __str__(self) -> str:
        return f"pi*{self.pi_fraction}rad/s"
