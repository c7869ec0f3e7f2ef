"""FIR filter definitions.

The set of filter shapes is closed: ``NoFilter``, ``Lowpass`` and
``LowpassDcRemoval``. Each one can design its coefficients and produce a
copy of itself referenced to another sample rate.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from typing import Union

import numpy as np

from .errors import InvalidParameterError, ProtocolViolationError
from .frequency import Freq, Rate
from .logging import get_logger

logger = get_logger('noaa_apt.filters')

# Order of the truncated power series used by bessel_i0()
BESSEL_ORDER = 8

# 1 / (k! * 2^k)^2 for k = 0..BESSEL_ORDER
_BESSEL_TABLE = np.array([
    1. / (math.factorial(k) * 2 ** k) ** 2 for k in range(BESSEL_ORDER + 1)
])


def bessel_i0(x: float | np.ndarray) -> float | np.ndarray:
    """Modified Bessel function of the first kind, order zero.

    Truncated power series ``sum((x/2)^(2k) / (k!)^2)`` for k = 0..8,
    evaluated with Horner's method. Relative error stays under 0.1% for
    ``|x| <= 7``, which covers every Kaiser beta used here.

    Args:
        x: Scalar or array.

    Returns:
        I0(x), same shape as ``x``.
    """
    x2 = np.square(x, dtype=np.float64)
    result = np.zeros_like(x2)
    for k in range(BESSEL_ORDER, 0, -1):
        result = (result + _BESSEL_TABLE[k]) * x2
    result = result + 1.
    if np.ndim(result) == 0:
        return float(result)
    return result


def product(v1: np.ndarray, v2: np.ndarray) -> np.ndarray:
    """Product of two vectors, element by element."""
    v1 = np.asarray(v1)
    v2 = np.asarray(v2)
    if v1.shape != v2.shape:
        raise InvalidParameterError(
            f"Both vectors must have the same length, got {len(v1)} and {len(v2)}")
    return v1 * v2


def kaiser_beta(atten: float) -> float:
    """Kaiser window shape parameter for an attenuation in positive dB."""
    if atten > 50.:
        return 0.1102 * (atten - 8.7)
    if atten < 21.:
        return 0.
    return 0.5842 * (atten - 21.) ** 0.4 + 0.07886 * (atten - 21.)


def kaiser(atten: float, delta_w: Freq) -> np.ndarray:
    """Design a Kaiser window from parameters.

    The length depends on the parameters given and is always odd.

    Args:
        atten: Attenuation in positive dB.
        delta_w: Width of the transition band.

    Returns:
        Window samples, centered on the middle sample.
    """
    if delta_w.get_rad() <= 0:
        raise InvalidParameterError(f"Transition band must be positive, got {delta_w}")

    logger.debug(
        f"Designing Kaiser window, attenuation: {atten}dB, "
        f"delta_w: pi*{delta_w.get_pi_rad()}rad/s")

    beta = kaiser_beta(atten)

    length = max(1, math.ceil((atten - 8.) / (2.285 * delta_w.get_rad())) + 1)
    if length % 2 == 0:
        length += 1

    if length == 1:
        return np.ones(1, dtype=np.float32)

    n = np.arange(-(length - 1) // 2, (length - 1) // 2 + 1, dtype=np.float64)
    ratio = 2. * n / (length - 1)
    window = bessel_i0(beta * np.sqrt(np.clip(1. - ratio ** 2, 0., None))) / bessel_i0(beta)

    logger.debug(f"Kaiser window design finished, beta: {beta}, length: {length}")
    return window.astype(np.float32)


def _sinc_taps(cutout: Freq, length: int) -> np.ndarray:
    """Ideal lowpass impulse response centered on the middle tap.

    The center tap equals the cutout so the DC gain is one.
    """
    half = (length - 1) // 2
    n = np.arange(-half, half + 1, dtype=np.float64)
    taps = np.empty(length, dtype=np.float64)
    nonzero = n != 0
    taps[nonzero] = np.sin(n[nonzero] * np.pi * cutout.get_pi_rad()) / (n[nonzero] * np.pi)
    taps[~nonzero] = cutout.get_pi_rad()
    return taps


def _checked_window(atten: float, delta_w: Freq) -> np.ndarray:
    window = kaiser(atten, delta_w)
    if len(window) % 2 == 0:
        raise ProtocolViolationError("Kaiser window length should be odd")
    return window


@dataclass(frozen=True)
class NoFilter:
    """No filter, the impulse response is an impulse."""

    def design(self) -> np.ndarray:
        return np.ones(1, dtype=np.float32)

    def resample(self, input_rate: Rate, output_rate: Rate) -> NoFilter:
        return self


@dataclass(frozen=True)
class Lowpass:
    """Lowpass FIR filter, windowed by a Kaiser window.

    Attenuation in positive decibels. The transition band goes from
    ``cutout - delta_w / 2`` to ``cutout + delta_w / 2``.
    """
    cutout: Freq
    atten: float
    delta_w: Freq

    def design(self) -> np.ndarray:
        logger.debug(
            f"Designing Lowpass filter, cutout: pi*{self.cutout.get_pi_rad()}rad/s, "
            f"attenuation: {self.atten}dB, delta_w: pi*{self.delta_w.get_pi_rad()}rad/s")

        window = _checked_window(self.atten, self.delta_w)
        taps = _sinc_taps(self.cutout, len(window))

        logger.debug("Lowpass filter design finished")
        return product(taps, window).astype(np.float32)

    def resample(self, input_rate: Rate, output_rate: Rate) -> Lowpass:
        ratio = output_rate.hz / input_rate.hz
        return replace(self, cutout=self.cutout / ratio, delta_w=self.delta_w / ratio)


@dataclass(frozen=True)
class LowpassDcRemoval:
    """Lowpass and DC removal FIR filter, windowed by a Kaiser window.

    Attenuation in positive decibels. It's actually a bandpass filter with
    two transition bands: the lowpass one, from ``cutout - delta_w / 2`` to
    ``cutout + delta_w / 2``, and another one from ``0`` to ``delta_w``.
    """
    cutout: Freq
    atten: float
    delta_w: Freq

    def design(self) -> np.ndarray:
        logger.debug(
            f"Designing Lowpass and DC removal filter, "
            f"cutout: pi*{self.cutout.get_pi_rad()}rad/s, attenuation: {self.atten}dB, "
            f"delta_w: pi*{self.delta_w.get_pi_rad()}rad/s")

        window = _checked_window(self.atten, self.delta_w)
        taps = (_sinc_taps(self.cutout, len(window))
                - _sinc_taps(self.delta_w / 2., len(window)))

        logger.debug("Lowpass and DC removal filter design finished")
        return product(taps, window).astype(np.float32)

    def resample(self, input_rate: Rate, output_rate: Rate) -> LowpassDcRemoval:
        ratio = output_rate.hz / input_rate.hz
        return replace(self, cutout=self.cutout / ratio, delta_w=self.delta_w / ratio)


Filter = Union[NoFilter, Lowpass, LowpassDcRemoval]
