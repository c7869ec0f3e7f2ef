"""DSP primitives for APT decoding.

Rational resampling through a polyphase FIR, causal filtering and AM
envelope demodulation. Every function that produces an intermediate
result hands it to the ``Context`` given.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

import numpy as np

from .errors import InsufficientSignalError, InvalidParameterError
from .filters import Filter, Lowpass
from .frequency import Freq, Rate
from .logging import get_logger

if TYPE_CHECKING:
    from .context import Context

logger = get_logger('noaa_apt.dsp')

# Output samples computed per matrix product when resampling
RESAMPLE_CHUNK = 65536


def gcd(a: int, b: int) -> int:
    """Greatest common divisor of two positive integers."""
    return math.gcd(a, b)


def get_max(signal: np.ndarray) -> float:
    """Biggest sample in signal."""
    if len(signal) == 0:
        raise InvalidParameterError("Can't get maximum of a zero length signal")
    return float(np.max(signal))


def get_min(signal: np.ndarray) -> float:
    """Smallest sample in signal."""
    if len(signal) == 0:
        raise InvalidParameterError("Can't get minimum of a zero length signal")
    return float(np.min(signal))


def _check_group_delay(length: int, coeff: np.ndarray) -> None:
    delay = (len(coeff) - 1) // 2
    if length <= delay:
        raise InsufficientSignalError(
            f"Signal too short to filter: {length} samples, "
            f"filter delay is {delay} samples")


def _causal_filter(signal: np.ndarray, coeff: np.ndarray) -> np.ndarray:
    """Convolve and keep the first ``len(signal)`` samples."""
    return np.convolve(signal, coeff)[:len(signal)].astype(np.float32)


def _decimate(signal: np.ndarray, m: int) -> np.ndarray:
    """Keep one of every ``m`` samples, without filtering."""
    logger.debug(f"Resampling by decimation, M: {m}")
    return signal[:len(signal) // m * m:m].copy()


def _polyphase(signal: np.ndarray, coeff: np.ndarray, l: int,
               positions: np.ndarray) -> np.ndarray:
    """Evaluate the expanded and filtered signal at some positions.

    The expanded signal has ``l - 1`` zeros inserted between samples and
    the filter is centered, so a position ``t`` on the expanded axis only
    multiplies the taps that land on input samples. Positions are grouped
    by the phase of the taps used, each group is a matrix product.

    Args:
        signal: Input samples.
        coeff: Filter designed for the expanded rate, odd length.
        l: Expansion factor.
        positions: Indexes on the expanded axis to evaluate.

    Returns:
        Filtered samples at ``positions``.
    """
    offset = (len(coeff) - 1) // 2
    output = np.empty(len(positions), dtype=np.float32)
    if len(positions) == 0:
        return output

    # Index of the first tap used and of the input sample it multiplies
    phase = (offset - positions) % l
    start = (positions - offset + phase) // l

    taps_per_phase = -(-len(coeff) // l)
    padded = np.concatenate([
        np.asarray(signal, dtype=np.float64),
        np.zeros(taps_per_phase + 1),
    ])

    order = np.argsort(phase, kind='stable')
    counts = np.bincount(phase, minlength=l)
    groups = np.split(order, np.cumsum(counts)[:-1])

    for p, selected in enumerate(groups):
        if len(selected) == 0:
            continue
        taps = coeff[p::l].astype(np.float64)
        window = np.arange(len(taps))
        for i in range(0, len(selected), RESAMPLE_CHUNK):
            chunk = selected[i:i + RESAMPLE_CHUNK]
            output[chunk] = padded[start[chunk, None] + window] @ taps

    # Zero insertion divides the spectrum amplitude by l
    return output * l


def resample_with_filter(context: Context, signal: np.ndarray,
                         input_rate: Rate, output_rate: Rate,
                         filt: Filter) -> np.ndarray:
    """Filter and then resample.

    Does both things at the same time, skipping the samples that would be
    dropped on decimation. The filter must prevent aliasing and have its
    frequencies referenced to ``input_rate``.

    Args:
        context: Step recorder.
        signal: Samples at ``input_rate``.
        input_rate: Rate of ``signal``.
        output_rate: Rate wanted.
        filt: Filter to apply.

    Returns:
        Samples at ``output_rate``.
    """
    signal = np.asarray(signal, dtype=np.float32)

    divisor = gcd(input_rate.hz, output_rate.hz)
    l = output_rate.hz // divisor  # interpolation factor
    m = input_rate.hz // divisor  # decimation factor

    if l > 1:
        expanded_rate = input_rate * l
        coeff = filt.resample(input_rate, expanded_rate).design()
        context.filter_step('resample_filter', coeff)

        offset = (len(coeff) - 1) // 2
        if len(signal) * l <= offset:
            raise InsufficientSignalError(
                f"Signal too short to resample: {len(signal)} samples, "
                f"filter delay is {offset} samples at {expanded_rate}")

        logger.debug(f"Resampling by L/M: {l}/{m}, {len(coeff)} taps")

        if context.export_resample_filtered:
            positions = np.arange(offset, len(signal) * l, dtype=np.int64)
            expanded_filtered = _polyphase(signal, coeff, l, positions)
            result = expanded_filtered[::m].copy()
        else:
            positions = np.arange(offset, len(signal) * l, m, dtype=np.int64)
            expanded_filtered = np.empty(0, dtype=np.float32)
            result = _polyphase(signal, coeff, l, positions)

        context.signal_step('resample_filtered', expanded_filtered, expanded_rate)
        context.signal_step('resample_decimated', result, output_rate)

    else:
        coeff = filt.design()
        context.filter_step('resample_filter', coeff)
        _check_group_delay(len(signal), coeff)

        filtered = _causal_filter(signal, coeff)
        context.signal_step('resample_filtered', filtered, input_rate)

        result = _decimate(filtered, m)
        context.signal_step('resample_decimated', result, output_rate)

    logger.debug("Resampling finished")
    return result


def resample(context: Context, signal: np.ndarray, input_rate: Rate,
             output_rate: Rate, atten: float, delta_w: Freq) -> np.ndarray:
    """Resample a signal with a lowpass filter.

    Everything that doesn't fit on the smaller of both rates is filtered.

    Args:
        context: Step recorder.
        signal: Samples at ``input_rate``.
        input_rate: Rate of ``signal``.
        output_rate: Rate wanted.
        atten: Attenuation of the filter in positive dB.
        delta_w: Transition band width of the filter, referenced to
            ``input_rate``.
    """
    if output_rate > input_rate:
        # Everything outside the original spectrum, same as Freq.pi_rad(1)
        cutout = Freq.hz(input_rate.hz / 2., input_rate)
    else:
        cutout = Freq.hz(output_rate.hz / 2., input_rate)

    logger.info(f"Resampling from {input_rate} to {output_rate}")

    return resample_with_filter(
        context, signal, input_rate, output_rate,
        Lowpass(cutout=cutout, atten=atten, delta_w=delta_w))


def filter_signal(context: Context, signal: np.ndarray, filt: Filter) -> np.ndarray:
    """Causal FIR filtering, output has the same length as the input."""
    logger.debug("Filtering signal")

    coeff = filt.design()
    context.filter_step('filter_filter', coeff)
    _check_group_delay(len(signal), coeff)

    output = _causal_filter(np.asarray(signal, dtype=np.float32), coeff)

    logger.debug("Filtering finished")
    context.signal_step('filter_result', output)
    return output


def demodulate(context: Context, signal: np.ndarray, carrier: Freq) -> np.ndarray:
    """Demodulate an AM signal from pairs of consecutive samples.

    ::

        y[i] = sqrt(x[i-1]^2 + x[i]^2 - 2 x[i-1] x[i] cos(phi)) / sin(phi)

    Where ``phi`` is the carrier in radians per sample. The first output
    sample is zero.

    Args:
        context: Step recorder.
        signal: Modulated samples.
        carrier: Carrier frequency at the signal rate.

    Returns:
        Envelope, non-negative and with the same length as ``signal``.
    """
    phi = carrier.get_rad()
    sin_phi = math.sin(phi)
    if abs(sin_phi) < 1e-9:
        raise InvalidParameterError(
            f"Can't demodulate with carrier at {carrier}, "
            f"it must be between DC and Nyquist")

    logger.debug("Demodulating signal")

    x = np.asarray(signal, dtype=np.float64)
    output = np.zeros(len(x), dtype=np.float32)
    if len(x) > 1:
        prev = x[:-1]
        curr = x[1:]
        squared = prev ** 2 + curr ** 2 - 2. * prev * curr * math.cos(phi)
        # Rounding can leave tiny negative values
        output[1:] = np.sqrt(np.maximum(squared, 0.)) / abs(sin_phi)

    logger.debug("Demodulation finished")
    context.signal_step('demodulation_result', output)
    return output
