"""Telemetry frame reading.

Each APT channel carries a telemetry band: 16 wedges of 8 rows each. The
first 9 are contrast wedges with known values, wedge 16 identifies the
sensor channel. The frame repeats every 128 rows.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np

from .constants import (
    CHANNEL_NAMES,
    CONTRAST_WEDGE_VALUES,
    CONTRAST_WEDGES,
    PX_PER_ROW,
    TELEMETRY_A_START,
    TELEMETRY_B_START,
    TELEMETRY_BAND_WIDTH,
    WEDGE_HEIGHT,
    WEDGES_PER_FRAME,
)
from .errors import InsufficientSignalError, InvalidParameterError
from .logging import get_logger

if TYPE_CHECKING:
    from .context import Context

logger = get_logger('noaa_apt.telemetry')

# Wedges read after the telemetry start: a full frame plus the contrast
# wedges of the next one
WEDGES_READ = WEDGES_PER_FRAME + CONTRAST_WEDGES

# Wedge giving the sensor channel
CHANNEL_ID_WEDGE = 16


def _telemetry_sample() -> np.ndarray:
    """Expected telemetry band values, one per row."""
    contrast = list(CONTRAST_WEDGE_VALUES)
    variable = [0.] * (WEDGES_PER_FRAME - CONTRAST_WEDGES)
    return np.repeat(np.array(contrast + variable + contrast), WEDGE_HEIGHT)


TELEMETRY_SAMPLE = _telemetry_sample()


class Channel(enum.Enum):
    """APT image channel."""
    A = 'A'
    B = 'B'


@dataclass(frozen=True)
class Telemetry:
    """Wedge values read from both channels.

    Wedge arrays are stored as read-only copies.

    Attributes:
        values_a: Wedges 1 to 16 of channel A.
        values_b: Wedges 1 to 16 of channel B.
        row: Row where the telemetry frame starts.
    """
    values_a: np.ndarray
    values_b: np.ndarray
    row: int = 0

    def __post_init__(self) -> None:
        for name in ('values_a', 'values_b'):
            values = np.array(getattr(self, name), dtype=np.float64)
            values.setflags(write=False)
            object.__setattr__(self, name, values)

    @classmethod
    def from_bands(cls, means_a: np.ndarray, means_b: np.ndarray, row: int) -> Telemetry:
        """Build from the horizontal averages of both telemetry bands.

        Contrast wedges 1 to 9 are read twice, on the frame starting at
        ``row`` and on the next one, and both readings are averaged.

        Args:
            means_a: Mean of the channel A band on each row.
            means_b: Mean of the channel B band on each row.
            row: Row where wedge 1 starts.
        """
        needed = row + WEDGES_READ * WEDGE_HEIGHT
        if len(means_a) < needed or len(means_b) < needed:
            raise InsufficientSignalError(
                f"Need {needed} rows to read telemetry starting at row {row}")

        def read(means: np.ndarray) -> np.ndarray:
            chunks = np.asarray(means[row:needed], dtype=np.float64)
            wedges = chunks.reshape(WEDGES_READ, WEDGE_HEIGHT).mean(axis=1)
            values = wedges[:WEDGES_PER_FRAME].copy()
            values[:CONTRAST_WEDGES] = (
                wedges[:CONTRAST_WEDGES] + wedges[WEDGES_PER_FRAME:]) / 2.
            return values

        telemetry = cls(read(means_a), read(means_b), row)

        logger.debug(
            f"Telemetry wedges_a: {telemetry.values_a.tolist()}, "
            f"wedges_b: {telemetry.values_b.tolist()}")

        return telemetry

    def get_wedge_value(self, wedge: int, channel: Channel | None = None) -> float:
        """Value of a wedge.

        Args:
            wedge: Wedge number, from 1 to 16.
            channel: Channel to read, ``None`` for the mean of both.
        """
        if not 1 <= wedge <= WEDGES_PER_FRAME:
            raise InvalidParameterError(f"Invalid wedge number: {wedge}")

        if channel == Channel.A:
            return float(self.values_a[wedge - 1])
        if channel == Channel.B:
            return float(self.values_b[wedge - 1])
        return float(self.values_a[wedge - 1] + self.values_b[wedge - 1]) / 2.

    def get_channel_name(self, channel: Channel) -> str:
        """Sensor channel name, e.g. "1", "3a" or "Unknown".

        Wedge 16 is compared against the contrast wedges, the closest one
        gives the name.
        """
        value = self.get_wedge_value(CHANNEL_ID_WEDGE, channel)
        contrast = [self.get_wedge_value(i) for i in range(1, CONTRAST_WEDGES + 1)]
        # First minimum on ties
        closest = min(range(CONTRAST_WEDGES), key=lambda i: abs(contrast[i] - value))
        return CHANNEL_NAMES[closest]

    def contrast_range(self) -> tuple[float, float]:
        """Black and white levels, wedges 9 and 8."""
        return self.get_wedge_value(9), self.get_wedge_value(8)

    def to_dict(self) -> dict:
        return {
            'row': self.row,
            'channel_a': self.get_channel_name(Channel.A),
            'channel_b': self.get_channel_name(Channel.B),
            'wedges_a': [round(float(v), 3) for v in self.values_a],
            'wedges_b': [round(float(v), 3) for v in self.values_b],
        }


def band_statistics(signal: np.ndarray) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Per row mean of both telemetry bands and their pooled variance.

    Args:
        signal: Samples at the final rate, one per pixel. Incomplete rows
            at the end are ignored.

    Returns:
        Tuple of (means_a, means_b, variance), one value per row.
    """
    rows = len(signal) // PX_PER_ROW
    image = np.asarray(signal[:rows * PX_PER_ROW], dtype=np.float64).reshape(rows, PX_PER_ROW)

    band_a = image[:, TELEMETRY_A_START:TELEMETRY_A_START + TELEMETRY_BAND_WIDTH]
    band_b = image[:, TELEMETRY_B_START:TELEMETRY_B_START + TELEMETRY_BAND_WIDTH]

    means_a = band_a.mean(axis=1)
    means_b = band_b.mean(axis=1)

    variance = (
        ((band_a - means_a[:, None]) ** 2).sum(axis=1)
        + ((band_b - means_b[:, None]) ** 2).sum(axis=1)
    ) / (2 * TELEMETRY_BAND_WIDTH)

    return means_a, means_b, variance


def read_telemetry(context: Context, signal: np.ndarray) -> Telemetry:
    """Find the telemetry frame and read it.

    Correlates the telemetry bands against the expected wedge values and
    divides by the noise on the same rows, the row with best quality is
    used. Noisy rows can give high correlation so raw correlation is not
    enough.

    Args:
        context: Step recorder.
        signal: Samples at the final rate, one per pixel.

    Returns:
        Telemetry read.
    """
    means_a, means_b, variance = band_statistics(signal)

    sample_length = len(TELEMETRY_SAMPLE)
    positions = max(0, len(means_a) - sample_length)

    if positions > 0:
        correlation = (
            np.correlate(means_a, TELEMETRY_SAMPLE, mode='valid')
            + np.correlate(means_b, TELEMETRY_SAMPLE, mode='valid')
        )[:positions]
        deviation = np.convolve(
            np.sqrt(variance), np.ones(sample_length), mode='valid')[:positions]
        with np.errstate(divide='ignore', invalid='ignore'):
            quality = correlation / deviation
    else:
        correlation = np.empty(0)
        quality = np.empty(0)

    context.signal_step('telemetry_a', means_a.astype(np.float32))
    context.signal_step('telemetry_b', means_b.astype(np.float32))
    context.signal_step('telemetry_correlation', correlation.astype(np.float32))
    context.signal_step('telemetry_variance', variance.astype(np.float32))
    context.signal_step('telemetry_quality', quality.astype(np.float32))

    if len(means_a) < sample_length:
        raise InsufficientSignalError(
            f"Got {len(means_a)} rows, at least {sample_length} are needed "
            f"to read telemetry")

    # First row with the biggest positive quality, row 0 if there is none
    row = 0
    if positions > 0:
        scores = np.where(np.isnan(quality), -np.inf, quality)
        best = int(np.argmax(scores))
        if scores[best] > 0:
            row = best

    telemetry = Telemetry.from_bands(means_a, means_b, row)

    logger.info(
        f"Channel A: {telemetry.get_channel_name(Channel.A)}, "
        f"Channel B: {telemetry.get_channel_name(Channel.B)}")

    return telemetry
