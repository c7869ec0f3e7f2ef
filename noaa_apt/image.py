"""Pixel mapping and image output.

Turns the decoded signal, one sample per pixel, into an 8 bit grayscale
raster and a PIL image.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from pathlib import Path

import numpy as np
from PIL import Image

from .constants import DEFAULT_PERCENT, PX_PER_CHANNEL, PX_PER_ROW
from .errors import InvalidParameterError
from .logging import get_logger
from .telemetry import Telemetry

logger = get_logger('noaa_apt.image')


class ContrastMode(enum.Enum):
    """Contrast adjustment methods."""
    PERCENT = 'percent'
    TELEMETRY = 'telemetry'
    MINMAX = 'minmax'


@dataclass(frozen=True)
class Contrast:
    """Contrast adjustment used when mapping samples to pixels.

    Attributes:
        mode: Adjustment method.
        percent: Fraction of samples kept inside the range when using
            ``ContrastMode.PERCENT``, the rest are saturated.
    """
    mode: ContrastMode
    percent: float = DEFAULT_PERCENT

    @classmethod
    def from_name(cls, name: str | None) -> Contrast:
        """Parse names used by hosts: "98_percent", "telemetry" or "disable"."""
        if name in (None, '', '98_percent', 'percent'):
            return PERCENT
        if name == 'telemetry':
            return TELEMETRY
        if name in ('disable', 'minmax'):
            return MINMAX
        raise InvalidParameterError(f"Unknown contrast adjustment \"{name}\"")


PERCENT = Contrast(ContrastMode.PERCENT)
TELEMETRY = Contrast(ContrastMode.TELEMETRY)
MINMAX = Contrast(ContrastMode.MINMAX)


def contrast_limits(signal: np.ndarray, contrast: Contrast,
                    telemetry: Telemetry | None = None) -> tuple[float, float]:
    """Sample values mapped to black and white.

    Args:
        signal: Decoded samples.
        contrast: Adjustment method.
        telemetry: Needed for ``ContrastMode.TELEMETRY``.

    Returns:
        Tuple of (low, high).
    """
    if len(signal) == 0:
        raise InvalidParameterError("Can't map a zero length signal")

    if contrast.mode == ContrastMode.TELEMETRY:
        if telemetry is None:
            raise InvalidParameterError("Telemetry contrast needs telemetry")
        return telemetry.contrast_range()

    if contrast.mode == ContrastMode.PERCENT:
        if not 0. < contrast.percent <= 1.:
            raise InvalidParameterError(f"Invalid percent: {contrast.percent}")
        # Saturate the same fraction of samples at both ends
        tail = (1. - contrast.percent) / 2.
        low, high = np.quantile(signal, [tail, 1. - tail])
        return float(low), float(high)

    return float(np.min(signal)), float(np.max(signal))


def map_signal(signal: np.ndarray, contrast: Contrast,
               telemetry: Telemetry | None = None) -> np.ndarray:
    """Map samples to 8 bit pixel values.

    Values outside the contrast limits are saturated.
    """
    low, high = contrast_limits(signal, contrast, telemetry)
    span = high - low
    if span == 0:
        logger.warning("Signal has no contrast, every pixel is black")
        return np.zeros(len(signal), dtype=np.uint8)

    logger.debug(f"Mapping samples from range [{low}, {high}]")

    scaled = (np.asarray(signal, dtype=np.float64) - low) / span * 255.
    return np.clip(scaled, 0., 255.).astype(np.uint8)


def reinterleave(signal: np.ndarray, chunk_size: int) -> np.ndarray:
    """Swap each pair of consecutive chunks.

    ``[a1, a2, b1, b2, a3, a4, b3, b4]`` with a chunk size of 2 gives
    ``[b1, b2, a1, a2, b3, b4, a3, a4]``.
    """
    if len(signal) % (2 * chunk_size) != 0:
        raise InvalidParameterError(
            f"Length {len(signal)} is not a multiple of two chunks of {chunk_size}")
    pairs = np.asarray(signal).reshape(-1, 2, chunk_size)
    return pairs[:, ::-1, :].reshape(-1)


def rotate(raster: np.ndarray) -> np.ndarray:
    """Rotate the image 180 degrees without swapping the channels.

    Reversing the pixels would put channel B on the left, so each pair of
    channel chunks is swapped back. Rows of both channels stay at the same
    height.
    """
    return reinterleave(np.asarray(raster)[::-1], PX_PER_CHANNEL)


def to_image(raster: np.ndarray) -> Image.Image:
    """Grayscale PIL image, one row of the raster per image row."""
    if len(raster) % PX_PER_ROW != 0:
        raise InvalidParameterError(
            f"Raster length {len(raster)} is not a multiple of {PX_PER_ROW}")
    height = len(raster) // PX_PER_ROW
    pixels = np.asarray(raster, dtype=np.uint8).reshape(height, PX_PER_ROW)
    return Image.fromarray(pixels)


def save_png(raster: np.ndarray, path: str | Path) -> Path:
    """Save the raster as a PNG file."""
    path = Path(path)
    img = to_image(raster)
    logger.info(f"Writing PNG to '{path}'")
    img.save(path, 'PNG')
    return path
