"""Sync frame detection and row alignment.

Channel A of every APT row starts with seven square pulses. Cross
correlating the demodulated signal against that pattern gives one peak per
row, each row of the image is then cut starting at a peak.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np

from .constants import (
    FINAL_RATE,
    MIN_SYNC_FRAMES,
    PX_PER_ROW,
    SYNC_LEADER_PX,
    SYNC_PULSES,
)
from .errors import InvalidParameterError, SyncNotFoundError
from .frequency import Rate
from .logging import get_logger

if TYPE_CHECKING:
    from .context import Context

logger = get_logger('noaa_apt.sync')


def samples_per_row(work_rate: Rate) -> int:
    """Samples on each image row at ``work_rate``."""
    return PX_PER_ROW * work_rate.hz // FINAL_RATE


def generate_sync_frame(work_rate: Rate) -> np.ndarray:
    """Generate the channel A sync frame.

    Square wave with a pulse width of 2 pixels and a period of 4 pixels,
    followed by 8 pixels of black. Values are -1 and 1 so it can be used
    directly for cross correlation.

    Args:
        work_rate: Rate of the signal to correlate against, a multiple of
            the final rate.

    Returns:
        int8 array.
    """
    if work_rate.hz % FINAL_RATE != 0:
        raise InvalidParameterError(
            f"Work rate {work_rate} is not a multiple of {FINAL_RATE}Hz")

    pixel_width = work_rate.hz // FINAL_RATE
    pulse_width = pixel_width * 2

    period = np.concatenate([
        np.full(pulse_width, -1, dtype=np.int8),
        np.full(pulse_width, 1, dtype=np.int8),
    ])
    return np.concatenate([
        np.tile(period, SYNC_PULSES),
        np.full(SYNC_LEADER_PX * pixel_width, -1, dtype=np.int8),
    ])


def find_sync(context: Context, signal: np.ndarray, work_rate: Rate) -> list[int]:
    """Find sync frame positions.

    The first position is the best match before the minimum distance to
    the next row, it may not be a real sync frame. When a row seems to be
    missing, the current position is repeated so the number of positions
    keeps up with the signal length.

    Args:
        context: Step recorder.
        signal: Demodulated and filtered samples at ``work_rate``.
        work_rate: Rate of ``signal``.

    Returns:
        Ascending list of sample offsets, one per row.
    """
    guard = generate_sync_frame(work_rate)
    row_length = samples_per_row(work_rate)

    # Smaller but close to the number of samples per row
    min_distance = row_length * 8 // 10

    logger.info("Searching for sync frames")

    length = len(signal) - len(guard)
    if length > 0:
        correlation = np.correlate(
            np.asarray(signal, dtype=np.float64),
            guard.astype(np.float64),
            mode='valid',
        )[:length]
    else:
        correlation = np.empty(0)

    # (index, value)
    peaks: list[tuple[int, float]] = [(0, 0.)]

    for i, corr in enumerate(correlation.tolist()):
        last_index, last_value = peaks[-1]
        if i - last_index > min_distance:
            # Previous peak is far enough, start a new one. Add more than one
            # if there seem to be too few for the length read so far
            while i // row_length > len(peaks):
                peaks.append((i, corr))
        elif corr > last_value:
            peaks[-1] = (i, corr)

    context.signal_step('sync_correlation', correlation.astype(np.float32))

    logger.info(f"Found {len(peaks)} sync frames")

    if len(peaks) < MIN_SYNC_FRAMES:
        raise SyncNotFoundError(
            f"Found {len(peaks)} sync frames, at least {MIN_SYNC_FRAMES} "
            f"are needed. Audio file is too short or too noisy")

    return [index for index, _value in peaks]


def align_rows(signal: np.ndarray, offsets: list[int], row_length: int) -> np.ndarray:
    """Cut one row at each sync position.

    The last position is never used, other rows are dropped if they don't
    fit before the end of the signal.

    Args:
        signal: Samples to cut.
        offsets: Sync positions from ``find_sync()``.
        row_length: Samples per row.

    Returns:
        Concatenated rows.
    """
    rows = [
        signal[offset:offset + row_length]
        for offset in offsets[:-1]
        if offset + row_length < len(signal)
    ]
    if not rows:
        return np.empty(0, dtype=np.float32)
    return np.concatenate(rows).astype(np.float32)


def crop_rows(signal: np.ndarray, row_length: int) -> np.ndarray:
    """Crop signal to a multiple of ``row_length``."""
    return signal[:len(signal) // row_length * row_length]
