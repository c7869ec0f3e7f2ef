"""High level decode and resample operations.

These functions only work on signals in memory, reading and writing files
is left to ``apt_decoder.AptDecoder``.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from .config import Profile
from .constants import CARRIER_FREQ, FINAL_RATE, MIN_ROWS, PX_PER_ROW
from .context import Context
from .dsp import demodulate, filter_signal, resample, resample_with_filter
from .errors import InsufficientSignalError
from .filters import Lowpass, LowpassDcRemoval, NoFilter
from .frequency import Freq, Rate
from .image import Contrast, ContrastMode, map_signal, rotate as rotate_raster
from .logging import get_logger
from .sync import align_rows, crop_rows, find_sync, samples_per_row
from .telemetry import Telemetry, read_telemetry

logger = get_logger('noaa_apt.pipeline')


@dataclass
class AptImage:
    """Mapped image and the telemetry read from it.

    Attributes:
        raster: 8 bit pixels, row after row, 2080 pixels per row.
        telemetry: ``None`` if it could not be read.
    """
    raster: np.ndarray
    telemetry: Telemetry | None = None

    @property
    def height(self) -> int:
        return len(self.raster) // PX_PER_ROW

    @property
    def width(self) -> int:
        return PX_PER_ROW


def decode(context: Context, profile: Profile, signal: np.ndarray,
           input_rate: Rate, sync: bool = True) -> np.ndarray:
    """Decode an APT recording.

    Resamples to the work rate while removing DC and everything above the
    AM spectrum, demodulates, filters, aligns rows to the sync frames and
    resamples to one sample per pixel.

    Args:
        context: Decode context, see ``Context.decode()``.
        profile: Filter and rate parameters.
        signal: Samples read from the recording.
        input_rate: Rate of ``signal``.
        sync: Whether to align rows to the sync frames. If not, the signal
            is cropped to a whole number of rows.

    Returns:
        Samples at 4160Hz, one per pixel, a whole number of rows.
    """
    final_rate = Rate(FINAL_RATE)
    work_rate = Rate(profile.work_rate)
    row_length = samples_per_row(work_rate)

    context.signal_step('input', signal, input_rate)

    context.status(0.1, f"Resampling to {work_rate.hz}")

    # Only the AM spectrum goes through, APT has nothing below the
    # transition band of the DC removal
    resample_filter = LowpassDcRemoval(
        cutout=Freq.hz(profile.resample_cutout, input_rate),
        atten=profile.resample_atten,
        delta_w=Freq.hz(profile.resample_delta_freq, input_rate),
    )
    signal = resample_with_filter(context, signal, input_rate, work_rate, resample_filter)

    if len(signal) < MIN_ROWS * row_length:
        raise InsufficientSignalError(
            f"Got less than {MIN_ROWS} rows of samples, audio file is too short")

    context.status(0.4, "Demodulating")

    signal = demodulate(context, signal, Freq.hz(CARRIER_FREQ, work_rate))

    context.status(0.42, "Filtering")

    cutout = Freq.pi_rad(FINAL_RATE / work_rate.hz)
    demodulation_filter = Lowpass(
        cutout=cutout,
        atten=profile.demodulation_atten,
        delta_w=cutout / 5.,
    )
    signal = filter_signal(context, signal, demodulation_filter)

    if sync:
        context.status(0.5, "Syncing")
        offsets = find_sync(context, signal, work_rate)
        signal = align_rows(signal, offsets, row_length)
    else:
        context.status(0.5, "Skipping syncing")
        context.signal_step('sync_correlation', np.empty(0, dtype=np.float32), work_rate)
        signal = crop_rows(signal, row_length)

    context.signal_step('sync_result', signal, work_rate)

    context.status(0.9, f"Resampling to {FINAL_RATE}")

    # Already filtered before syncing
    signal = resample_with_filter(context, signal, work_rate, final_rate, NoFilter())

    return signal


def resample_signal(context: Context, profile: Profile, signal: np.ndarray,
                    input_rate: Rate, output_rate: Rate) -> np.ndarray:
    """Resample a recording to another rate.

    Args:
        context: Resample context, see ``Context.resample()``.
        profile: Filter parameters.
        signal: Samples read from the recording.
        input_rate: Rate of ``signal``.
        output_rate: Rate wanted.

    Returns:
        Samples at ``output_rate``.
    """
    context.signal_step('input', signal, input_rate)

    context.status(0.2, f"Resampling to {output_rate.hz}")

    resampled = resample(
        context, signal, input_rate, output_rate,
        profile.wav_resample_atten,
        Freq.pi_rad(profile.wav_resample_delta_freq),
    )

    if len(resampled) == 0:
        raise InsufficientSignalError(
            "Got zero samples after resampling, audio file too short or "
            "output sampling frequency too low")

    return resampled


def process(context: Context, signal: np.ndarray, contrast: Contrast,
            rotate: bool = False) -> AptImage:
    """Read telemetry and map the decoded signal to pixels.

    Telemetry is always read. If it can't be read and the contrast
    adjustment doesn't need it the image is mapped anyway.

    Args:
        context: Decode context, after ``decode()``.
        signal: Output of ``decode()``.
        contrast: Contrast adjustment.
        rotate: Whether to rotate the image 180 degrees, for southbound
            passes.

    Returns:
        Mapped image.
    """
    context.status(0.95, "Reading telemetry and mapping colors")

    telemetry: Telemetry | None
    try:
        telemetry = read_telemetry(context, signal)
    except InsufficientSignalError as e:
        if contrast.mode == ContrastMode.TELEMETRY:
            raise
        logger.warning(f"Can't read telemetry: {e}")
        telemetry = None

    raster = map_signal(signal, contrast, telemetry)
    if rotate:
        context.status(0.97, "Rotating image")
        raster = rotate_raster(raster)

    context.signal_step('mapped', raster.astype(np.float32), Rate(FINAL_RATE))

    context.status(1., "Finished")
    return AptImage(raster=raster, telemetry=telemetry)
