"""WAV file loading and saving.

Uses the standard ``wave`` module: 8, 16 and 32 bit integer PCM. Samples
are returned as float32 in the range -1.0 to 1.0.
"""

from __future__ import annotations

import os
import wave
from pathlib import Path

import numpy as np

from .errors import InvalidParameterError, WavFormatError
from .frequency import Rate
from .logging import get_logger

logger = get_logger('noaa_apt.wav')


def load_wav(path: str | Path) -> tuple[np.ndarray, Rate]:
    """Load a WAV file.

    If the file has more than one channel only the first one is kept.

    Args:
        path: WAV file path.

    Returns:
        Tuple of (samples as float32, sample rate).
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Audio file not found: {path}")

    logger.debug(f"Loading WAV: {path}")

    try:
        with wave.open(str(path), 'rb') as wf:
            n_channels = wf.getnchannels()
            sample_width = wf.getsampwidth()
            sample_rate = wf.getframerate()
            n_frames = wf.getnframes()
            raw_data = wf.readframes(n_frames)
    except (wave.Error, EOFError) as e:
        raise WavFormatError(f"Error reading WAV file '{path}': {e}") from e

    logger.debug(
        f"WAV specifications: {n_channels}ch, {sample_width * 8}bit, "
        f"{sample_rate}Hz, {n_frames} frames")

    if sample_width == 2:
        samples = np.frombuffer(raw_data, dtype='<i2').astype(np.float32) / 32768.0
    elif sample_width == 1:
        samples = np.frombuffer(raw_data, dtype=np.uint8).astype(np.float32) / 128.0 - 1.0
    elif sample_width == 4:
        samples = np.frombuffer(raw_data, dtype='<i4').astype(np.float32) / 2147483648.0
    else:
        raise WavFormatError(f"Unsupported sample width: {sample_width}")

    if n_channels > 1:
        logger.warning(
            f"WAV file has {n_channels} channels (probably stereo), "
            f"processing only the first one")
        samples = samples[::n_channels]

    try:
        rate = Rate(sample_rate)
    except InvalidParameterError as e:
        raise WavFormatError(f"Invalid sample rate in '{path}': {sample_rate}") from e

    return samples.astype(np.float32), rate


def write_wav(path: str | Path, signal: np.ndarray, rate: Rate,
              bits_per_sample: int = 16) -> None:
    """Write a mono WAV file.

    Samples are normalized to the peak magnitude of the signal before
    quantization.

    Args:
        path: Output path.
        signal: Samples to write.
        rate: Sample rate.
        bits_per_sample: 8, 16 or 32.
    """
    dtypes = {8: np.uint8, 16: np.dtype('<i2'), 32: np.dtype('<i4')}
    if bits_per_sample not in dtypes:
        raise WavFormatError(f"Can't write WAV with {bits_per_sample} bits per sample")

    signal = np.asarray(signal, dtype=np.float64)
    peak = float(np.max(np.abs(signal))) if signal.size else 0.0
    normalized = signal / peak if peak > 0 else signal

    if bits_per_sample == 8:
        data = np.round(normalized * 127.0 + 128.0).astype(np.uint8)
    else:
        full_scale = 2 ** (bits_per_sample - 1) - 1
        data = np.round(normalized * full_scale).astype(dtypes[bits_per_sample])

    logger.debug(f"Writing WAV to '{path}', {rate}, {bits_per_sample}bit")

    try:
        with wave.open(str(path), 'wb') as wf:
            wf.setnchannels(1)
            wf.setsampwidth(bits_per_sample // 8)
            wf.setframerate(rate.hz)
            wf.writeframes(data.tobytes())
    except wave.Error as e:
        raise WavFormatError(f"Error writing WAV file '{path}': {e}") from e


def copy_timestamp(source: str | Path, destination: str | Path) -> None:
    """Copy the access and modification times of one file to another."""
    stat = os.stat(source)
    os.utime(destination, (stat.st_atime, stat.st_mtime))
