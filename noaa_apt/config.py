"""Configuration for the APT decoder.

Processing profiles and environment-driven settings. Hosts import from this
module rather than reading ``os.environ`` directly.
"""

from __future__ import annotations

import os
from dataclasses import asdict, dataclass

from .logging import get_logger

logger = get_logger('noaa_apt.config')


@dataclass(frozen=True)
class Profile:
    """Filter and rate parameters used when processing.

    Attributes:
        name: Profile name.
        work_rate: Sample rate used while demodulating and syncing (Hz),
            a multiple of 4160 equal or bigger than 12480.
        resample_atten: Attenuation of the first resampling filter (dB).
        resample_delta_freq: Transition band width of the first resampling
            filter (Hz).
        resample_cutout: Cutout frequency of the first resampling filter
            (Hz). The transition band goes from ``cutout - delta_freq / 2``
            to ``cutout + delta_freq / 2``.
        demodulation_atten: Attenuation of the demodulation filter (dB).
        wav_resample_atten: Attenuation used when resampling a WAV into
            another WAV (dB).
        wav_resample_delta_freq: Transition band width used when resampling
            a WAV into another WAV, in fractions of pi radians per sample.
    """
    name: str
    work_rate: int
    resample_atten: float
    resample_delta_freq: float
    resample_cutout: float
    demodulation_atten: float
    wav_resample_atten: float
    wav_resample_delta_freq: float

    def to_dict(self) -> dict:
        return asdict(self)


# Should work perfectly on every image
STANDARD = Profile(
    name='standard',
    work_rate=12480,
    resample_atten=30,
    resample_delta_freq=1000,
    resample_cutout=4800,
    demodulation_atten=25,
    wav_resample_atten=40,
    wav_resample_delta_freq=0.1,
)

# Less strict filters, noise can be a problem but barely visible
FAST = Profile(
    name='fast',
    work_rate=16640,
    resample_atten=30,
    resample_delta_freq=3000,
    resample_cutout=4800,
    demodulation_atten=23,
    wav_resample_atten=30,
    wav_resample_delta_freq=0.2,
)

# Temporary fallback when the standard profile has problems with an image
SLOW = Profile(
    name='slow',
    work_rate=20800,
    resample_atten=40,
    resample_delta_freq=500,
    resample_cutout=4800,
    demodulation_atten=25,
    wav_resample_atten=50,
    wav_resample_delta_freq=0.05,
)

PROFILES: dict[str, Profile] = {p.name: p for p in (STANDARD, FAST, SLOW)}

# ---------------------------------------------------------------------------
# Environment
# ---------------------------------------------------------------------------
DEFAULT_PROFILE: str = os.getenv('APT_PROFILE', 'standard')
"""Profile used when a request does not name one."""

OUTPUT_DIR: str = os.getenv('APT_OUTPUT_DIR', 'instance/apt_images')
"""Directory where decoded images and resampled WAVs are stored."""

STEPS_DIR: str = os.getenv('APT_STEPS_DIR', 'instance/apt_steps')
"""Directory where intermediate signals are exported when requested."""


def get_profile(name: str | None = None) -> Profile:
    """Look up a profile by name.

    Unknown names fall back to the standard profile.

    Args:
        name: Profile name, ``None`` for ``DEFAULT_PROFILE``.

    Returns:
        The matching profile.
    """
    if name is None:
        name = DEFAULT_PROFILE
    profile = PROFILES.get(name)
    if profile is None:
        logger.warning(f"Invalid profile \"{name}\", using standard profile")
        return STANDARD
    return profile
