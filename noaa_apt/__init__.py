"""NOAA APT decoder package.

Decodes Automatic Picture Transmission images from NOAA weather satellite
recordings: resampling, AM demodulation, sync frame alignment, telemetry
reading and pixel mapping. Built on numpy and Pillow.
"""

from .apt_decoder import (
    AptDecoder,
    AptImageFile,
    DecodeOptions,
    DecodeProgress,
    get_apt_decoder,
)
from .config import PROFILES, Profile, get_profile
from .constants import FINAL_RATE, PX_PER_ROW
from .context import Context, StepDescriptor, StepKind, WavStepWriter
from .errors import (
    AptError,
    InsufficientSignalError,
    InvalidParameterError,
    ProtocolViolationError,
    SyncNotFoundError,
    WavFormatError,
)
from .frequency import Freq, Rate
from .image import Contrast, ContrastMode
from .pipeline import AptImage, decode, process, resample_signal
from .telemetry import Channel, Telemetry

__all__ = [
    'AptDecoder',
    'AptError',
    'AptImage',
    'AptImageFile',
    'Channel',
    'Context',
    'Contrast',
    'ContrastMode',
    'DecodeOptions',
    'DecodeProgress',
    'FINAL_RATE',
    'Freq',
    'InsufficientSignalError',
    'InvalidParameterError',
    'PROFILES',
    'PX_PER_ROW',
    'Profile',
    'ProtocolViolationError',
    'Rate',
    'StepDescriptor',
    'StepKind',
    'SyncNotFoundError',
    'Telemetry',
    'WavFormatError',
    'WavStepWriter',
    'decode',
    'get_apt_decoder',
    'get_profile',
    'process',
    'resample_signal',
]
