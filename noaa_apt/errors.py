"""Exception hierarchy for the APT decoder.

Every failure raised by the DSP core derives from ``AptError`` so hosts can
report it at a single boundary.
"""

from __future__ import annotations


class AptError(Exception):
    """Base class for decoder failures."""


class InvalidParameterError(AptError, ValueError):
    """A parameter is outside the range the pipeline supports.

    Non-integer rate ratios for the sync pattern, mismatched vector lengths
    in elementwise products, zero or negative rates.
    """


class InsufficientSignalError(AptError):
    """The recording is too short to produce a result."""


class SyncNotFoundError(AptError):
    """Too few sync frames were located to align image rows."""


class ProtocolViolationError(AptError):
    """The pipeline produced a step the context did not expect.

    Indicates a programming error, never bad user input.
    """


class WavFormatError(AptError):
    """A waveform file could not be read or written."""
