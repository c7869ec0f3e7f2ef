"""Pipeline context.

Keeps track of the steps of a decode or resample operation, reports
progress and optionally exports every intermediate signal.

Each top-level operation builds its own ``Context`` with a fixed table of
expected steps. The DSP functions receive the context and hand it the
result of each step, the context checks the step against the table and
forwards it to a step sink. If a stage is added, removed or reordered
without updating the table the mismatch is raised immediately instead of
producing a mislabeled export.
"""

from __future__ import annotations

import enum
from collections import deque
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Protocol

import numpy as np

from .constants import PX_PER_ROW
from .errors import ProtocolViolationError
from .frequency import Rate
from .logging import get_logger
from .wav import write_wav

logger = get_logger('noaa_apt.context')

# (fraction 0.0 - 1.0, description)
ProgressCallback = Callable[[float, str], None]


class StepKind(enum.Enum):
    """Kinds of intermediate results."""
    SIGNAL = 'signal'
    FILTER = 'filter'


@dataclass(frozen=True)
class StepDescriptor:
    """Expected step of an operation.

    Attributes:
        description: Human-readable description.
        key: Identifier the pipeline uses when producing the step.
        filename: Name used when exporting, without extension.
        kind: Signal or filter coefficients.
        rate: Sample rate to export with when the producer doesn't know it.
    """
    description: str
    key: str
    filename: str
    kind: StepKind
    rate: Rate | None = None


class StepSink(Protocol):
    """Receives exported steps."""

    def write_named_signal(self, key: str, signal: np.ndarray, rate: Rate) -> None:
        ...

    def write_named_filter(self, key: str, coeff: np.ndarray) -> None:
        ...


class WavStepWriter:
    """Step sink that stores every step as a WAV file in a directory."""

    def __init__(self, directory: str | Path = '.'):
        self.directory = Path(directory)
        self.written: list[Path] = []

    def _path(self, key: str) -> Path:
        self.directory.mkdir(parents=True, exist_ok=True)
        return self.directory / f"{key}.wav"

    def write_named_signal(self, key: str, signal: np.ndarray, rate: Rate) -> None:
        path = self._path(key)
        write_wav(path, signal, rate, bits_per_sample=16)
        self.written.append(path)

    def write_named_filter(self, key: str, coeff: np.ndarray) -> None:
        # Filters have no sample rate, any value works
        path = self._path(key)
        write_wav(path, coeff, Rate(1), bits_per_sample=16)
        self.written.append(path)


def _log_progress(fraction: float, description: str) -> None:
    logger.info(description)


class Context:
    """Step recorder and progress reporter for one operation.

    Args:
        steps: Expected steps, in order.
        progress: Called with (fraction, description) at each milestone.
        export_steps: Whether intermediate signals are materialized and
            handed to ``sink``.
        export_resample_filtered: Whether the expanded and filtered signal
            of each resample is computed. Very slow and memory hungry.
        sink: Destination of exported steps, a ``WavStepWriter`` on the
            current directory by default.
    """

    def __init__(self, steps: Iterable[StepDescriptor],
                 progress: ProgressCallback | None = None,
                 export_steps: bool = False,
                 export_resample_filtered: bool = False,
                 sink: StepSink | None = None):
        self._expected: deque[StepDescriptor] = deque(steps)
        self._progress = progress or _log_progress
        self.export_steps = export_steps
        self.export_resample_filtered = export_steps and export_resample_filtered
        self._sink = sink if sink is not None else WavStepWriter()

    @property
    def remaining_steps(self) -> list[str]:
        return [step.key for step in self._expected]

    def status(self, fraction: float, description: str) -> None:
        """Report progress."""
        self._progress(min(1.0, max(0.0, fraction)), description)

    def signal_step(self, key: str, signal: np.ndarray, rate: Rate | None = None) -> None:
        """Hand a produced signal to the context."""
        self._step(StepKind.SIGNAL, key, signal, rate)

    def filter_step(self, key: str, coeff: np.ndarray) -> None:
        """Hand designed filter coefficients to the context."""
        self._step(StepKind.FILTER, key, coeff, None)

    def _step(self, kind: StepKind, key: str, payload: np.ndarray,
              rate: Rate | None) -> None:
        if not self.export_steps:
            return

        logger.debug(f"Got step: {key}")

        if not self._expected:
            raise ProtocolViolationError(f"Got step \"{key}\", no more steps expected")

        expected = self._expected.popleft()

        if expected.key != key:
            raise ProtocolViolationError(
                f"Expected step \"{expected.key}\", got \"{key}\"")
        if expected.kind != kind:
            raise ProtocolViolationError(
                f"Expected {expected.kind.value} for step \"{key}\", got {kind.value}")

        # Disabled exports and skipped stages produce empty payloads
        if len(payload) == 0:
            logger.debug(f"Step \"{key}\" is empty, not exporting")
            return

        if kind == StepKind.FILTER:
            self._sink.write_named_filter(expected.filename, payload)
            return

        export_rate = rate or expected.rate
        if export_rate is None:
            raise ProtocolViolationError(f"Unknown rate for step \"{key}\"")

        self._sink.write_named_signal(expected.filename, payload, export_rate)

    @classmethod
    def resample(cls, progress: ProgressCallback | None = None,
                 export_steps: bool = False,
                 export_resample_filtered: bool = False,
                 sink: StepSink | None = None) -> Context:
        """Create a context for a resampling operation."""
        steps = [
            StepDescriptor("Samples read from WAV",
                           'input', '00_input', StepKind.SIGNAL),
            StepDescriptor("Filter used on resample",
                           'resample_filter', '01_resample_filter', StepKind.FILTER),
            StepDescriptor("Expanded and filtered signal",
                           'resample_filtered', '02_resample_filtered', StepKind.SIGNAL),
            StepDescriptor("Result of resample",
                           'resample_decimated', '03_resample_result', StepKind.SIGNAL),
        ]
        return cls(steps, progress, export_steps, export_resample_filtered, sink)

    @classmethod
    def decode(cls, work_rate: Rate, final_rate: Rate,
               progress: ProgressCallback | None = None,
               export_steps: bool = False,
               export_resample_filtered: bool = False,
               sink: StepSink | None = None) -> Context:
        """Create a context for a decoding operation."""
        row_rate = final_rate // PX_PER_ROW
        steps = [
            StepDescriptor("Samples read from WAV",
                           'input', '00_input', StepKind.SIGNAL),
            StepDescriptor("Filter used on first resample",
                           'resample_filter', '01_resample_filter', StepKind.FILTER),
            StepDescriptor("Expanded and filtered on first resample",
                           'resample_filtered', '02_resample_filtered', StepKind.SIGNAL),
            StepDescriptor("Result of first resample",
                           'resample_decimated', '03_resample_decimated', StepKind.SIGNAL),
            StepDescriptor("Raw demodulated signal",
                           'demodulation_result', '04_demodulated_unfiltered',
                           StepKind.SIGNAL, work_rate),
            StepDescriptor("Filter for demodulated signal",
                           'filter_filter', '05_demodulation_filter', StepKind.FILTER),
            StepDescriptor("Filtered demodulated signal",
                           'filter_result', '06_demodulated', StepKind.SIGNAL, work_rate),
            StepDescriptor("Cross correlation used in syncing",
                           'sync_correlation', '07_sync_correlation',
                           StepKind.SIGNAL, work_rate),
            StepDescriptor("Synced signal",
                           'sync_result', '08_synced', StepKind.SIGNAL),
            StepDescriptor("Filter used on second resample",
                           'resample_filter', '09_resample_filter', StepKind.FILTER),
            StepDescriptor("Expanded and filtered on second resample",
                           'resample_filtered', '10_resample_filtered',
                           StepKind.SIGNAL, final_rate),
            StepDescriptor("Result of second resample",
                           'resample_decimated', '11_resample_decimated',
                           StepKind.SIGNAL, final_rate),
            StepDescriptor("Telemetry A horizontal averages",
                           'telemetry_a', '12_telemetry_a', StepKind.SIGNAL, row_rate),
            StepDescriptor("Telemetry B horizontal averages",
                           'telemetry_b', '13_telemetry_b', StepKind.SIGNAL, row_rate),
            StepDescriptor("Correlation of telemetry with sample",
                           'telemetry_correlation', '14_telemetry_correlation',
                           StepKind.SIGNAL, row_rate),
            StepDescriptor("Horizontal variance of telemetry bands",
                           'telemetry_variance', '15_telemetry_variance',
                           StepKind.SIGNAL, row_rate),
            StepDescriptor("Telemetry quality estimation",
                           'telemetry_quality', '16_telemetry_quality',
                           StepKind.SIGNAL, row_rate),
            StepDescriptor("Result of signal mapping, contrast check",
                           'mapped', '17_mapped', StepKind.SIGNAL, final_rate),
        ]
        return cls(steps, progress, export_steps, export_resample_filtered, sink)
