"""Shared fixtures."""

import numpy as np
import pytest

from noaa_apt.frequency import Rate
from noaa_apt.wav import write_wav


class RecordingSink:
    """Step sink that keeps every exported step in memory."""

    def __init__(self):
        self.signals = []
        self.filters = []

    def write_named_signal(self, key, signal, rate):
        self.signals.append((key, np.array(signal), rate))

    def write_named_filter(self, key, coeff):
        self.filters.append((key, np.array(coeff)))

    @property
    def keys(self):
        return [key for key, _, _ in self.signals]


@pytest.fixture
def sink():
    """In-memory step sink."""
    return RecordingSink()


@pytest.fixture
def skip_steps():
    """Feed empty payloads to a context until ``key`` is the next step."""
    def skip(context, key):
        while context.remaining_steps[0] != key:
            step = context.remaining_steps[0]
            if step.endswith('_filter'):
                context.filter_step(step, np.empty(0))
            else:
                context.signal_step(step, np.empty(0))
    return skip


def _synthetic_recording(rows, rate=11025):
    """AM modulated APT recording of identical rows.

    Each row has the channel A sync pulses on pixels 2, 3, 6, 7 ... 26, 27,
    channel A image at 0.8 brightness and channel B image at 0.1.
    """
    row = np.zeros(2080)
    row[[4 * i + j for i in range(7) for j in (2, 3)]] = 1.
    row[86:995] = 0.8
    row[1126:2035] = 0.1

    pixels = np.tile(row, rows)
    n = np.arange(rows * rate // 2)
    envelope = 0.1 + 0.9 * pixels[n * 4160 // rate]
    return (envelope * np.cos(2 * np.pi * 2400 * n / rate)).astype(np.float32)


@pytest.fixture(scope='session')
def apt_recording():
    """Seven seconds of synthetic APT signal at 11025Hz."""
    return _synthetic_recording(14)


@pytest.fixture
def apt_wav(tmp_path, apt_recording):
    """Synthetic APT recording stored as a WAV file."""
    path = tmp_path / 'noaa19_pass.wav'
    write_wav(path, apt_recording, Rate(11025))
    return path
