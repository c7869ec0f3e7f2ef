"""Unit tests for pixel mapping and image output."""

import numpy as np
import pytest
from PIL import Image

from noaa_apt.errors import InvalidParameterError
from noaa_apt.image import (
    MINMAX,
    PERCENT,
    TELEMETRY,
    Contrast,
    ContrastMode,
    map_signal,
    reinterleave,
    rotate,
    save_png,
    to_image,
)
from noaa_apt.telemetry import Telemetry


def nominal_telemetry():
    wedges = np.array([31., 63., 95., 127., 159., 191., 224., 255., 0.] + [0.] * 7)
    return Telemetry(wedges, wedges)


class TestContrast:
    """Tests for contrast parsing."""

    @pytest.mark.parametrize('name,expected', [
        (None, PERCENT),
        ('98_percent', PERCENT),
        ('telemetry', TELEMETRY),
        ('disable', MINMAX),
    ])
    def test_from_name(self, name, expected):
        assert Contrast.from_name(name) == expected

    def test_unknown_name(self):
        with pytest.raises(InvalidParameterError):
            Contrast.from_name('histogram')

    def test_default_percent(self):
        assert PERCENT.mode == ContrastMode.PERCENT
        assert PERCENT.percent == 0.98


class TestMapSignal:
    """Tests for mapping samples to pixels."""

    def test_minmax(self):
        result = map_signal(np.array([0., 5., 10.]), MINMAX)
        assert result.dtype == np.uint8
        np.testing.assert_array_equal(result, [0, 127, 255])

    def test_percent_saturates_tails(self):
        signal = np.linspace(0., 1., 1001)
        result = map_signal(signal, PERCENT)

        assert result[0] == 0
        assert result[5] == 0
        assert result[-1] == 255
        assert result[-6] == 255
        assert result[500] in (127, 128)

    def test_percent_ignores_outliers(self):
        signal = np.concatenate([np.linspace(0., 1., 1000), [1000.]])
        result = map_signal(signal, PERCENT)
        # A single spike doesn't darken the whole image
        assert result[500] > 100

    def test_telemetry(self):
        signal = np.array([-10., 0., 127.5, 255., 300.])
        result = map_signal(signal, TELEMETRY, nominal_telemetry())
        np.testing.assert_allclose(result, [0, 0, 127, 255, 255], atol=1)

    def test_telemetry_missing(self):
        with pytest.raises(InvalidParameterError):
            map_signal(np.ones(10), TELEMETRY)

    def test_constant_signal(self):
        result = map_signal(np.full(10, 3.), MINMAX)
        np.testing.assert_array_equal(result, np.zeros(10, dtype=np.uint8))

    def test_empty_signal(self):
        with pytest.raises(InvalidParameterError):
            map_signal(np.empty(0), PERCENT)


class TestReinterleave:
    """Tests for chunk swapping and rotation."""

    def test_reinterleave(self):
        result = reinterleave(np.arange(1, 41), 5)
        expected = np.concatenate([
            np.concatenate([np.arange(start + 5, start + 10), np.arange(start, start + 5)])
            for start in range(1, 41, 10)
        ])
        np.testing.assert_array_equal(result, expected)

    def test_invalid_length(self):
        with pytest.raises(InvalidParameterError):
            reinterleave(np.arange(12), 5)

    def test_rotate_keeps_channels(self):
        # Two rows, each channel filled with a different value
        raster = np.concatenate([
            np.full(1040, 1), np.full(1040, 2), np.full(1040, 3), np.full(1040, 4),
        ]).astype(np.uint8)

        result = rotate(raster)

        np.testing.assert_array_equal(result[:1040], 3)
        np.testing.assert_array_equal(result[1040:2080], 4)
        np.testing.assert_array_equal(result[2080:3120], 1)
        np.testing.assert_array_equal(result[3120:], 2)

    def test_rotate_reverses_rows(self):
        raster = (np.arange(2080 * 3) % 251).astype(np.uint8)
        result = rotate(raster)

        # First pixel of channel A ends up last on channel A
        assert result[1040 * 4 + 1039] == raster[0]
        np.testing.assert_array_equal(rotate(result), raster)


class TestImageOutput:
    """Tests for building and saving images."""

    def test_to_image(self):
        raster = np.zeros(2080 * 3, dtype=np.uint8)
        raster[2080:] = 200
        img = to_image(raster)

        assert img.size == (2080, 3)
        assert img.mode == 'L'
        assert img.getpixel((0, 0)) == 0
        assert img.getpixel((10, 2)) == 200

    def test_invalid_length(self):
        with pytest.raises(InvalidParameterError):
            to_image(np.zeros(2081, dtype=np.uint8))

    def test_save_png(self, tmp_path):
        path = save_png(np.full(2080 * 2, 128, dtype=np.uint8), tmp_path / 'out.png')

        assert path.exists()
        with Image.open(path) as img:
            assert img.size == (2080, 2)
            assert img.getpixel((100, 1)) == 128
