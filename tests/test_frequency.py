"""Unit tests for frequency and rate types."""

import math

import pytest

from noaa_apt.errors import InvalidParameterError
from noaa_apt.frequency import Freq, Rate

# (pi_rad, rad, hz, rate)
EQUIVALENCES = [
    (0.435374149659864, 1.367768230134332, 2400., 11025),
    (-0.435374149659864, -1.367768230134332, -2400., 11025),
    (0.1, 0.3141592653589793, 100., 2000),
    (-0.1, -0.3141592653589793, -100., 2000),
    (0., 0., 0., 11025),
    (1., math.pi, 5512.5, 11025),
    (-1., -math.pi, -5512.5, 11025),
    (2., 2. * math.pi, 11025., 11025),
    (-2., -2. * math.pi, -11025., 11025),
    (300., 300. * math.pi, 150., 1),
    (-300., -300. * math.pi, -150., 1),
]


def approx(value):
    return pytest.approx(value, rel=1e-9, abs=1e-12)


class TestFreqConversions:
    """Tests for Freq constructors and readers."""

    @pytest.mark.parametrize('pi_rad,rad,hz,rate', EQUIVALENCES)
    def test_from_pi_rad(self, pi_rad, rad, hz, rate):
        freq = Freq.pi_rad(pi_rad)
        assert freq.get_pi_rad() == approx(pi_rad)
        assert freq.get_rad() == approx(rad)
        assert freq.get_hz(Rate(rate)) == approx(hz)

    @pytest.mark.parametrize('pi_rad,rad,hz,rate', EQUIVALENCES)
    def test_from_rad(self, pi_rad, rad, hz, rate):
        freq = Freq.rad(rad)
        assert freq.get_pi_rad() == approx(pi_rad)
        assert freq.get_rad() == approx(rad)
        assert freq.get_hz(Rate(rate)) == approx(hz)

    @pytest.mark.parametrize('pi_rad,rad,hz,rate', EQUIVALENCES)
    def test_from_hz(self, pi_rad, rad, hz, rate):
        freq = Freq.hz(hz, Rate(rate))
        assert freq.get_pi_rad() == approx(pi_rad)
        assert freq.get_rad() == approx(rad)
        assert freq.get_hz(Rate(rate)) == approx(hz)


class TestFreqArithmetic:
    """Tests for Freq operators."""

    def test_operators_with_freq(self):
        a = Freq.pi_rad(0.5)
        b = Freq.pi_rad(0.25)
        assert (a + b).get_pi_rad() == 0.75
        assert (a - b).get_pi_rad() == 0.25
        assert (a * b).get_pi_rad() == 0.125
        assert (a / b).get_pi_rad() == 2.

    def test_operators_with_scalars(self):
        a = Freq.pi_rad(0.5)
        assert (a * 2).get_pi_rad() == 1.
        assert (2 * a).get_pi_rad() == 1.
        assert (a / 5.).get_pi_rad() == pytest.approx(0.1)
        assert (a + 1).get_pi_rad() == 1.5
        assert (a - 1).get_pi_rad() == -0.5
        assert (-a).get_pi_rad() == -0.5

    def test_operators_keep_pi_fraction(self):
        """Arithmetic never goes through Hertz."""
        cutout = Freq.hz(2400, Rate(11025))
        assert (cutout / 5.).get_pi_rad() == pytest.approx(cutout.get_pi_rad() / 5.)

    def test_ordering(self):
        assert Freq.pi_rad(0.1) < Freq.pi_rad(0.2)
        assert Freq.pi_rad(1.) == Freq.rad(math.pi)


class TestRate:
    """Tests for Rate."""

    def test_invalid_rates(self):
        with pytest.raises(InvalidParameterError):
            Rate(0)
        with pytest.raises(InvalidParameterError):
            Rate(-4160)
        with pytest.raises(InvalidParameterError):
            Rate(4160.5)

    def test_arithmetic(self):
        assert Rate(4160) * 3 == Rate(12480)
        assert 3 * Rate(4160) == Rate(12480)
        assert Rate(12480) // 3 == Rate(4160)
        assert Rate(4160) // Rate(2080) == Rate(2)
        assert Rate(4160) + Rate(4160) == Rate(8320)
        assert Rate(8320) - 4160 == Rate(4160)

    def test_subtraction_underflow(self):
        with pytest.raises(InvalidParameterError):
            Rate(4160) - Rate(4160)

    def test_checked_mul(self):
        assert Rate(11025).checked_mul(832) == Rate(9172800)
        assert Rate(11025).checked_mul(0) is None

    def test_ordering(self):
        assert Rate(4160) < Rate(11025)
        assert max(Rate(4160), Rate(11025)) == Rate(11025)

    def test_str(self):
        assert str(Rate(4160)) == '4160Hz'
