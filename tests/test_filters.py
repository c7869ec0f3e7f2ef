"""Unit tests for FIR filter design."""

import numpy as np
import pytest

from noaa_apt.errors import InvalidParameterError
from noaa_apt.filters import (
    Lowpass,
    LowpassDcRemoval,
    NoFilter,
    bessel_i0,
    kaiser,
    kaiser_beta,
    product,
)
from noaa_apt.frequency import Freq, Rate

# Values from Octave
BESSEL_I0_VALUES = [
    (0., 1.0),
    (0.5, 1.06348337074132),
    (1., 1.26606587775201),
    (1.5, 1.64672318977289),
    (2., 2.27958530233607),
    (2.5, 3.28983914405012),
    (3., 4.88079258586502),
    (3.5, 7.37820343222548),
    (4., 11.3019219521363),
    (4.5, 17.4811718556093),
    (5., 27.2398718236044),
    (5.5, 42.6946451518478),
    (6., 67.2344069764780),
    (6.5, 106.292858243996),
    (7., 168.593908510290),
]


def frequency_response(coeff):
    """Magnitude of the FFT up to pi rad/sample and its frequencies.

    Frequencies are in fractions of pi rad/sample.
    """
    spectrum = np.abs(np.fft.fft(coeff.astype(np.float64)))
    freqs = 2. * np.arange(len(spectrum)) / len(spectrum)
    below_nyquist = freqs < 1.
    return freqs[below_nyquist], spectrum[below_nyquist]


class TestBessel:
    """Tests for the Bessel function approximation."""

    @pytest.mark.parametrize('x,expected', BESSEL_I0_VALUES)
    def test_scalar_values(self, x, expected):
        assert bessel_i0(x) == pytest.approx(expected, rel=1e-3)

    def test_vectorized(self):
        x = np.array([x for x, _ in BESSEL_I0_VALUES])
        expected = np.array([v for _, v in BESSEL_I0_VALUES])
        np.testing.assert_allclose(bessel_i0(x), expected, rtol=1e-3)


class TestKaiser:
    """Tests for Kaiser window design."""

    def test_beta_ranges(self):
        assert kaiser_beta(20) == 0.
        assert kaiser_beta(30) == pytest.approx(0.5842 * 9 ** 0.4 + 0.07886 * 9)
        assert kaiser_beta(60) == pytest.approx(0.1102 * (60 - 8.7))

    @pytest.mark.parametrize('atten,delta_w', [
        (20., 0.1), (30., 0.05), (40., 0.01), (60., 0.2), (25., 0.33),
    ])
    def test_odd_symmetric(self, atten, delta_w):
        window = kaiser(atten, Freq.pi_rad(delta_w))
        assert len(window) % 2 == 1
        np.testing.assert_allclose(window, window[::-1], rtol=1e-6)
        assert window[len(window) // 2] == pytest.approx(1.)

    def test_length(self):
        # ceil((40 - 8) / (2.285 * 0.1 * pi)) + 1 = 46, next odd is 47
        assert len(kaiser(40., Freq.pi_rad(0.1))) == 47

    def test_rectangular_below_21db(self):
        window = kaiser(20., Freq.pi_rad(0.1))
        np.testing.assert_allclose(window, np.ones(len(window)))

    def test_invalid_transition_band(self):
        with pytest.raises(InvalidParameterError):
            kaiser(40., Freq.pi_rad(0.))


class TestProduct:
    """Tests for the elementwise product."""

    def test_product(self):
        np.testing.assert_array_equal(
            product(np.array([1., 2., 3.]), np.array([2., 2., -1.])),
            np.array([2., 4., -3.]))

    def test_length_mismatch(self):
        with pytest.raises(InvalidParameterError):
            product(np.ones(3), np.ones(4))


class TestLowpass:
    """Tests for lowpass filter design."""

    @pytest.mark.parametrize('cutout,atten,delta_w', [
        (1 / 4, 20., 1 / 10),
        (1 / 3, 35., 1 / 30),
        (2 / 5, 60., 1 / 20),
    ])
    def test_frequency_response(self, cutout, atten, delta_w):
        coeff = Lowpass(
            cutout=Freq.pi_rad(cutout),
            atten=atten,
            delta_w=Freq.pi_rad(delta_w),
        ).design()

        assert len(coeff) % 2 == 1

        freqs, response = frequency_response(coeff)
        ripple = 10 ** (-atten / 20)

        passband = freqs < cutout - delta_w / 2
        stopband = freqs > cutout + delta_w / 2

        assert np.all(np.abs(response[passband] - 1) < ripple)
        assert np.all(response[stopband] < ripple)

    def test_dc_gain(self):
        coeff = Lowpass(Freq.pi_rad(0.2), 40., Freq.pi_rad(0.05)).design()
        assert np.sum(coeff) == pytest.approx(1., abs=0.02)


class TestResample:
    """Tests for moving a filter design to another sample rate."""

    @pytest.mark.parametrize('filter_class', [Lowpass, LowpassDcRemoval])
    @pytest.mark.parametrize('input_hz,output_hz,cutout_hz,delta_hz', [
        (1000, 3000, 300, 100),
        (11025, 12480, 2400, 500),
        (12480, 4160, 1500, 300),
    ])
    def test_same_as_direct_design(self, filter_class, input_hz, output_hz,
                                   cutout_hz, delta_hz):
        input_rate, output_rate = Rate(input_hz), Rate(output_hz)
        filt = filter_class(
            cutout=Freq.hz(cutout_hz, input_rate),
            atten=40.,
            delta_w=Freq.hz(delta_hz, input_rate),
        )
        direct = filter_class(
            cutout=Freq.hz(cutout_hz, output_rate),
            atten=40.,
            delta_w=Freq.hz(delta_hz, output_rate),
        )

        resampled = filt.resample(input_rate, output_rate)

        assert type(resampled) is filter_class
        assert resampled.atten == direct.atten
        assert resampled.cutout.get_pi_rad() == pytest.approx(direct.cutout.get_pi_rad())
        assert resampled.delta_w.get_pi_rad() == pytest.approx(direct.delta_w.get_pi_rad())
        assert resampled.cutout.get_hz(output_rate) == pytest.approx(cutout_hz)

        resampled_coeff = resampled.design()
        direct_coeff = direct.design()
        assert len(resampled_coeff) == len(direct_coeff)
        np.testing.assert_allclose(resampled_coeff, direct_coeff, atol=1e-6)

        # Original is untouched
        assert filt.cutout.get_hz(input_rate) == pytest.approx(cutout_hz)


class TestLowpassDcRemoval:
    """Tests for lowpass and DC removal filter design."""

    @pytest.mark.parametrize('cutout,atten,delta_w', [
        (1 / 4, 20., 1 / 10),
        (1 / 3, 35., 1 / 30),
        (2 / 5, 60., 1 / 20),
    ])
    def test_frequency_response(self, cutout, atten, delta_w):
        coeff = LowpassDcRemoval(
            cutout=Freq.pi_rad(cutout),
            atten=atten,
            delta_w=Freq.pi_rad(delta_w),
        ).design()

        assert len(coeff) % 2 == 1

        freqs, response = frequency_response(coeff)
        ripple = 10 ** (-atten / 20)

        passband = (freqs > delta_w) & (freqs < cutout - delta_w / 2)
        stopband = freqs > cutout + delta_w / 2

        assert response[0] < 2 * ripple
        assert np.all(np.abs(response[passband] - 1) < ripple)
        assert np.all(response[stopband] < ripple)


class TestNoFilter:
    """Tests for the identity filter."""

    def test_design(self):
        np.testing.assert_array_equal(NoFilter().design(), np.array([1.]))

    def test_resample(self):
        assert NoFilter().resample(Rate(1000), Rate(3000)) == NoFilter()
