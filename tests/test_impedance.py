# tests/test_impedance.py
import math

import numpy as np
import pytest

from issim_core import (
    AREAL_CAPACITANCE_UNIT, AREAL_IMPEDANCE_UNIT, Channel, ChannelHarmonics, derive_channel_impedance,
    derive_impedance, ureg,
)


def harmonics(amplitude, phase):
    amplitude = np.asarray(amplitude, dtype=float)
    phase = np.asarray(phase, dtype=float)
    return ChannelHarmonics(bias=np.zeros_like(phase), amplitude=amplitude, phase=phase)


def test_purely_capacitive_cell():
    f = 1e3
    result = derive_channel_impedance(harmonics([[1e-3]], [[math.pi / 2]]), np.array([[f]]), 1e-3)

    assert result.impedance_abs[0, 0] == pytest.approx(1.0)
    assert result.impedance_re[0, 0] == pytest.approx(0.0, abs=1e-12)
    assert result.impedance_im[0, 0] == pytest.approx(-1.0)
    assert result.capacitance[0, 0] == pytest.approx(1.0 / (2 * math.pi * f))


def test_purely_resistive_cell_has_zero_capacitance():
    result = derive_channel_impedance(harmonics([[2e-3]], [[0.0]]), np.array([[50.0]]), 1e-3)

    assert result.impedance_abs[0, 0] == pytest.approx(0.5)
    assert result.impedance_re[0, 0] == pytest.approx(0.5)
    assert result.impedance_im[0, 0] == pytest.approx(0.0)
    assert result.capacitance[0, 0] == 0.0


def test_parallel_rc_recovers_capacitance():
    # Admittance G + jwC: current amplitude |Y| dV and phase atan(wC/G).
    g, c, dv = 1e-3, 1e-7, 2e-3
    freqs = np.array([1e1, 1e3, 1e5])
    omega = 2 * np.pi * freqs
    amplitude = dv * np.hypot(g, omega * c)
    phase = np.arctan2(omega * c, g)

    result = derive_channel_impedance(harmonics([amplitude], [phase]), freqs, dv)

    np.testing.assert_allclose(result.capacitance, c, rtol=1e-12)
    assert result.complex_impedance.shape == (1, 3)
    np.testing.assert_allclose(result.complex_impedance[0], 1.0 / (g + 1j * omega * c), rtol=1e-12)


def test_impedance_magnitude_is_non_negative():
    result = derive_channel_impedance(harmonics([[1e-3, 4e-3]], [[0.3, 0.3]]), np.array([1e2, 1e1]), -1e-3)
    assert np.all(result.impedance_abs > 0)
    np.testing.assert_allclose(result.impedance_abs, [[1.0, 0.25]])


def test_zero_amplitude_cells_are_nan_and_flagged(caplog):
    amplitude = [[1e-3, 0.0], [0.0, 2e-3]]
    phase = [[0.5, 0.0], [0.0, 0.5]]
    result = derive_channel_impedance(harmonics(amplitude, phase), np.array([1e3, 1e2]), 1e-3, Channel.IONIC)

    expected_mask = np.array([[False, True], [True, False]])
    np.testing.assert_array_equal(result.zero_amplitude_mask, expected_mask)
    assert result.has_flagged_cells
    for matrix in (result.impedance_abs, result.impedance_re, result.impedance_im, result.capacitance):
        assert np.all(np.isnan(matrix[expected_mask]))
        assert np.all(np.isfinite(matrix[~expected_mask]))
    assert "ionic" in caplog.text


def test_derivation_is_pure():
    h = harmonics([[1e-3, 2e-3]], [[0.4, 1.1]])
    freqs = np.array([[1e4, 1e2]])
    before = (h.amplitude.copy(), h.phase.copy(), freqs.copy())

    first = derive_channel_impedance(h, freqs, 1e-3)
    second = derive_channel_impedance(h, freqs, 1e-3)

    np.testing.assert_array_equal(first.capacitance, second.capacitance)
    np.testing.assert_array_equal(first.impedance_abs, second.impedance_abs)
    np.testing.assert_array_equal(h.amplitude, before[0])
    np.testing.assert_array_equal(h.phase, before[1])
    np.testing.assert_array_equal(freqs, before[2])


def test_channels_are_derived_independently():
    mapping = {
        Channel.TOTAL: harmonics([[1e-3]], [[0.5]]),
        Channel.IONIC: harmonics([[0.0]], [[0.0]]),
    }
    results = derive_impedance(mapping, np.array([1e3]), 1e-3)

    assert set(results) == {Channel.TOTAL, Channel.IONIC}
    assert not results[Channel.TOTAL].has_flagged_cells
    assert results[Channel.IONIC].has_flagged_cells


def test_with_units_reports_areal_quantities():
    result = derive_channel_impedance(harmonics([[1e-3]], [[math.pi / 2]]), np.array([1e3]), 1e-3)
    quantities = result.with_units()

    assert quantities["impedance_abs"].to(ureg.ohm * ureg.m ** 2).magnitude[0, 0] == pytest.approx(1e-4)
    assert quantities["capacitance"].units == AREAL_CAPACITANCE_UNIT
    assert quantities["impedance_im"].units == AREAL_IMPEDANCE_UNIT
    assert quantities["capacitance"].dimensionality == (ureg.farad / ureg.cm ** 2).dimensionality


def test_mismatched_harmonic_shapes_are_rejected():
    with pytest.raises(ValueError, match="share one shape"):
        ChannelHarmonics(bias=np.zeros((1, 2)), amplitude=np.zeros((1, 2)), phase=np.zeros((2, 1)))


def test_identity_and_capacitance_sign():
    rng = np.random.default_rng(11)
    amplitude = rng.uniform(1e-6, 1e-2, size=(3, 5))
    phase = rng.uniform(-np.pi, np.pi, size=(3, 5))
    phase[0, 0] = 0.0
    freqs = np.geomspace(1e5, 1e-1, 5)

    result = derive_channel_impedance(harmonics(amplitude, phase), freqs, 2e-3)

    np.testing.assert_allclose(result.impedance_re ** 2 + result.impedance_im ** 2, result.impedance_abs ** 2)
    np.testing.assert_array_equal(np.sign(result.capacitance), np.sign(np.sin(phase)))
    assert result.capacitance[0, 0] == 0.0
