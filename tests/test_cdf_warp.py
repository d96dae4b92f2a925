"""
Tests for the CDF warp and its inverse lookup table.
"""

import pytest
import numpy as np
from py_heightwarp.core.cdf_warp import CdfWarp, build_inverse_lut, identity_cdf
from py_heightwarp.core.errors import ConfigurationError, DegenerateInputWarning


LUT_SIZE = 2048


class TestCdfWarp:
    """Test forward/inverse warp construction and sampling."""

    @pytest.fixture
    def random_warp(self):
        """Warp over a positive random histogram."""
        rng = np.random.default_rng(7)
        return CdfWarp.from_histogram(rng.uniform(0.5, 3.0, 32), LUT_SIZE)

    @pytest.fixture
    def smooth_warp(self):
        """Warp over a gently varying histogram."""
        return CdfWarp.from_histogram([1.0, 2.0, 3.0, 2.0, 1.0], LUT_SIZE)

    def test_table_shapes(self, random_warp):
        """CDF has bins + 1 entries, LUT has lut_size entries."""
        assert random_warp.table.cdf.shape == (33,)
        assert random_warp.table.inverse_lut.shape == (LUT_SIZE,)
        assert random_warp.table.cdf.dtype == np.float32
        assert random_warp.table.bins == 32
        assert random_warp.table.lut_size == LUT_SIZE

    def test_cdf_endpoints(self, random_warp):
        """CDF starts at 0 and ends at 1."""
        assert random_warp.table.cdf[0] == 0.0
        assert random_warp.table.cdf[-1] == pytest.approx(1.0, abs=1e-6)

    def test_forward_monotonic(self, random_warp):
        """Forward warp never decreases over 1000 samples."""
        t = np.linspace(0.0, 1.0, 1000)
        values = random_warp.forward(t)
        assert np.all(np.diff(values) >= 0)

    def test_inverse_monotonic(self, random_warp):
        """Inverse warp and its LUT never decrease."""
        assert np.all(np.diff(random_warp.table.inverse_lut) >= 0)
        values = random_warp.inverse(np.linspace(0.0, 1.0, 1000))
        assert np.all(np.diff(values) >= 0)

    def test_boundary_anchoring(self, random_warp):
        """forward(0) == 0 and forward(1) == 1."""
        assert random_warp.forward(0.0) == pytest.approx(0.0, abs=1e-4)
        assert random_warp.forward(1.0) == pytest.approx(1.0, abs=1e-4)
        assert random_warp.inverse(0.0) == pytest.approx(0.0, abs=1e-4)
        assert random_warp.inverse(1.0) == pytest.approx(1.0, abs=1e-4)

    def test_round_trip(self, smooth_warp):
        """inverse(forward(t)) stays within LUT resolution of t."""
        for t in np.linspace(0.0, 1.0, 11):
            assert abs(smooth_warp.inverse(smooth_warp.forward(t)) - t) < 2.0 / LUT_SIZE + 1e-6

    def test_round_trip_random(self, random_warp):
        """Round trip also holds for an uneven histogram."""
        t = np.linspace(0.0, 1.0, 11)
        error = np.abs(random_warp.inverse(random_warp.forward(t)) - t)
        assert np.all(error < 2.0 / LUT_SIZE + 1e-6)

    def test_dense_bin_expands(self):
        """A heavy bin claims a larger share of the output range."""
        warp = CdfWarp.from_histogram([1.0, 1.0, 6.0, 1.0, 1.0], LUT_SIZE)
        start, end = warp.forward(0.4), warp.forward(0.6)
        assert end - start == pytest.approx(0.6, abs=1e-6)

    def test_forward_interpolates_within_bin(self):
        """Forward is piecewise linear between CDF entries."""
        warp = CdfWarp.from_histogram([1.0, 3.0], LUT_SIZE)
        # cdf = [0, 0.25, 1]
        assert warp.forward(0.25) == pytest.approx(0.125, abs=1e-6)
        assert warp.forward(0.5) == pytest.approx(0.25, abs=1e-6)
        assert warp.forward(0.75) == pytest.approx(0.625, abs=1e-6)

    def test_clamps_out_of_range(self, random_warp):
        """Queries outside [0, 1] are clamped, never an error."""
        assert random_warp.forward(-3.0) == pytest.approx(0.0, abs=1e-6)
        assert random_warp.forward(4.0) == pytest.approx(1.0, abs=1e-6)
        assert random_warp.inverse(-0.5) == pytest.approx(0.0, abs=1e-6)
        assert random_warp.inverse(1.5) == pytest.approx(1.0, abs=1e-6)

    def test_vector_input(self, random_warp):
        """Array queries return arrays of the same shape."""
        t = np.linspace(0.0, 1.0, 12).reshape(3, 4)
        assert random_warp.forward(t).shape == (3, 4)
        assert random_warp.inverse(t).shape == (3, 4)
        assert isinstance(random_warp.forward(0.3), float)

    def test_single_bin_is_identity(self):
        """One bin gives a linear warp."""
        warp = CdfWarp.from_histogram([5.0], LUT_SIZE)
        for t in (0.0, 0.2, 0.7, 1.0):
            assert warp.forward(t) == pytest.approx(t, abs=1e-6)
            assert warp.inverse(t) == pytest.approx(t, abs=1e-6)

    def test_flat_bins_stay_finite(self):
        """Empty interior bins give a flat CDF run without NaN in the inverse."""
        warp = CdfWarp.from_histogram([1.0, 0.0, 0.0, 1.0], LUT_SIZE)
        assert warp.forward(0.5) == pytest.approx(0.5, abs=1e-6)
        assert np.all(np.isfinite(warp.table.inverse_lut))
        assert np.all(np.diff(warp.table.inverse_lut) >= 0)


class TestDegenerateHistograms:
    """Test fallbacks and configuration errors."""

    def test_zero_histogram_falls_back_to_identity(self):
        """All-zero density yields the identity CDF and a warning."""
        with pytest.warns(DegenerateInputWarning):
            table = CdfWarp.build(np.zeros(8), LUT_SIZE)

        assert table.degenerate
        assert np.all(np.isfinite(table.cdf))
        np.testing.assert_allclose(table.cdf, np.arange(9) / 8, atol=1e-7)

        warp = CdfWarp(table)
        for t in np.linspace(0.0, 1.0, 21):
            assert warp.forward(t) == pytest.approx(t, abs=1e-6)
            assert warp.inverse(t) == pytest.approx(t, abs=1e-6)

    def test_empty_histogram_rejected(self):
        with pytest.raises(ConfigurationError):
            CdfWarp.build([], LUT_SIZE)

    def test_small_lut_rejected(self):
        with pytest.raises(ConfigurationError):
            CdfWarp.build([1.0, 2.0], 1)

    def test_identity_exact(self):
        """Identity warp maps every t onto itself."""
        warp = CdfWarp.identity(128, LUT_SIZE)
        t = np.linspace(0.0, 1.0, 1000)
        np.testing.assert_allclose(warp.forward(t), t, atol=1e-6)
        np.testing.assert_allclose(warp.inverse(t), t, atol=1e-6)

    def test_identity_rejects_zero_bins(self):
        with pytest.raises(ConfigurationError):
            CdfWarp.identity(0, LUT_SIZE)


class TestInverseLut:
    """Test the LUT builder directly."""

    def test_identity_cdf_inverse_is_linear(self):
        lut = build_inverse_lut(identity_cdf(4), 5)
        np.testing.assert_allclose(lut, [0.0, 0.25, 0.5, 0.75, 1.0], atol=1e-12)

    def test_uneven_cdf(self):
        """Targets are located inside the bracketing bin."""
        cdf = np.array([0.0, 0.25, 1.0])
        lut = build_inverse_lut(cdf, 5)
        # t=0.25 ends bin 0; t=0.5 is a third into bin 1
        assert lut[1] == pytest.approx(0.5)
        assert lut[2] == pytest.approx((1 + 1 / 3) / 2)
        assert lut[4] == pytest.approx(1.0)
