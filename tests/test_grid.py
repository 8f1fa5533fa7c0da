"""
Tests for grid geometry and the dealiasing mask.
"""

import numpy as np
import pytest

from pssim.grid import Grid


class TestGrid:
    """Geometry derived from sizes and spacings."""

    def test_defaults_to_one_dimension(self):
        grid = Grid(sx=8)

        assert grid.shape == (8, 1, 1)
        assert grid.size == 8
        assert grid.ndim == 1

    def test_wavenumber_steps(self):
        grid = Grid(sx=8, sy=4, dx=0.5, dy=2.0)

        assert grid.stepqx == pytest.approx(2 * np.pi / 4.0)
        assert grid.stepqy == pytest.approx(2 * np.pi / 8.0)
        assert grid.ndim == 2

    def test_wavevectors_follow_fft_ordering(self):
        grid = Grid(sx=8, dx=1.0)
        qx, qy, qz = grid.wavevectors()

        expected = grid.stepqx * np.array([0, 1, 2, 3, -4, -3, -2, -1])

        np.testing.assert_allclose(qx[:, 0, 0], expected)
        assert qx.shape == qy.shape == qz.shape == (8, 1, 1)
        assert np.all(qy == 0.0) and np.all(qz == 0.0)

    @pytest.mark.parametrize('kwargs', [{'sx': 0}, {'sx': 4, 'sy': -1}, {'sx': 4, 'dx': 0.0}])
    def test_invalid_geometry(self, kwargs):
        with pytest.raises(ValueError):
            Grid(**kwargs)

    def test_immutable(self):
        grid = Grid(sx=4)

        with pytest.raises(AttributeError):
            grid.sx = 8


class TestDealiasMask:
    """Truncation radius for polynomial nonlinearities."""

    def test_linear_keeps_everything(self):
        assert np.all(Grid(sx=8, sy=8).dealias_mask(1))

    def test_two_thirds_rule(self):
        mask = Grid(sx=8).dealias_mask(2)[:, 0, 0]
        np.testing.assert_array_equal(mask, [True, True, True, False, False, False, True, True])

    def test_cubic_truncates_further(self):
        mask = Grid(sx=16).dealias_mask(3)[:, 0, 0]
        kept = np.abs(np.fft.fftfreq(16, d=1.0 / 16))[mask]

        assert kept.max() == 4

    def test_singleton_axes_untouched(self):
        mask = Grid(sx=12, sy=12).dealias_mask(2)
        assert mask.shape == (12, 12, 1)
        assert mask[0, 0, 0]
        assert not mask[6, 0, 0]
