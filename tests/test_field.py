"""
Tests for a single field: buffers, propagators and integrators.
"""

import numpy as np
import pytest

from pssim.backends.numpy import NumpyBackend
from pssim.field import DEVICE_BUFFERS, Field
from pssim.operators import SpectralOperator
from pssim.term import Term
from pssim.utils.enums import eIntegrator
from pssim.utils.exceptions import DimensionError


def _prepared(field: Field, dt: float) -> Field:

    field.prepare_device()
    field.copy_host_to_device()
    field.to_comp()
    field.to_real()
    field.precalculate_implicit(dt)

    return field


class TestHostBuffers:
    """Initial conditions on the host."""

    def test_scalar_initial_condition(self, grid_1d, backend):
        f = Field('u', grid_1d, backend)
        f.set_real(2.0)

        assert f.real_array.shape == grid_1d.shape
        assert f.comp_array[0, 0, 0] == pytest.approx(16.0)

    def test_flat_values_are_reshaped(self, grid_2d, backend, rng):
        values = rng.standard_normal(grid_2d.size)

        f = Field('u', grid_2d, backend)
        f.set_real(values)

        np.testing.assert_allclose(f.real_array.ravel(), values)

    def test_wrong_size_raises(self, grid_1d, backend):
        f = Field('u', grid_1d, backend)

        with pytest.raises(DimensionError):
            f.set_real(np.ones(7))

    def test_set_fourier_updates_real(self, grid_1d, backend):
        f = Field('u', grid_1d, backend)

        comp = np.zeros(grid_1d.shape, dtype=np.complex128)
        comp[0] = 8.0
        f.set_fourier(comp)

        np.testing.assert_allclose(f.real_array, 1.0)

    def test_device_buffers_are_not_shared_with_host(self, grid_1d, backend):
        f = _prepared(Field('u', grid_1d, backend), dt=0.1)
        f.set_real(5.0)

        np.testing.assert_allclose(f.real_array_d, 0.0)

        f.copy_host_to_device()
        np.testing.assert_allclose(f.real_array_d, 5.0)

    def test_invalid_integrator(self, grid_1d, backend):
        with pytest.raises(TypeError):
            Field('u', grid_1d, backend, integrator='euler')


class TestIntegrators:
    """Time integration of a single field."""

    @pytest.mark.parametrize('integrator', list(eIntegrator))
    def test_empty_field_is_unchanged(self, grid_2d, backend, rng, integrator):
        f = Field('u', grid_2d, backend, integrator=integrator)
        f.set_real(rng.standard_normal(grid_2d.shape))

        _prepared(f, dt=0.1)
        before = f.comp_array_d.copy()

        for _ in range(3):
            f.update_terms([f])
            f.set_rhs([f], 0.1)

        np.testing.assert_allclose(f.comp_array_d, before, atol=1e-12)
        np.testing.assert_allclose(f.real_array_d, np.fft.ifftn(before).real, atol=1e-12)

    @pytest.mark.parametrize('integrator, tolerance', [
        (eIntegrator.euler, 3e-2),
        (eIntegrator.rk2, 1e-3),
        (eIntegrator.rk4, 1e-6),
    ])
    def test_exponential_decay(self, grid_1d, backend, integrator, tolerance):
        f = Field('u', grid_1d, backend, integrator=integrator)
        f.terms.append(Term(target=0, operands=[0], prefactors=[SpectralOperator(-1.0)]))
        f.set_real(1.0)

        dt = 0.1
        _prepared(f, dt)

        for _ in range(10):
            f.update_terms([f])
            f.set_rhs([f], dt)

        np.testing.assert_allclose(f.real_array_d, np.exp(-1.0), atol=tolerance)

    def test_rk4_is_more_accurate_than_euler(self, grid_1d):
        errors = {}
        for integrator in (eIntegrator.euler, eIntegrator.rk4):

            f = Field('u', grid_1d, NumpyBackend(), integrator=integrator)
            f.terms.append(Term(target=0, operands=[0, 0], prefactors=[SpectralOperator(-1.0)]))
            f.set_real(1.0)
            _prepared(f, 0.05)

            for _ in range(20):
                f.update_terms([f])
                f.set_rhs([f], 0.05)

            # d/dt u = -u^2 -> u = 1 / (1 + t)
            errors[integrator] = np.abs(f.real_array_d - 0.5).max()

        assert errors[eIntegrator.rk4] < 1e-5 < errors[eIntegrator.euler]

    def test_implicit_diffusion_propagator(self, grid_1d, backend):
        dt = 0.01
        f = Field('u', grid_1d, backend)
        f.add_implicit(SpectralOperator(-1.0, q2n=1))

        x = np.arange(8)
        f.set_real(1.0 + np.cos(2 * np.pi * x / 8))
        _prepared(f, dt)

        f.update_terms([f])
        f.set_rhs([f], dt)

        q = grid_1d.stepqx
        assert f.comp_array_d[0, 0, 0] == pytest.approx(8.0)
        assert f.comp_array_d[1, 0, 0] == pytest.approx(4.0 / (1.0 + dt * q ** 2))
        assert f.comp_array_d[7, 0, 0] == pytest.approx(4.0 / (1.0 + dt * q ** 2))


class TestStaticField:
    """Algebraic redefinition of non-dynamic fields."""

    def test_value_is_propagator_times_terms(self, grid_2d, backend, rng):
        phi = Field('phi', grid_2d, backend)
        phi.set_real(rng.standard_normal(grid_2d.shape))

        mu = Field('mu', grid_2d, backend, dynamic=False)
        mu.add_implicit(SpectralOperator(-2.0, q2n=1))
        mu.terms.append(Term(target=1, operands=[0], prefactors=[SpectralOperator(3.0)]))
        mu.set_real(rng.standard_normal(grid_2d.shape))

        fields = [phi, mu]
        for f in fields:
            _prepared(f, 0.1)

        qx, qy, qz = grid_2d.wavevectors()
        expected = 3.0 * np.fft.fftn(phi.real_array) / (1.0 + 2.0 * (qx ** 2 + qy ** 2 + qz ** 2))

        for _ in range(2):
            mu.update_terms(fields)
            mu.set_rhs(fields, 0.1)
            np.testing.assert_allclose(mu.comp_array_d, expected, atol=1e-10)

    def test_without_implicit_equals_terms(self, grid_1d, backend):
        phi = Field('phi', grid_1d, backend)
        phi.set_real(np.arange(8.0))

        mu = Field('mu', grid_1d, backend, dynamic=False)
        mu.terms.append(Term(target=1, operands=[0], prefactors=[SpectralOperator(1.0, iqx=1)]))
        mu.terms.append(Term(target=1, operands=[0, 0], prefactors=[SpectralOperator(0.5)]))

        fields = [phi, mu]
        for f in fields:
            _prepared(f, 0.1)

        mu.update_terms(fields)
        mu.set_rhs(fields, 0.1)

        qx = grid_1d.wavevectors()[0]
        phi_hat = np.fft.fftn(phi.real_array)
        expected = 1j * qx * phi_hat + 0.5 * np.fft.fftn(phi.real_array ** 2)

        np.testing.assert_allclose(mu.comp_array_d, expected, atol=1e-10)


class TestDealiasing:
    """Truncation of high modes for nonlinear products."""

    def test_dealias_is_idempotent(self, grid_2d, backend, rng):
        f = Field('u', grid_2d, backend)
        f.set_dealiasing(2)
        f.set_real(rng.standard_normal(grid_2d.shape))
        _prepared(f, 0.1)

        once = f.dealias(f.comp_array_d)
        twice = f.dealias(once)

        np.testing.assert_array_equal(once, twice)
        assert not np.allclose(once, f.comp_array_d)

    def test_product_buffer_is_truncated(self, grid_1d, backend):
        f = Field('u', grid_1d, backend)
        f.set_dealiasing(2)

        x = np.arange(8)
        f.set_real(np.cos(2 * np.pi * x / 8) + np.cos(2 * np.pi * 3 * x / 8))
        _prepared(f, 0.1)

        np.testing.assert_allclose(f.product_buffer()[:, 0, 0], np.cos(2 * np.pi * x / 8), atol=1e-12)
        np.testing.assert_allclose(f.real_array_d[:, 0, 0], f.real_array[:, 0, 0], atol=1e-12)

    def test_order_only_increases(self, grid_1d, backend):
        f = Field('u', grid_1d, backend)
        f.set_dealiasing(3)
        f.set_dealiasing(2)

        assert f.needs_aliasing
        assert f.aliasing_order == 3

    def test_cannot_change_after_prepare(self, grid_1d, backend):
        f = _prepared(Field('u', grid_1d, backend), 0.1)

        with pytest.raises(RuntimeError):
            f.set_dealiasing(2)


class TestRelease:
    """Backend buffers are dropped on release."""

    def test_release_clears_device_buffers(self, grid_1d, backend):
        f = Field('u', grid_1d, backend)
        f.set_noise(SpectralOperator(1.0))
        f.set_real(1.0)
        _prepared(f, 0.1)

        f.release()

        assert f.comp_array_d is None
        assert f.noise is None
        np.testing.assert_allclose(f.real_array, 1.0)

    def test_cache_emptied_after_buffers_dropped(self, grid_1d):

        class CachingBackend(NumpyBackend):

            def __init__(self) -> None:
                super().__init__(seed=0)
                self.held_on_empty = []

            def empty_cache(self) -> None:
                self.held_on_empty.append([attr for attr in DEVICE_BUFFERS if getattr(f, attr) is not None])

        backend = CachingBackend()
        f = Field('u', grid_1d, backend)
        f.set_noise(SpectralOperator(1.0))
        _prepared(f, 0.1)

        f.release()

        assert backend.held_on_empty == [[]]
