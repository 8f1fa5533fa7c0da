from typing import Any, List, Optional, Sequence

import numpy as np

from .backends.proto import Backend
from .grid import Grid
from .noise import NoiseGenerator
from .observers import FieldObserver
from .operators import SpectralOperator, evaluate_sum
from .term import Term
from .utils.enums import eIntegrator
from .utils.exceptions import DimensionError


# buffers living on the backend, released together
DEVICE_BUFFERS = (
    'real_array_d',
    'comp_array_d',
    'rhs_d',
    'comp_dealiased_d',
    'real_dealiased_d',
    'noise_real_d',
    'noise_comp_d',
    'dealias_mask_d',
    'precomp_implicit_d',
    'precomp_implicit_half_d',
    'precomp_noise_d',
)


def _safe_inverse(den: np.ndarray) -> np.ndarray:

    out = np.zeros_like(den, dtype=np.complex128)
    nz = den != 0.0
    out[nz] = 1.0 / den[nz]

    return out


class Field:

    def __init__(self,
                 name: str,
                 grid: Grid,
                 backend: Backend,
                 dynamic: bool = True,
                 integrator: eIntegrator = eIntegrator.euler) -> None:

        """Field on a periodic grid, held in real and Fourier space.

        Host buffers (``real_array``, ``comp_array``) and their backend mirrors
        (``*_d``) are only synchronised by the explicit copy methods.

        Parameters
        ----------
        name: str
            Unique name of the field within its evolver.
        grid: Grid
            Grid geometry, fixed for the lifetime of the field.
        backend: Backend
            Compute backend holding the device buffers.
        dynamic: bool
            Whether the field is integrated in time or redefined every step.
        integrator: eIntegrator
            Time-integration scheme for dynamic fields.
        """

        if not isinstance(integrator, eIntegrator):
            raise TypeError('Must provide an eIntegrator instance.')

        self.name = name
        self.grid = grid
        self.backend = backend

        self.dynamic = dynamic
        self.integrator = integrator

        self.output_to_file = True

        self.needs_aliasing = False
        self.aliasing_order = 1

        self.is_noisy = False
        self.noise_amplitude: Optional[SpectralOperator] = None
        self.noise: Optional[NoiseGenerator] = None

        self.terms: List[Term] = []
        self.implicit: List[SpectralOperator] = []

        self.observer: Optional[FieldObserver] = None
        self.fourier_observer: Optional[FieldObserver] = None

        # host buffers
        self.real_array = np.zeros(grid.shape, dtype=np.float64)
        self.comp_array = np.zeros(grid.shape, dtype=np.complex128)

        # device buffers -- allocated in prepare_device()
        self.real_array_d: Any = None
        self.comp_array_d: Any = None
        self.rhs_d: Any = None

        self.comp_dealiased_d: Any = None
        self.real_dealiased_d: Any = None
        self.dealias_mask_d: Any = None

        self.noise_real_d: Any = None
        self.noise_comp_d: Any = None

        self.precomp_implicit_d: Any = None
        self.precomp_implicit_half_d: Any = None
        self.precomp_noise_d: Any = None

        self._device_ready = False

    def __repr__(self) -> str:
        kind = 'dynamic' if self.dynamic else 'static'
        return f'Field({self.name}, {kind}, terms={len(self.terms)}, implicit={len(self.implicit)})'

    def _as_grid_array(self, values: Any, dtype: type) -> np.ndarray:

        arr = np.asarray(values, dtype=dtype)

        if arr.ndim == 0:
            return np.full(self.grid.shape, arr, dtype=dtype)

        if arr.size != self.grid.size:
            raise DimensionError(msg=f'Field {self.name}: expected {self.grid.size} values, got shape {arr.shape}.')

        return arr.reshape(self.grid.shape).copy()

    def set_real(self, values: Any) -> None:

        """Set the host real-space state, e.g. an initial condition.

        Parameters
        ----------
        values: Any
            Scalar, or array with one value per grid point.
        """

        self.real_array = self._as_grid_array(values, np.float64)
        self.comp_array = np.fft.fftn(self.real_array)

    def set_fourier(self, values: Any) -> None:

        """Set the host Fourier-space state.

        Parameters
        ----------
        values: Any
            Scalar, or array with one value per Fourier mode.
        """

        self.comp_array = self._as_grid_array(values, np.complex128)
        self.real_array = np.fft.ifftn(self.comp_array).real

    def add_implicit(self, op: SpectralOperator) -> None:
        self.implicit.append(op)

    def set_noise(self, amplitude: SpectralOperator) -> None:
        self.is_noisy = True
        self.noise_amplitude = amplitude

    def set_dealiasing(self, order: int) -> None:

        """Request dealiasing for a nonlinearity of the given order.

        Parameters
        ----------
        order: int
            Nonlinearity order, only ever raised by repeated calls.
        """

        if self._device_ready:
            raise RuntimeError(f'Field {self.name}: dealiasing must be set before prepare_device().')

        if order > 1:
            self.needs_aliasing = True
            self.aliasing_order = max(self.aliasing_order, order)

    def set_observer(self, observer: Optional[FieldObserver]) -> None:
        self.observer = observer

    def set_fourier_observer(self, observer: Optional[FieldObserver]) -> None:
        self.fourier_observer = observer

    def prepare_device(self) -> None:

        """Allocate every backend buffer. Only the first call has an effect."""

        if self._device_ready:
            return

        shape = self.grid.shape

        self.real_array_d = self.backend.zeros(shape, complex_valued=False)
        self.comp_array_d = self.backend.zeros(shape)
        self.rhs_d = self.backend.zeros(shape)

        mask = None
        if self.needs_aliasing:
            mask = self.grid.dealias_mask(self.aliasing_order)

            self.dealias_mask_d = self.backend.asarray(mask.astype(np.float64))
            self.comp_dealiased_d = self.backend.zeros(shape)
            self.real_dealiased_d = self.backend.zeros(shape, complex_valued=False)

        if self.is_noisy:
            self.noise = NoiseGenerator(self.backend, shape)
            self.noise_real_d = self.backend.zeros(shape, complex_valued=False)
            self.noise_comp_d = self.backend.zeros(shape)

        for term in self.terms:
            term.prepare(self.grid, self.backend, mask)

        self._device_ready = True

    def precalculate_implicit(self, dt: float) -> None:

        """Precompute the per-mode implicit propagators for a time-step.

        Dynamic fields use ``1 / (1 - dt L(q))`` (and the half-step analogue
        for Runge-Kutta stages); static fields solve ``u = L u + N`` with
        ``1 / (1 - L(q))``. Modes with a vanishing denominator are zeroed.

        Parameters
        ----------
        dt: float
            Length of the time-step.
        """

        q = self.grid.wavevectors()
        linear = evaluate_sum(self.implicit, *q)

        if self.dynamic:
            precomp = _safe_inverse(1.0 - dt * linear)
            precomp_half = _safe_inverse(1.0 - 0.5 * dt * linear)
        else:
            precomp = _safe_inverse(1.0 - linear) if self.implicit else np.ones(self.grid.shape)
            precomp_half = precomp

        self.precomp_implicit_d = self.backend.asarray(precomp)
        self.precomp_implicit_half_d = self.backend.asarray(precomp_half)

        if self.is_noisy and self.noise_amplitude is not None:

            amplitude = self.noise_amplitude.evaluate(*q)
            if self.dynamic:
                amplitude = amplitude / np.sqrt(dt)

            self.precomp_noise_d = self.backend.asarray(amplitude)

    def product_buffer(self) -> Any:

        """Real-space buffer used when this field is a factor of a product."""

        if self.needs_aliasing:
            return self.real_dealiased_d

        return self.real_array_d

    def dealias(self, comp: Any) -> Any:

        """Zero the Fourier modes beyond the truncation radius."""

        if self.dealias_mask_d is None:
            return comp

        return comp * self.dealias_mask_d

    def to_real(self) -> None:

        self.real_array_d = self.backend.fourier_to_phys(self.comp_array_d)

        if self.needs_aliasing:
            self.comp_dealiased_d = self.dealias(self.comp_array_d)
            self.real_dealiased_d = self.backend.fourier_to_phys(self.comp_dealiased_d)

    def to_comp(self) -> None:
        self.comp_array_d = self.backend.phys_to_fourier(self.real_array_d)

    def update_terms(self, fields: Sequence['Field']) -> None:

        """Recompute the explicit right-hand side from all terms.

        Parameters
        ----------
        fields: Sequence[Field]
            Field arena the terms index into.
        """

        rhs = self.backend.zeros(self.grid.shape)
        for term in self.terms:
            rhs = term.evaluate(fields, rhs)

        self.rhs_d = rhs

    def create_noise(self) -> None:

        if self.noise is None:
            raise RuntimeError(f'Field {self.name}: noise requested before prepare_device().')

        self.noise_real_d, self.noise_comp_d = self.noise.sample_fourier()

    def _explicit_rhs(self, noisy: bool = True) -> Any:

        rhs = self.backend.copy(self.rhs_d)

        if noisy and self.is_noisy:
            self.create_noise()
            rhs = self.backend.multiply_add(rhs, self.precomp_noise_d, self.noise_comp_d)

        return rhs

    def set_rhs(self, fields: Sequence['Field'], dt: float) -> None:

        """Advance the field once its terms are up to date.

        Parameters
        ----------
        fields: Sequence[Field]
            Field arena, needed by multi-stage integrators.
        dt: float
            Length of the time-step.
        """

        if not self.dynamic:
            self.set_not_dynamic()
            return

        match self.integrator:

            case eIntegrator.euler:
                self.step_euler(fields, dt)

            case eIntegrator.rk2:
                self.step_rk2(fields, dt)

            case eIntegrator.rk4:
                self.step_rk4(fields, dt)

            case _:
                raise ValueError(f'Invalid integrator: {self.integrator}')

    def set_not_dynamic(self) -> None:

        """Redefine the field from its terms, no time integration."""

        self.comp_array_d = self.precomp_implicit_d * self._explicit_rhs()
        self.to_real()

    def step_euler(self, fields: Sequence['Field'], dt: float) -> None:

        rhs = self._explicit_rhs()

        self.comp_array_d = self.precomp_implicit_d * (self.comp_array_d + dt * rhs)
        self.to_real()

    def step_rk2(self, fields: Sequence['Field'], dt: float) -> None:

        """Midpoint Runge-Kutta step with implicit linear part.

        Noise is drawn once per step, as in ``step_rk4``.

        Parameters
        ----------
        fields: Sequence[Field]
            Field arena, used to recompute terms at the midpoint.
        dt: float
            Length of the time-step.
        """

        u0 = self.backend.copy(self.comp_array_d)

        k1 = self._explicit_rhs(noisy=False)
        self.comp_array_d = self.precomp_implicit_half_d * (u0 + 0.5 * dt * k1)
        self.to_real()
        self.update_terms(fields)

        k2 = self._explicit_rhs(noisy=False)
        increment = dt * k2

        if self.is_noisy:
            self.create_noise()
            increment = self.backend.multiply_add(increment, dt * self.precomp_noise_d, self.noise_comp_d)

        self.comp_array_d = self.precomp_implicit_d * (u0 + increment)
        self.to_real()

    def step_rk4(self, fields: Sequence['Field'], dt: float) -> None:

        """Classical four-stage Runge-Kutta step with implicit linear part.

        The stages only see the deterministic terms. One noise sample per step
        enters the final combination, so the forcing keeps a variance of
        ``dt A^2`` per step.

        Parameters
        ----------
        fields: Sequence[Field]
            Field arena, used to recompute terms at every intermediate state.
        dt: float
            Length of the time-step.
        """

        u0 = self.backend.copy(self.comp_array_d)

        k1 = self._explicit_rhs(noisy=False)
        self.comp_array_d = self.precomp_implicit_half_d * (u0 + 0.5 * dt * k1)
        self.to_real()
        self.update_terms(fields)

        k2 = self._explicit_rhs(noisy=False)
        self.comp_array_d = self.precomp_implicit_half_d * (u0 + 0.5 * dt * k2)
        self.to_real()
        self.update_terms(fields)

        k3 = self._explicit_rhs(noisy=False)
        self.comp_array_d = self.precomp_implicit_d * (u0 + dt * k3)
        self.to_real()
        self.update_terms(fields)

        k4 = self._explicit_rhs(noisy=False)
        increment = (k1 + 2.0 * k2 + 2.0 * k3 + k4) * (dt / 6.0)

        if self.is_noisy:
            self.create_noise()
            increment = self.backend.multiply_add(increment, dt * self.precomp_noise_d, self.noise_comp_d)

        self.comp_array_d = self.precomp_implicit_d * (u0 + increment)
        self.to_real()

    def copy_host_to_device(self) -> None:
        self.real_array_d = self.backend.asarray(self.real_array, complex_valued=False)
        self.comp_array_d = self.backend.asarray(self.comp_array)

    def copy_device_to_host(self) -> None:
        self.copy_real_device_to_host()
        self.comp_array = np.asarray(self.backend.to_numpy(self.comp_array_d), dtype=np.complex128)

    def copy_real_device_to_host(self) -> None:
        self.real_array = np.asarray(self.backend.to_numpy(self.real_array_d), dtype=np.float64)

    def notify(self, step: int) -> None:

        if self.observer is not None:
            self.observer.observe(self.name, self.real_array_d, self.grid.shape, step)

        if self.fourier_observer is not None:
            self.fourier_observer.observe(self.name, self.comp_array_d, self.grid.shape, step)

    def release(self) -> None:

        """Release every backend buffer, host buffers are kept."""

        for attr in DEVICE_BUFFERS:
            setattr(self, attr, None)

        for term in self.terms:
            term.prefactor_d = None

        self.noise = None
        self._device_ready = False

        # only once nothing references the buffers
        self.backend.empty_cache()
