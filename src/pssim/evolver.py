import sys
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Union

import numpy as np
import tqdm
from absl import logging

from .backends.factory import get_backend
from .backends.proto import Backend
from .field import Field
from .grid import Grid
from .io import setup_directory, write_field_csv
from .operators import SpectralOperator
from .term import Term
from .utils.enums import eBackend, eIntegrator
from .utils.exceptions import UnknownFieldError


NAN_EXIT_CODE: int = 3


class Evolver:

    def __init__(self,
                 grid: Grid,
                 dt: float,
                 write_every_n_steps: int = 100,
                 backend: Union[Backend, eBackend] = eBackend.numpy,
                 output_dir: Optional[Union[str, Path]] = 'data',
                 seed: Optional[int] = None,
                 strict_terms: bool = False) -> None:

        """Owner of the fields sharing one grid, drives the step loop.

        Parameters
        ----------
        grid: Grid
            Grid geometry shared by every field.
        dt: float
            Length of the time-step.
        write_every_n_steps: int
            Output cadence, in steps.
        backend: Union[Backend, eBackend]
            Compute backend, or the type of backend to create.
        output_dir: Optional[Union[str, Path]]
            Directory for output tables, None disables file output.
        seed: Optional[int]
            Seed for the backend random generator, if one is created.
        strict_terms: bool
            Raise on unknown operand names instead of dropping them.
        """

        if dt <= 0.0:
            raise ValueError(f'Evolver :: dt must be positive, got {dt}')

        if write_every_n_steps < 1:
            raise ValueError(f'Evolver :: write_every_n_steps must be >= 1, got {write_every_n_steps}')

        self.grid = grid

        if isinstance(backend, eBackend):
            backend = get_backend(backend, seed=seed)
        self.backend = backend

        self.dt = dt
        self.dtsqrt = float(np.sqrt(dt))
        self.write_every_n_steps = write_every_n_steps

        self.output_dir = Path(output_dir) if output_dir is not None else None
        self.strict_terms = strict_terms

        self.current_time = 0.0
        self.current_time_step = 0

        self.fields: List[Field] = []
        self.fields_map: Dict[str, int] = {}
        self.parameters: Dict[str, float] = {}

        self._prepared = False

    def __enter__(self) -> 'Evolver':
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def close(self) -> None:

        """Release the backend buffers of every field."""

        for f in self.fields:
            f.release()

        self._prepared = False

    def field_index(self, name: str) -> Optional[int]:
        return self.fields_map.get(name)

    def get_field(self, name: str) -> Optional[Field]:

        idx = self.fields_map.get(name)
        if idx is None:
            return None

        return self.fields[idx]

    def create_field(self,
                     name: str,
                     dynamic: bool = True,
                     integrator: eIntegrator = eIntegrator.euler) -> Optional[Field]:

        """Register a new field.

        Parameters
        ----------
        name: str
            Unique name of the field.
        dynamic: bool
            Whether the field is integrated in time.
        integrator: eIntegrator
            Time-integration scheme.

        Returns
        -------
        Optional[Field]
            The new field, or None if the name is already taken.
        """

        if name in self.fields_map:
            logging.error('Trying to create field with name that already exists: %s', name)
            return None

        new_field = Field(name, self.grid, self.backend, dynamic=dynamic, integrator=integrator)

        self.fields.append(new_field)
        self.fields_map[name] = len(self.fields) - 1

        return new_field

    def add_parameter(self, name: str, value: float) -> None:
        self.parameters[name] = float(value)

    def set_output_field(self, name: str, output: bool) -> bool:

        f = self.get_field(name)
        if f is None:
            logging.error('setOutputField ERROR: %s not found.', name)
            return False

        f.output_to_file = bool(output)
        return True

    def create_term(self,
                    field_name: str,
                    prefactors: Sequence[SpectralOperator],
                    product: Iterable[str]) -> Optional[Term]:

        """Attach a nonlinear term to a field.

        Parameters
        ----------
        field_name: str
            Name of the field the term contributes to.
        prefactors: Sequence[SpectralOperator]
            Spectral weights of the term.
        product: Iterable[str]
            Names of the fields whose pointwise product forms the term.

        Returns
        -------
        Optional[Term]
            The new term, or None if the target field does not exist or the
            problem is already prepared.
        """

        if self._prepared:
            logging.error('Cannot add term to %s after prepare_problem()', field_name)
            return None

        target = self.field_index(field_name)
        if target is None:
            logging.error('Field %s not found trying to create term', field_name)
            return None

        operands = []
        for operand in product:

            idx = self.field_index(operand)
            if idx is None:

                if self.strict_terms:
                    raise UnknownFieldError(operand, context=f'create term for {field_name}')

                logging.warning('Field %s not found, dropping it from term of %s', operand, field_name)
                continue

            operands.append(idx)

        term = Term(target=target, operands=operands, prefactors=list(prefactors))

        if term.degree > 1:
            for idx in set(operands):
                self.fields[idx].set_dealiasing(term.degree)

        self.fields[target].terms.append(term)

        return term

    def prepare_problem(self) -> None:

        """One-time setup before the step loop.

        Creates the output directory, allocates backend buffers, copies the
        initial conditions to the backend and precomputes the propagators.
        """

        if self.output_dir is not None:
            setup_directory(self.output_dir)

        for f in self.fields:
            f.prepare_device()

            f.copy_host_to_device()
            f.to_comp()
            f.to_real()

            f.precalculate_implicit(self.dt)

        logging.info('Prepared %d fields on %s backend.', len(self.fields), self.backend.name)
        self._prepared = True

    def set_dt(self, dt: float) -> None:

        """Change the time-step, recomputing every propagator.

        Parameters
        ----------
        dt: float
            New length of the time-step.
        """

        if dt <= 0.0:
            raise ValueError(f'Evolver :: dt must be positive, got {dt}')

        self.dt = dt
        self.dtsqrt = float(np.sqrt(dt))

        if self._prepared:
            for f in self.fields:
                f.precalculate_implicit(dt)

    def advance_time(self) -> None:

        """Advance every field by one time-step.

        Static fields are updated before dynamic ones, so dynamic terms see
        the static values of the current step. Static fields depending on
        dynamic ones lag by one step.
        """

        if not self._prepared:
            raise RuntimeError('Evolver::advance_time() called before Evolver::prepare_problem()')

        if self.current_time_step % self.write_every_n_steps == 0:
            self.write_out()

        static = [f for f in self.fields if not f.dynamic]
        dynamic = [f for f in self.fields if f.dynamic]

        for fields in (static, dynamic):

            for f in fields:
                f.update_terms(self.fields)

            for f in fields:
                f.set_rhs(self.fields, self.dt)

        self.current_time += self.dt
        self.current_time_step += 1

        for f in self.fields:
            f.notify(self.current_time_step)

    def run(self, n_steps: int, progress: bool = False) -> None:

        msg = 'Integrating over simulation domain'
        for _ in tqdm.trange(n_steps, desc=msg, disable=not progress):
            self.advance_time()

    def copy_all_data_to_host(self) -> None:
        for f in self.fields:
            f.copy_device_to_host()

    def write_out(self) -> None:

        """Output epoch: synchronise host buffers, check for NaNs, write tables.

        A NaN in the first sample of the first field terminates the process
        with ``NAN_EXIT_CODE``.
        """

        if not self.fields:
            return

        self.copy_all_data_to_host()

        if np.isnan(self.fields[0].real_array.flat[0]):
            logging.error('NaN detected at step %d, exiting!', self.current_time_step)
            sys.exit(NAN_EXIT_CODE)

        if self.output_dir is None:
            return

        for f in self.fields:
            if f.output_to_file:
                write_field_csv(f.real_array, self.output_dir, f.name, self.current_time_step)
