from typing import Any, Mapping, Optional

import numpy as np
from absl import logging

from .evolver import Evolver
from .grid import Grid
from .operators import SpectralOperator
from .utils.enums import eBackend, eInitial, eIntegrator
from .utils.types import ModelConfig


def _as_enum(enum_type: Any, value: Any) -> Any:
    return value if isinstance(value, enum_type) else enum_type(value)


def build_grid(config: ModelConfig) -> Grid:

    grid = config.grid
    return Grid(
        sx=int(grid.get('sx', 1)),
        sy=int(grid.get('sy', 1)),
        sz=int(grid.get('sz', 1)),
        dx=float(grid.get('dx', 1.0)),
        dy=float(grid.get('dy', 1.0)),
        dz=float(grid.get('dz', 1.0)),
    )


def initial_values(initial: Optional[Mapping[str, Any]], shape: tuple, rng: np.random.Generator) -> np.ndarray:

    """Generate initial real-space values for a field.

    Parameters
    ----------
    initial: Optional[Mapping[str, Any]]
        Initial condition description, zeros when None.
    shape: tuple
        Grid shape.
    rng: np.random.Generator
        Generator for random initial conditions.

    Returns
    -------
    np.ndarray
        Initial values.
    """

    if initial is None:
        return np.zeros(shape)

    match _as_enum(eInitial, initial.get('kind', 'constant')):

        case eInitial.constant:
            return np.full(shape, float(initial.get('value', 0.0)))

        case eInitial.random:
            return float(initial.get('mean', 0.0)) + float(initial.get('std', 1.0)) * rng.standard_normal(shape)

    raise ValueError(f'Invalid initial condition: {initial}')


def build_evolver(config: ModelConfig, **kwargs: Any) -> Evolver:

    """Create an evolver from a model configuration.

    Registers parameters, fields and terms in the same way an equation parser
    would, then sets the initial conditions on the host.

    Parameters
    ----------
    config: ModelConfig
        Model configuration, see ``pssim/configs/models.py``.
    **kwargs: Any
        Overrides forwarded to the Evolver constructor.

    Returns
    -------
    evolver: Evolver
        Configured, not yet prepared, evolver.
    """

    grid = build_grid(config)
    seed = config.get('seed', None)

    evolver_kwargs = {
        'dt': float(config.dt),
        'write_every_n_steps': int(config.get('write_every_n_steps', 100)),
        'backend': _as_enum(eBackend, config.get('backend', 'numpy')),
        'seed': seed,
        'strict_terms': bool(config.get('strict_terms', False)),
    }
    evolver_kwargs.update(kwargs)

    evolver = Evolver(grid, **evolver_kwargs)

    parameters = config.get('parameters', None)
    if parameters is not None:
        for name, value in parameters.items():
            evolver.add_parameter(name, value)

    for spec in config.fields:

        new_field = evolver.create_field(
            spec['name'],
            dynamic=bool(spec.get('dynamic', True)),
            integrator=_as_enum(eIntegrator, spec.get('integrator', 'euler')),
        )

        if new_field is None:
            continue

        for op in spec.get('implicit', None) or []:
            new_field.add_implicit(SpectralOperator.from_dict(op))

        if spec.get('noise', None) is not None:
            new_field.set_noise(SpectralOperator.from_dict(spec['noise']))

        if spec.get('dealias', None) is not None:
            new_field.set_dealiasing(int(spec['dealias']))

        new_field.output_to_file = bool(spec.get('output', True))

    for spec in config.get('terms', None) or []:

        evolver.create_term(
            spec['field'],
            [SpectralOperator.from_dict(op) for op in spec['prefactors']],
            list(spec.get('product', [])),
        )

    rng = np.random.default_rng(seed)
    for spec in config.fields:

        f = evolver.get_field(spec['name'])
        if f is not None:
            f.set_real(initial_values(spec.get('initial', None), grid.shape, rng))

    logging.info('Built model with fields: %s', ', '.join(evolver.fields_map))

    return evolver
