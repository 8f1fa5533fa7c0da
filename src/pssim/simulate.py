from pathlib import Path
from typing import Any, Dict

import numpy as np
from absl import app, flags
from ml_collections import config_flags

from pssim.backends.factory import get_backend
from pssim.io import write_h5
from pssim.model import build_evolver
from pssim.utils.enums import eBackend


FLAGS = flags.FLAGS

_CONFIG = config_flags.DEFINE_config_file('config')

_OUTPUT_DIR = flags.DEFINE_string(
    'output_dir',
    'data',
    'Directory to write output tables to.'
)

_H5_PATH = flags.DEFINE_string(
    'h5_path',
    None,
    'Optional .h5 file to store the final state of every field.'
)

_BACKEND = flags.DEFINE_enum_class(
    'backend',
    None,
    eBackend,
    'Compute backend, overrides the config.'
)

_DEVICE = flags.DEFINE_string(
    'device',
    None,
    'Device for the torch backend, e.g. cuda:0.'
)

_SEED = flags.DEFINE_integer(
    'seed',
    None,
    'Random seed, overrides the config.'
)

_N_STEPS = flags.DEFINE_integer(
    'n_steps',
    None,
    'Number of steps to run, overrides the config.'
)

flags.mark_flags_as_required(['config'])


def override_config() -> None:

    """Apply command-line overrides to the model config."""

    config = FLAGS.config

    if FLAGS.backend is not None:
        config.backend = FLAGS.backend

    if FLAGS.seed is not None:
        config.seed = FLAGS.seed

    if FLAGS.n_steps is not None:
        config.n_steps = FLAGS.n_steps


def main(_) -> None:

    """Run a Pseudo-Spectral Simulation."""

    print('01 :: Initialising Evolver.')

    override_config()
    config = FLAGS.config

    evolver_kwargs: Dict[str, Any] = {'output_dir': Path(FLAGS.output_dir)}
    if FLAGS.device is not None:

        e_backend = config.backend if isinstance(config.backend, eBackend) else eBackend(config.backend)
        evolver_kwargs['backend'] = get_backend(e_backend, device=FLAGS.device, seed=config.get('seed', None))

    with build_evolver(config, **evolver_kwargs) as evolver:

        evolver.prepare_problem()

        evolver.run(config.n_steps, progress=True)

        # final epoch, written regardless of cadence
        evolver.write_out()

        if FLAGS.h5_path:

            print('02 :: Writing results to file.')

            data_dict = {
                'time': evolver.current_time,
                'step': evolver.current_time_step,
                'dt': evolver.dt,
                'shape': np.asarray(evolver.grid.shape),
                'spacing': np.asarray([evolver.grid.dx, evolver.grid.dy, evolver.grid.dz]),
            }

            for f in evolver.fields:
                data_dict[f'{f.name}_real'] = f.real_array
                data_dict[f'{f.name}_hat'] = f.comp_array

            write_h5(FLAGS.h5_path, data_dict)

    print('03 :: Simulation Done.')


if __name__ == '__main__':
    app.run(main)
