from pathlib import Path
from typing import Any, Dict, Union

import einops
import h5py
import numpy as np
from absl import logging

from .utils.checks import ValidateDimension


def setup_directory(path: Union[str, Path]) -> bool:

    """Ensure the output directory exists.

    An existing directory counts as success. A colliding non-directory file is
    reported, and later writes are left to fail on their own.

    Parameters
    ----------
    path: Union[str, Path]
        Directory to create.

    Returns
    -------
    bool
        Whether the directory is usable.
    """

    path = Path(path)

    try:
        path.mkdir(parents=True, exist_ok=True)
    except (FileExistsError, NotADirectoryError):
        logging.error('ERROR CREATING DATA DIRECTORY, is there a file called %s?', path)
        return False

    return True


@ValidateDimension(ndim=3)
def write_field_csv(real: np.ndarray, directory: Union[str, Path], name: str, step: int) -> Path:

    """Write one output table for a field.

    The file ``<name>.csv.<step>`` holds a header ``x, y, <name>`` and one line
    ``i, j, value`` per grid point, ``i`` running fastest. Grids with more than
    one z-plane get an extra ``z`` column.

    Parameters
    ----------
    real: np.ndarray
        Real-space values of shape (sx, sy, sz).
    directory: Union[str, Path]
        Output directory.
    name: str
        Name of the field.
    step: int
        Index of the current step.

    Returns
    -------
    file_path: Path
        Path of the written file.
    """

    file_path = Path(directory) / f'{name}.csv.{step}'
    sx, sy, sz = real.shape

    # one row per point, x fastest
    rows = einops.rearrange(real, 'x y z -> (z y x)')
    ii, jj, kk = np.meshgrid(np.arange(sx), np.arange(sy), np.arange(sz), indexing='ij')
    ii = einops.rearrange(ii, 'x y z -> (z y x)')
    jj = einops.rearrange(jj, 'x y z -> (z y x)')
    kk = einops.rearrange(kk, 'x y z -> (z y x)')

    with open(file_path, 'w+', encoding='utf8') as f_out:

        if sz == 1:
            f_out.write(f'x, y, {name}\n')
            for i, j, v in zip(ii, jj, rows):
                f_out.write(f'{i}, {j}, {v:f}\n')
        else:
            f_out.write(f'x, y, z, {name}\n')
            for i, j, k, v in zip(ii, jj, kk, rows):
                f_out.write(f'{i}, {j}, {k}, {v:f}\n')

    return file_path


def write_h5(path: Union[str, Path], data: Dict[str, Any]) -> None:

    """Writes results dictionary to .h5 file.

    Parameters
    ----------
    path: Union[str, Path]
        Path of the .h5 file.
    data: Dict[str, Any]
        Data to write to file.
    """

    path = Path(path)
    if not path.suffix == '.h5':
        raise ValueError('write_h5() :: Must pass .h5 path')

    path.parent.mkdir(parents=True, exist_ok=True)

    with h5py.File(path, 'w') as hf:

        for k, v in data.items():
            hf.create_dataset(k, data=v)
