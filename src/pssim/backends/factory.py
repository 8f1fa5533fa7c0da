from typing import Optional, Union

import torch

from ..utils.enums import eBackend
from ..utils.exceptions import BackendError
from .numpy import NumpyBackend
from .proto import Backend
from .torch import TorchBackend


def get_backend(e_backend: eBackend,
                device: Optional[Union[torch.device, str]] = None,
                seed: Optional[int] = None) -> Backend:

    """Compute Backend Factory.

    Parameters
    ----------
    e_backend: eBackend
        Type of backend to return.
    device: Optional[Union[torch.device, str]]
        Device for the torch backend, defaults to CUDA when available.
    seed: Optional[int]
        Seed for the backend random generator.

    Returns
    -------
    Backend
        Compute backend.
    """

    if e_backend == eBackend.numpy:

        if device is not None and torch.device(device).type != 'cpu':
            raise BackendError(f'numpy backend cannot run on device {device}')

        return NumpyBackend(seed=seed)

    if e_backend == eBackend.torch:

        if device is None:
            device = torch.device('cuda' if torch.cuda.is_available() else 'cpu')

        return TorchBackend(device=device, seed=seed)

    raise BackendError('Incompatible backend type...')
