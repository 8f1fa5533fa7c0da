import functools as ft
from typing import Any, Callable, TypeVar

import numpy as np
import torch

from .exceptions import DimensionError


F = TypeVar('F', bound=Callable[..., Any])


class ValidateDimension:

    def __init__(self, ndim: int) -> None:

        """Decorator to check the number of dimensions of the first array argument.

        Parameters
        ----------
        ndim: int
            Required number of dimensions.
        """

        self.ndim = ndim

    def __call__(self, fn: F) -> F:

        @ft.wraps(fn)
        def _fn(*args: Any, **kwargs: Any) -> Any:

            arr = next(filter(lambda x: isinstance(x, (np.ndarray, torch.Tensor)), (*args, *kwargs.values())), None)

            if arr is not None and arr.ndim != self.ndim:
                raise DimensionError(msg=f'{fn.__qualname__}() :: expected {self.ndim} dimensions, got {arr.ndim}.')

            return fn(*args, **kwargs)

        return _fn                                                                                        # type: ignore
