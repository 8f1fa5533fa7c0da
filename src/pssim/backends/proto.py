from typing import Protocol, Tuple, TypeVar

import numpy as np


T = TypeVar('T')


class Backend(Protocol[T]):

    name: str
    is_device: bool

    def asarray(self, x: np.ndarray, complex_valued: bool = True) -> T:
        ...

    def to_numpy(self, t: T) -> np.ndarray:
        ...

    def zeros(self, shape: Tuple[int, ...], complex_valued: bool = True) -> T:
        ...

    def copy(self, t: T) -> T:
        ...

    def phys_to_fourier(self, t: T) -> T:
        ...

    def fourier_to_phys(self, t_hat: T) -> T:
        ...

    def random_normal(self, shape: Tuple[int, ...]) -> T:
        ...

    def multiply_add(self, acc: T, a: T, b: T) -> T:
        ...

    def empty_cache(self) -> None:
        ...
