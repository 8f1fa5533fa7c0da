from typing import Optional, Tuple

import numpy as np
import opt_einsum as oe


class NumpyBackend:

    name = 'numpy'
    is_device = False

    def __init__(self, seed: Optional[int] = None, dtype: type = np.complex128) -> None:

        """Host-sequential compute backend.

        Parameters
        ----------
        seed: Optional[int]
            Seed for the Mersenne-Twister noise engine.
        dtype: type
            Complex dtype of Fourier buffers.
        """

        self.dtype = np.dtype(dtype)
        self.real_dtype = np.finfo(self.dtype).dtype

        self.rng = np.random.Generator(np.random.MT19937(seed))

    def asarray(self, x: np.ndarray, complex_valued: bool = True) -> np.ndarray:

        # always copy so that device buffers never alias host buffers
        dtype = self.dtype if complex_valued else self.real_dtype
        return np.array(x, dtype=dtype, copy=True)

    def to_numpy(self, t: np.ndarray) -> np.ndarray:
        return np.array(t, copy=True)

    def zeros(self, shape: Tuple[int, ...], complex_valued: bool = True) -> np.ndarray:
        return np.zeros(shape, dtype=self.dtype if complex_valued else self.real_dtype)

    def copy(self, t: np.ndarray) -> np.ndarray:
        return t.copy()

    def phys_to_fourier(self, t: np.ndarray) -> np.ndarray:
        return np.fft.fftn(t).astype(self.dtype, copy=False)

    def fourier_to_phys(self, t_hat: np.ndarray) -> np.ndarray:
        return np.fft.ifftn(t_hat).real.astype(self.real_dtype, copy=False)

    def random_normal(self, shape: Tuple[int, ...]) -> np.ndarray:
        return self.rng.standard_normal(size=shape).astype(self.real_dtype, copy=False)

    def multiply_add(self, acc: np.ndarray, a: np.ndarray, b: np.ndarray) -> np.ndarray:
        acc += oe.contract('..., ... -> ...', a, b)
        return acc

    def empty_cache(self) -> None:
        pass
