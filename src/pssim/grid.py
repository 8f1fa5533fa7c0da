from dataclasses import dataclass
from typing import Tuple

import numpy as np


@dataclass(frozen=True)
class Grid:

    """Periodic grid geometry shared by every field of an evolver.

    Parameters
    ----------
    sx, sy, sz: int
        Number of grid points along each axis.
    dx, dy, dz: float
        Real-space spacing along each axis.
    """

    sx: int
    sy: int = 1
    sz: int = 1

    dx: float = 1.0
    dy: float = 1.0
    dz: float = 1.0

    def __post_init__(self) -> None:

        if min(self.sx, self.sy, self.sz) < 1:
            raise ValueError(f'Grid :: sizes must be >= 1, got {self.shape}')

        if min(self.dx, self.dy, self.dz) <= 0.0:
            raise ValueError(f'Grid :: spacings must be positive, got {(self.dx, self.dy, self.dz)}')

    @property
    def shape(self) -> Tuple[int, int, int]:
        return self.sx, self.sy, self.sz

    @property
    def size(self) -> int:
        return self.sx * self.sy * self.sz

    @property
    def ndim(self) -> int:
        return max(1, sum(n > 1 for n in self.shape))

    @property
    def stepqx(self) -> float:
        return 2.0 * np.pi / (self.sx * self.dx)

    @property
    def stepqy(self) -> float:
        return 2.0 * np.pi / (self.sy * self.dy)

    @property
    def stepqz(self) -> float:
        return 2.0 * np.pi / (self.sz * self.dz)

    def wavevectors(self) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:

        """Wavevector components for every Fourier mode.

        Modes follow the standard FFT ordering, so the Nyquist mode of an
        even-sized axis carries a negative wavenumber.

        Returns
        -------
        qx, qy, qz: np.ndarray
            Wavevector components, each of shape (sx, sy, sz).
        """

        kx = 2.0 * np.pi * np.fft.fftfreq(self.sx, d=self.dx)
        ky = 2.0 * np.pi * np.fft.fftfreq(self.sy, d=self.dy)
        kz = 2.0 * np.pi * np.fft.fftfreq(self.sz, d=self.dz)

        qx, qy, qz = np.meshgrid(kx, ky, kz, indexing='ij')

        return qx, qy, qz

    def dealias_mask(self, order: int) -> np.ndarray:

        """Truncation mask for a nonlinearity of the given order.

        A mode survives if, along every axis, its integer index satisfies
        ``|n| <= N / (order + 1)``, i.e. it lies within ``2 / (order + 1)`` of
        the Nyquist limit. For ``order = 2`` this is the usual 2/3 rule.

        Parameters
        ----------
        order: int
            Order of the highest nonlinearity the field takes part in.

        Returns
        -------
        mask: np.ndarray
            Boolean mask of shape (sx, sy, sz).
        """

        if order <= 1:
            return np.ones(self.shape, dtype=bool)

        masks = []
        for n in self.shape:
            idx = np.abs(np.fft.fftfreq(n, d=1.0 / n))
            masks.append(idx <= n / (order + 1))

        mx, my, mz = np.meshgrid(*masks, indexing='ij')

        return mx & my & mz
