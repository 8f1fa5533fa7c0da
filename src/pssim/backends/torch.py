from typing import Optional, Tuple, Union

import numpy as np
import opt_einsum as oe
import torch
from absl import logging


class TorchBackend:

    name = 'torch'

    def __init__(self,
                 device: Union[torch.device, str] = torch.device('cpu'),
                 seed: Optional[int] = None,
                 dtype: torch.dtype = torch.cfloat) -> None:

        """Device-parallel compute backend.

        Parameters
        ----------
        device: Union[torch.device, str]
            Device on which to hold buffers and run kernels.
        seed: Optional[int]
            Seed for the device-side random generator.
        dtype: torch.dtype
            Complex dtype of Fourier buffers.
        """

        device = torch.device(device)
        if device.type == 'cuda' and not torch.cuda.is_available():
            logging.warning('CUDA is not available, ignoring GPU settings and running on CPU.')
            device = torch.device('cpu')

        self.device = device
        self.is_device = device.type != 'cpu'

        self.dtype = dtype
        self.real_dtype = torch.float64 if dtype == torch.cdouble else torch.float32

        self.generator = torch.Generator(device=self.device)
        if seed is None:
            self.generator.seed()
        else:
            self.generator.manual_seed(seed)

    def asarray(self, x: np.ndarray, complex_valued: bool = True) -> torch.Tensor:
        dtype = self.dtype if complex_valued else self.real_dtype
        return torch.as_tensor(np.asarray(x), device=self.device).to(dtype).clone()

    def to_numpy(self, t: torch.Tensor) -> np.ndarray:

        # blocking copy, synchronises the device stream
        return t.detach().cpu().numpy().copy()

    def zeros(self, shape: Tuple[int, ...], complex_valued: bool = True) -> torch.Tensor:
        dtype = self.dtype if complex_valued else self.real_dtype
        return torch.zeros(shape, dtype=dtype, device=self.device)

    def copy(self, t: torch.Tensor) -> torch.Tensor:
        return t.clone()

    def phys_to_fourier(self, t: torch.Tensor) -> torch.Tensor:
        return torch.fft.fftn(t.to(self.dtype), dim=(0, 1, 2))

    def fourier_to_phys(self, t_hat: torch.Tensor) -> torch.Tensor:
        return torch.fft.ifftn(t_hat, dim=(0, 1, 2)).real.to(self.real_dtype)

    def random_normal(self, shape: Tuple[int, ...]) -> torch.Tensor:
        return torch.randn(shape, generator=self.generator, dtype=self.real_dtype, device=self.device)

    def multiply_add(self, acc: torch.Tensor, a: torch.Tensor, b: torch.Tensor) -> torch.Tensor:
        acc += oe.contract('..., ... -> ...', a, b)
        return acc

    def empty_cache(self) -> None:

        """Return cached device memory of dropped buffers to the allocator."""

        if self.device.type == 'cuda':
            torch.cuda.empty_cache()
