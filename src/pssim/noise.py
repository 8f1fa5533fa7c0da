from typing import Any, Tuple

from .backends.proto import Backend


class NoiseGenerator:

    def __init__(self, backend: Backend, shape: Tuple[int, ...]) -> None:

        """Gaussian white-noise source.

        Every call yields a fresh, unit-variance field that is independent
        across grid points and across calls. Amplitude and time-step scaling
        are left to the integrator.

        Parameters
        ----------
        backend: Backend
            Backend whose random generator draws the samples.
        shape: Tuple[int, ...]
            Shape of the real-space grid.
        """

        self.backend = backend
        self.shape = shape

    def sample(self) -> Any:
        return self.backend.random_normal(self.shape)

    def sample_fourier(self) -> Tuple[Any, Any]:

        """Draw a real-space sample and its Fourier transform.

        Returns
        -------
        noise: Any
            Real-space sample.
        noise_hat: Any
            Fourier transform of the sample.
        """

        noise = self.sample()
        return noise, self.backend.phys_to_fourier(noise)
