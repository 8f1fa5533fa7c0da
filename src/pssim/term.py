from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence, TYPE_CHECKING

import numpy as np

from .backends.proto import Backend
from .grid import Grid
from .operators import SpectralOperator, evaluate_sum

if TYPE_CHECKING:
    from .field import Field


@dataclass
class Term:

    """Nonlinear contribution to the right-hand side of a field.

    The operands are multiplied pointwise in real space, the product is
    transformed and then weighted by the sum of the prefactors.

    Parameters
    ----------
    target: int
        Index of the field this term contributes to.
    operands: List[int]
        Indices of the fields forming the product, repeats allowed.
    prefactors: List[SpectralOperator]
        Spectral weights applied to the transformed product.
    """

    target: int
    operands: List[int]
    prefactors: List[SpectralOperator]

    prefactor_d: Optional[Any] = field(default=None, repr=False)
    backend: Optional[Backend] = field(default=None, repr=False)

    @property
    def degree(self) -> int:
        return len(self.operands)

    def prepare(self, grid: Grid, backend: Backend, mask: Optional[np.ndarray] = None) -> None:

        """Precompute the summed prefactor for every Fourier mode.

        Parameters
        ----------
        grid: Grid
            Grid geometry.
        backend: Backend
            Backend on which to hold the precomputed values.
        mask: Optional[np.ndarray]
            Dealiasing mask of the target field, if any.
        """

        prefactor = evaluate_sum(self.prefactors, *grid.wavevectors())
        if mask is not None:
            prefactor = prefactor * mask

        self.backend = backend
        self.prefactor_d = backend.asarray(prefactor)

    def evaluate(self, fields: Sequence['Field'], rhs: Any) -> Any:

        """Accumulate this term into the right-hand side of its target.

        Parameters
        ----------
        fields: Sequence[Field]
            Field arena the operand indices refer to.
        rhs: Any
            Fourier-space accumulator of the target field.

        Returns
        -------
        rhs: Any
            Updated accumulator.
        """

        if self.backend is None or self.prefactor_d is None:
            raise RuntimeError('Term::evaluate() called before Term::prepare()')

        shape = fields[self.target].grid.shape

        product = None
        for idx in self.operands:
            buffer = fields[idx].product_buffer()
            product = self.backend.copy(buffer) if product is None else product * buffer

        # a term without operands is a uniform source
        if product is None:
            product = self.backend.asarray(np.ones(shape), complex_valued=False)

        product_hat = self.backend.phys_to_fourier(product)

        return self.backend.multiply_add(rhs, self.prefactor_d, product_hat)
