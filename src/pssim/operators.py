from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterable, Mapping

import numpy as np


@dataclass(frozen=True)
class SpectralOperator:

    """Monomial coefficient of the Fourier wavevector.

    Represents ``coefficient * (i qx)^iqx * (i qy)^iqy * (|q|^2)^q2n * (1/|q|)^invq``.
    A zero exponent means the factor is absent. Sums of operators describe
    general linear operators or multi-part coefficients.

    Parameters
    ----------
    coefficient: float
        Scalar prefactor.
    iqx: int
        Exponent of (i qx).
    iqy: int
        Exponent of (i qy).
    q2n: int
        Exponent of |q|^2.
    invq: int
        Exponent of 1/|q|.
    """

    coefficient: float = 1.0
    iqx: int = 0
    iqy: int = 0
    q2n: int = 0
    invq: int = 0

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> 'SpectralOperator':
        return cls(
            coefficient=float(d.get('coefficient', 1.0)),
            iqx=int(d.get('iqx', 0)),
            iqy=int(d.get('iqy', 0)),
            q2n=int(d.get('q2n', 0)),
            invq=int(d.get('invq', 0)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @property
    def singular_at_origin(self) -> bool:
        return self.invq > 0 or self.q2n < 0

    def evaluate(self, qx: np.ndarray, qy: np.ndarray, qz: np.ndarray) -> np.ndarray:

        """Evaluate the operator at every given wavevector.

        Parameters
        ----------
        qx, qy, qz: np.ndarray
            Wavevector components, broadcastable against each other.

        Returns
        -------
        np.ndarray
            Complex multiplier per wavevector. Operators dividing by |q| are
            zero at the origin.
        """

        qx, qy, qz = np.broadcast_arrays(qx, qy, qz)

        q2 = qx ** 2 + qy ** 2 + qz ** 2
        origin = q2 == 0.0

        out = np.full(q2.shape, self.coefficient, dtype=np.complex128)

        if self.iqx != 0:
            out *= (1j * qx) ** self.iqx

        if self.iqy != 0:
            out *= (1j * qy) ** self.iqy

        # only factors dividing by |q| need a placeholder at the origin
        if self.q2n != 0:
            base = np.where(origin, 1.0, q2) if self.q2n < 0 else q2
            out *= base ** float(self.q2n)

        if self.invq != 0:
            modulus = np.sqrt(q2)
            base = np.where(origin, 1.0, modulus) if self.invq > 0 else modulus
            out *= base ** float(-self.invq)

        if self.singular_at_origin:
            out[origin] = 0.0

        return out

    def __str__(self) -> str:

        s = f'({self.coefficient})'
        if self.iqx != 0:
            s += f'(iqx)^({self.iqx})'
        if self.iqy != 0:
            s += f'(iqy)^({self.iqy})'
        if self.q2n != 0:
            s += f'(q^2)^({self.q2n})'
        if self.invq != 0:
            s += f'(1/|q|)^({self.invq})'

        return s


def evaluate_sum(operators: Iterable[SpectralOperator],
                 qx: np.ndarray,
                 qy: np.ndarray,
                 qz: np.ndarray) -> np.ndarray:

    """Evaluate a sum of spectral operators.

    Parameters
    ----------
    operators: Iterable[SpectralOperator]
        Operators to sum.
    qx, qy, qz: np.ndarray
        Wavevector components.

    Returns
    -------
    total: np.ndarray
        Complex sum of all operators, zero for an empty sum.
    """

    total = np.zeros(np.broadcast_shapes(np.shape(qx), np.shape(qy), np.shape(qz)), dtype=np.complex128)
    for op in operators:
        total += op.evaluate(qx, qy, qz)

    return total
