from typing import Dict, List, Protocol, Tuple

import numpy as np
import torch

from .utils.types import TypeTensor


class FieldObserver(Protocol):

    def observe(self, name: str, buffer: TypeTensor, shape: Tuple[int, ...], step: int) -> None:

        """Inspect a field buffer after an update.

        Parameters
        ----------
        name: str
            Name of the observed field.
        buffer: TypeTensor
            Current backend buffer, modifications are seen by the field.
        shape: Tuple[int, ...]
            Grid dimensions.
        step: int
            Index of the step that produced the buffer.
        """


class RecordingObserver:

    def __init__(self, every: int = 1) -> None:

        """Observer keeping host copies of a field at a fixed cadence.

        Parameters
        ----------
        every: int
            Record only steps that are a multiple of this value.
        """

        self.every = every
        self.records: Dict[str, List[Tuple[int, np.ndarray]]] = {}

    def observe(self, name: str, buffer: TypeTensor, shape: Tuple[int, ...], step: int) -> None:

        if step % self.every != 0:
            return

        if isinstance(buffer, torch.Tensor):
            host = buffer.detach().cpu().numpy().copy()
        else:
            host = np.array(buffer, copy=True)

        self.records.setdefault(name, []).append((step, host.reshape(shape)))
