from typing import Any

import numpy as np
import torch


TypeTensor = np.ndarray | torch.Tensor

ModelConfig = Any
