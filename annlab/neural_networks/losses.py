"""
Output layers: turn the final network output and the targets into a scalar
objective and the error that starts the backward pass.
"""
import numpy as np

from ..exceptions import DimensionMismatchError


class OutputLayer:
    """Base class for output layers (loss functions)."""

    def forward(self, prediction, target):
        """Return the scalar loss of ``prediction`` against ``target``."""
        raise NotImplementedError

    def backward(self, prediction, target):
        """Return d(loss)/d(prediction), shaped like ``prediction``."""
        raise NotImplementedError

    @staticmethod
    def _check_shapes(prediction, target):
        if prediction.shape != target.shape:
            raise DimensionMismatchError(
                f"Prediction shape {prediction.shape} does not match "
                f"target shape {target.shape}")

    def __repr__(self):
        return f"{self.__class__.__name__}()"


class MeanSquaredError(OutputLayer):
    """
    Squared error summed over output rows and averaged over the batch.

    forward:  sum((prediction - target) ** 2) / batch_size
    backward: 2 * (prediction - target) / batch_size
    """

    def forward(self, prediction, target):
        self._check_shapes(prediction, target)
        return float(np.sum((prediction - target) ** 2) / target.shape[1])

    def backward(self, prediction, target):
        self._check_shapes(prediction, target)
        return 2 * (prediction - target) / target.shape[1]


class BinaryCrossEntropyError(OutputLayer):
    """
    Binary cross entropy for outputs in (0, 1), e.g. after a SigmoidLayer.
    """

    def __init__(self, eps=1e-10):
        self.eps = eps

    def forward(self, prediction, target):
        self._check_shapes(prediction, target)
        p = np.clip(prediction, self.eps, 1 - self.eps)
        return float(-np.sum(target * np.log(p) + (1 - target) * np.log(1 - p))
                     / target.shape[1])

    def backward(self, prediction, target):
        self._check_shapes(prediction, target)
        p = np.clip(prediction, self.eps, 1 - self.eps)
        return (p - target) / (p * (1 - p)) / target.shape[1]

    def __repr__(self):
        return f"BinaryCrossEntropyError(eps={self.eps})"
