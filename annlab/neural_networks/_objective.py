"""
Optimizer-facing adapter: a network plus the training set it is fitted to.
"""
import numpy as np
from sklearn.utils import shuffle as shuffle_arrays

from ..common.utils import as_matrix, column_slice
from ..exceptions import DimensionMismatchError


class NetworkObjective:
    """
    Differentiable objective over a stored dataset, backed by an FFN.

    The ``parameters`` argument of every method is never read: the network's
    layers are views into its parameter buffer, so in-place updates made by an
    optimizer are already visible. Optimizers are expected to pass the
    network's own ``parameters`` array.

    Slice methods operate on the contiguous columns
    ``[begin, begin + batch_size)`` of ``predictors`` / ``responses``. With
    ``begin=None`` they cover the whole dataset one example at a time.
    """

    def __init__(self, network, predictors, responses):
        self.network = network
        self.predictors = as_matrix(predictors, "predictors")
        self.responses = as_matrix(responses, "responses")
        if self.predictors.shape[1] != self.responses.shape[1]:
            raise DimensionMismatchError(
                f"predictors have {self.predictors.shape[1]} columns but "
                f"responses have {self.responses.shape[1]}")

    def num_functions(self):
        """Number of separable terms, i.e. stored examples."""
        return self.predictors.shape[1]

    def shuffle(self, random_state=None):
        """Permute the stored examples, keeping predictors and responses paired."""
        predictors, responses = shuffle_arrays(
            self.predictors.T, self.responses.T, random_state=random_state)
        self.predictors = np.ascontiguousarray(predictors.T)
        self.responses = np.ascontiguousarray(responses.T)

    def _batch(self, begin, batch_size):
        batch_size = 1 if batch_size is None else batch_size
        return (column_slice(self.predictors, begin, batch_size),
                column_slice(self.responses, begin, batch_size))

    def evaluate(self, parameters, begin=None, batch_size=None):
        """Objective over one slice, or summed over every example."""
        if begin is None:
            return sum(self.evaluate(parameters, i, 1)
                       for i in range(self.num_functions()))

        predictors, responses = self._batch(begin, batch_size)
        return self.network.evaluate_dataset(predictors, responses)

    def evaluate_with_gradient(self, parameters, gradient, begin=None, batch_size=None):
        """
        Objective and parameter gradient over one slice, or summed per example.

        Args:
            parameters (ndarray): The network parameters (not read)
            gradient (ndarray): Output buffer shaped like ``parameters``
            begin (int, optional): First column of the slice
            batch_size (int, optional): Number of columns in the slice

        Returns:
            float: The objective
        """
        if begin is None:
            res = self.evaluate_with_gradient(parameters, gradient, 0, 1)
            tmp_gradient = np.empty_like(gradient)
            for i in range(1, self.num_functions()):
                res += self.evaluate_with_gradient(parameters, tmp_gradient, i, 1)
                gradient += tmp_gradient
            return res

        predictors, responses = self._batch(begin, batch_size)
        self.network.forward(predictors)
        return self.network.backward(predictors, responses, gradient)

    def gradient(self, parameters, gradient, begin=None, batch_size=None):
        """Same as ``evaluate_with_gradient`` without the objective."""
        self.evaluate_with_gradient(parameters, gradient, begin, batch_size)
