"""
Feed-forward neural network container.

The container owns an ordered sequence of layers and one flat parameter
buffer. Every layer's weights are numpy views into that buffer, so an
optimizer that updates the buffer in place updates the layers too.
"""
import copy
import enum
import gzip
import pickle
import warnings

import numpy as np

from ..base import BaseEstimator
from ..common.utils import as_matrix
from ..exceptions import (
    ConfigurationError,
    ConsistencyFault,
    DimensionMismatchError,
    MissingForwardPassError,
)
from ._objective import NetworkObjective
from ._sequential import Sequential
from .initializers import GlorotInitialization, NetworkInitialization
from .losses import MeanSquaredError
from .optimizers import _SeparableOptimizer, get_optimizer


class NetworkState(enum.Flag):
    """
    Readiness of a network.

    UNCONFIGURED -> DIMENSIONS_RESOLVED -> READY is the normal path. Adding a
    layer or restoring a saved network goes back to UNCONFIGURED, changing
    the input dimensions drops DIMENSIONS_RESOLVED, and (re)allocating the
    parameter buffer drops WEIGHTS_BOUND.
    """
    UNCONFIGURED = 0
    DIMENSIONS_RESOLVED = 1
    WEIGHTS_BOUND = 2
    READY = DIMENSIONS_RESOLVED | WEIGHTS_BOUND


# pylint: disable=too-many-instance-attributes, too-many-public-methods
class FFN(BaseEstimator):
    """
    Feed-forward network trained through a differentiable-objective contract.

    Data is laid out one column per example: ``predictors`` are
    ``(features, n_samples)`` and ``responses`` are ``(outputs, n_samples)``.

    Shapes and weights are set up lazily. Every public numeric operation goes
    through ``check_network``, which resolves the input dimensions, allocates
    and initializes the parameter buffer and binds the layer views as needed.

    An FFN instance is not thread-safe; driving one instance from several
    threads at once is unsupported.

    Example:
        model = FFN()
        model.add(Linear(3))
        model.add(ReLULayer())
        model.add(Linear(1))
        model.train(X, y, SGDOptimizer(lr=0.01))
        y_pred = model.predict(X)
    """

    _param_names = ("output_layer", "initialize_rule", "verbose")

    def __init__(self, output_layer=None, initialize_rule=None, verbose=False):
        """
        Args:
            output_layer: Loss applied to the network output (default: MSE)
            initialize_rule: Rule filling fresh parameters (default: Glorot)
            verbose (bool): Whether to print progress messages
        """
        self.output_layer = output_layer if output_layer is not None else MeanSquaredError()
        self.initialize_rule = (initialize_rule if initialize_rule is not None
                                else GlorotInitialization())
        self.verbose = verbose

        self.network = Sequential()
        self.parameters = None
        self.training = False
        self.state = NetworkState.UNCONFIGURED
        self._input_dimensions = ()
        self._weight_index = []
        self._objective = None

        # Caches of the last passes
        self._network_output = None
        self._network_delta = None
        self._error = None

    # ------------------------------------------------------
    # Structure and state
    # ------------------------------------------------------
    def add(self, layer):
        """Append a layer to the network."""
        self.network.add(layer)
        self.state = NetworkState.UNCONFIGURED

    @property
    def layers(self):
        return self.network.layers

    def __len__(self):
        return len(self.network)

    @property
    def input_dimensions(self):
        """Shape of one input example; the product is the flat input size."""
        return self._input_dimensions

    @input_dimensions.setter
    def input_dimensions(self, dimensions):
        dimensions = tuple(int(d) for d in dimensions)
        if any(d < 1 for d in dimensions):
            raise ValueError(f"Input dimensions must be positive, got {dimensions}")
        self._input_dimensions = dimensions
        self.state &= ~NetworkState.DIMENSIONS_RESOLVED

    @property
    def dimensions_resolved(self):
        return bool(self.state & NetworkState.DIMENSIONS_RESOLVED)

    @property
    def weights_bound(self):
        return bool(self.state & NetworkState.WEIGHTS_BOUND)

    @property
    def weight_index(self):
        """``(offset, length)`` of every layer's slice of ``parameters``."""
        return list(self._weight_index)

    @property
    def predictors(self):
        return self._objective.predictors if self._objective is not None else None

    @property
    def responses(self):
        return self._objective.responses if self._objective is not None else None

    def weight_size(self):
        """Total number of trainable weights (resolves dimensions first)."""
        if not self.dimensions_resolved:
            self.update_dimensions("FFN.weight_size()")
        return self.network.weight_size()

    def set_network_mode(self, training):
        """Put every layer into training (True) or inference (False) mode."""
        self.training = bool(training)
        self.network.training = self.training

    def reset(self, input_dimensionality=0):
        """
        Drop the current weights and initialize new ones.

        Args:
            input_dimensionality (int): Flat input size; 0 uses the product of
                ``input_dimensions``
        """
        self.parameters = None
        self.state &= ~(NetworkState.DIMENSIONS_RESOLVED | NetworkState.WEIGHTS_BOUND)
        if input_dimensionality == 0 and self._input_dimensions:
            input_dimensionality = int(np.prod(self._input_dimensions, dtype=np.int64))
        self.check_network("FFN.reset()", input_dimensionality, True, False)

    # ------------------------------------------------------
    # Lifecycle: shapes, weights, aliases
    # ------------------------------------------------------
    def check_network(self, function_name, input_dimensionality, set_mode=False,
                      training=False):
        """
        Make the network usable for an input of ``input_dimensionality`` rows.

        Cheap when nothing changed: only state flags and sizes are compared.
        """
        # If the network is empty, we can't do anything.
        if len(self.network) == 0:
            raise ConfigurationError(f"{function_name}: cannot use network with no layers!")

        if not self.dimensions_resolved:
            self.update_dimensions(function_name, input_dimensionality)
        elif input_dimensionality != 0:
            total_input_size = int(np.prod(self._input_dimensions, dtype=np.int64))
            if input_dimensionality != total_input_size:
                raise DimensionMismatchError(
                    f"{function_name}: input size ({input_dimensionality}) does not "
                    f"match expected size ({total_input_size}) set with "
                    "input_dimensions!")

        # The buffer may be missing, or the wrong size after the layers or the
        # input dimensions changed.
        if self.parameters is None or self.parameters.size != self.network.weight_size():
            self.initialize_weights()

        if not self.weights_bound:
            self.set_layer_memory()

        if set_mode:
            self.set_network_mode(training)

    def update_dimensions(self, function_name, input_dimensionality=0):
        """
        Propagate the input dimensions through the layer sequence.

        Args:
            function_name (str): Caller, used in error messages
            input_dimensionality (int): Flat size of the next input; 0 skips
                the size check
        """
        # If the input dimensions are completely unset, assume the input is flat.
        if not self._input_dimensions:
            if input_dimensionality == 0:
                raise ConfigurationError(
                    f"{function_name}: input dimensions are unknown; set "
                    "input_dimensions or pass data!")
            self._input_dimensions = (int(input_dimensionality),)

        total_input_size = int(np.prod(self._input_dimensions, dtype=np.int64))
        if input_dimensionality != 0 and total_input_size != input_dimensionality:
            raise DimensionMismatchError(
                f"{function_name}: input size ({input_dimensionality}) does not match "
                f"expected size ({total_input_size}) set with input_dimensions!")

        # Nothing to recompute if the layers were sized for these dimensions.
        if self.network.input_dimensions == self._input_dimensions:
            self.state |= NetworkState.DIMENSIONS_RESOLVED
            return

        self.network.input_dimensions = self._input_dimensions
        self.network.compute_output_dimensions()
        # Layer shapes changed, so the views must be rebuilt.
        self.state = NetworkState.DIMENSIONS_RESOLVED

    def initialize_weights(self):
        """Allocate a fresh parameter buffer and fill it with the initialization rule."""
        self.set_network_mode(False)
        self.parameters = NetworkInitialization(self.initialize_rule).initialize(
            self.network.layers)
        self.state &= ~NetworkState.WEIGHTS_BOUND

    def set_layer_memory(self):
        """Point every layer's weights at its slice of ``parameters``."""
        total_weight_size = self.network.weight_size()
        if self.parameters is None or total_weight_size != self.parameters.size:
            raise ConsistencyFault(
                "FFN.set_layer_memory(): total layer weight size does not match "
                "parameter size!")

        self._weight_index = self.network.set_weights(self.parameters)
        self.state |= NetworkState.WEIGHTS_BOUND

    # ------------------------------------------------------
    # Numeric operations
    # ------------------------------------------------------
    def forward(self, inputs, results=None, begin=0, end=None):
        """
        Run layers ``begin`` to ``end`` (inclusive) on ``inputs``.

        Args:
            inputs (ndarray): Input of shape (features, batch_size)
            results (ndarray, optional): Buffer the output is copied into
            begin (int): First layer of the pass
            end (int, optional): Last layer of the pass (default: last layer)

        Returns:
            ndarray: The output (``results`` when given)
        """
        if end is not None and end < begin:
            return results

        inputs = as_matrix(inputs, "inputs")
        # A partial pass starting inside the network sees a hidden
        # representation, which says nothing about the input dimensions.
        self.check_network("FFN.forward()", inputs.shape[0] if begin == 0 else 0)
        if end is None:
            end = len(self.network) - 1

        # Always keep a copy of the forward pass in case of a backward pass.
        self._network_output = self.network.forward(inputs, begin, end)

        if results is None:
            return self._network_output
        if results is not self._network_output:
            results[...] = self._network_output
        return results

    def backward(self, inputs, targets, gradients):
        """
        Backpropagate the loss of the last forward pass on ``inputs``.

        Args:
            inputs (ndarray): Inputs of the matching forward pass
            targets (ndarray): Responses of shape (outputs, batch_size)
            gradients (ndarray): Output buffer shaped like ``parameters``

        Returns:
            float: Output loss plus the layers' auxiliary losses
        """
        inputs = as_matrix(inputs, "inputs")
        targets = as_matrix(targets, "targets")
        if self._network_output is None or self._network_output.shape[1] != inputs.shape[1]:
            raise MissingForwardPassError(
                "FFN.backward(): no forward pass on these inputs; call forward() first")
        if gradients.shape != self.parameters.shape:
            raise ValueError(
                f"FFN.backward(): gradient buffer has shape {gradients.shape}, "
                f"expected {self.parameters.shape}")

        res = (self.output_layer.forward(self._network_output, targets)
               + self.network.loss())

        # Compute the error of the output layer.
        self._error = self.output_layer.backward(self._network_output, targets)

        # Perform the backward pass; the delta has the shape of the input.
        self._network_delta = self.network.backward(self._error)

        # The gradient has the same layout as the parameters.
        self.network.gradient(inputs, self._error, gradients)
        return res

    def evaluate_dataset(self, predictors, responses):
        """Objective of the network on ``predictors`` / ``responses``."""
        predictors = as_matrix(predictors, "predictors")
        responses = as_matrix(responses, "responses")
        self.check_network("FFN.evaluate_dataset()", predictors.shape[0])

        self._network_output = self.network.forward(predictors)
        return self.output_layer.forward(self._network_output, responses) + self.network.loss()

    # ------------------------------------------------------
    # Objective-function contract (delegates to NetworkObjective)
    # ------------------------------------------------------
    def _require_objective(self, function_name):
        if self._objective is None:
            raise ConfigurationError(
                f"{function_name}: no training data; call train() or reset_data() first!")
        return self._objective

    def num_functions(self):
        return self._require_objective("FFN.num_functions()").num_functions()

    def shuffle(self, random_state=None):
        """Shuffle the stored training set."""
        self._require_objective("FFN.shuffle()").shuffle(random_state)

    def evaluate(self, parameters, begin=None, batch_size=None):
        return self._require_objective("FFN.evaluate()").evaluate(
            parameters, begin, batch_size)

    def evaluate_with_gradient(self, parameters, gradient, begin=None, batch_size=None):
        return self._require_objective("FFN.evaluate_with_gradient()").evaluate_with_gradient(
            parameters, gradient, begin, batch_size)

    def gradient(self, parameters, gradient, begin=None, batch_size=None):
        self._require_objective("FFN.gradient()").gradient(
            parameters, gradient, begin, batch_size)

    # ------------------------------------------------------
    # Training and prediction
    # ------------------------------------------------------
    def reset_data(self, predictors, responses):
        """Store a training set and switch to training mode."""
        self._objective = NetworkObjective(self, predictors, responses)
        self.set_network_mode(True)

    def _resolve_optimizer(self, optimizer, optimizer_params):
        if optimizer is None:
            return get_optimizer('adam', **optimizer_params)
        if isinstance(optimizer, str):
            return get_optimizer(optimizer, **optimizer_params)
        if isinstance(optimizer, type):
            return optimizer(**optimizer_params)
        if optimizer_params:
            raise ValueError("Optimizer parameters can only be given with an optimizer "
                             "name or class, not an instance")
        return optimizer

    @staticmethod
    def _warn_max_iterations(optimizer, samples):
        # Only the mini-batch optimizers count their budget in examples.
        if not isinstance(optimizer, _SeparableOptimizer):
            return
        if 0 < optimizer.max_iterations < samples:
            warnings.warn(
                "The optimizer's maximum number of iterations is less than the size "
                "of the dataset; the optimizer will not pass over the entire dataset. "
                "To fix this, modify the maximum number of iterations to be at least "
                f"equal to the number of points of your dataset ({samples}).",
                UserWarning)

    def train(self, predictors, responses, optimizer=None, **optimizer_params):
        """
        Train the network on the given data.

        Args:
            predictors (ndarray): Training data of shape (features, n_samples)
            responses (ndarray): Targets of shape (outputs, n_samples)
            optimizer: Optimizer instance, optimizer class, solver name
                ('sgd', 'adam', 'lbfgs') or None for Adam
            **optimizer_params: Arguments used to build the optimizer

        Returns:
            float: Final objective reported by the optimizer
        """
        self.reset_data(predictors, responses)
        optimizer = self._resolve_optimizer(optimizer, optimizer_params)

        self._warn_max_iterations(optimizer, self.predictors.shape[1])

        # Ensure that the network can be used.
        self.check_network("FFN.train()", self.predictors.shape[0], True, True)

        out = optimizer.optimize(self._objective, self.parameters)

        if self.verbose:
            print(f"FFN.train(): final objective of trained model is {out}.")
        return out

    def fit(self, X, y, optimizer=None, **optimizer_params):
        """
        scikit-learn style training: one row per sample.

        Args:
            X (ndarray): Training data of shape (n_samples, n_features)
            y (ndarray): Targets of shape (n_samples,) or (n_samples, n_outputs)

        Returns:
            self: Fitted estimator
        """
        X = np.asarray(X, dtype=np.float64)
        y = np.asarray(y, dtype=np.float64)
        if X.ndim == 1:
            X = X.reshape(-1, 1)
        if y.ndim == 1:
            y = y.reshape(-1, 1)
        if X.shape[0] != y.shape[0]:
            raise ValueError("X and y must have the same number of samples")

        self.train(X.T, y.T, optimizer, **optimizer_params)
        return self

    def predict(self, predictors, batch_size=128):
        """
        Forward ``predictors`` in chunks of at most ``batch_size`` columns.

        Args:
            predictors (ndarray): Input of shape (features, n_samples)
            batch_size (int): Largest number of columns per forward pass

        Returns:
            ndarray: Predictions of shape (output_size, n_samples)
        """
        if batch_size < 1:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        predictors = as_matrix(predictors, "predictors")

        # Ensure that the network is configured correctly.
        self.check_network("FFN.predict()", predictors.shape[0], True, False)

        n_samples = predictors.shape[1]
        results = np.empty((self.network.output_size(), n_samples), dtype=np.float64)
        for i in range(0, n_samples, batch_size):
            effective_batch_size = min(batch_size, n_samples - i)
            self.forward(predictors[:, i:i + effective_batch_size],
                         results[:, i:i + effective_batch_size])
        return results

    # ------------------------------------------------------
    # Copying and persistence
    # ------------------------------------------------------
    def __deepcopy__(self, memo):
        # Copied layers hold copies of their old views, not views into the
        # copied buffer; they are rebound on first use.
        result = self.__class__.__new__(self.__class__)
        memo[id(self)] = result
        for key, value in self.__dict__.items():
            setattr(result, key, copy.deepcopy(value, memo))
        result.state = NetworkState.UNCONFIGURED
        result._weight_index = []
        # The layer caches are not copied, so neither are the pass results.
        result._network_output = None
        result._network_delta = None
        result._error = None
        return result

    def __getstate__(self):
        state = self.__dict__.copy()
        # Mid-training caches cannot be resumed; only the model is kept.
        state["_objective"] = None
        state["_network_output"] = None
        state["_network_delta"] = None
        state["_error"] = None
        state["_weight_index"] = []
        state["state"] = NetworkState.UNCONFIGURED
        return state

    def __setstate__(self, state):
        self.__dict__.update(state)
        # Dimensions and views are rebuilt on the next use.
        self.state = NetworkState.UNCONFIGURED

    def save(self, path):
        """Write the network to a gzip-compressed pickle."""
        with gzip.open(path, "wb") as f:
            pickle.dump(self, f)

    @classmethod
    def load(cls, path):
        """Read a network written by ``save``."""
        with gzip.open(path, "rb") as f:
            network = pickle.load(f)
        if not isinstance(network, cls):
            raise TypeError(f"{path} does not contain a {cls.__name__}, got {type(network)}")
        return network

    def __repr__(self):
        return (f"FFN(layers={len(self.network)}, input_dimensions={self._input_dimensions}, "
                f"output_layer={self.output_layer!r})")
