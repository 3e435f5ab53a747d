"""
Weight initialization rules and the helper that applies one to a network.
"""
import numpy as np


class GlorotInitialization:
    """
    Uniform initialization recommended by Glorot et al.

    Weights are drawn from U(-bound, bound) with
    ``bound = sqrt(factor / (fan_in + fan_out))``. Use ``factor=2.0`` for
    logistic activations.
    """

    def __init__(self, factor=6.0, random_state=None):
        self.factor = factor
        self.random_state = random_state
        self._rng = np.random.default_rng(random_state)

    def initialize(self, weights, fan_in, fan_out):
        init_bound = np.sqrt(self.factor / max(fan_in + fan_out, 1))
        weights[...] = self._rng.uniform(-init_bound, init_bound, weights.shape)

    def __repr__(self):
        return f"GlorotInitialization(factor={self.factor})"


class RandomInitialization:
    """Uniform initialization in ``[lower, upper)``."""

    def __init__(self, lower=-1.0, upper=1.0, random_state=None):
        if lower >= upper:
            raise ValueError(f"lower ({lower}) must be smaller than upper ({upper})")
        self.lower = lower
        self.upper = upper
        self.random_state = random_state
        self._rng = np.random.default_rng(random_state)

    def initialize(self, weights, fan_in, fan_out):
        _ = fan_in, fan_out  # Unused, the range is fixed
        weights[...] = self._rng.uniform(self.lower, self.upper, weights.shape)

    def __repr__(self):
        return f"RandomInitialization(lower={self.lower}, upper={self.upper})"


class ConstInitialization:
    """Fill every weight with the same value."""

    def __init__(self, value=0.0):
        self.value = value

    def initialize(self, weights, fan_in, fan_out):
        _ = fan_in, fan_out
        weights.fill(self.value)

    def __repr__(self):
        return f"ConstInitialization(value={self.value})"


class NetworkInitialization:
    """
    Apply an initialization rule to every layer of a network.

    The rule sees each layer's slice of the flat parameter buffer separately,
    together with the layer's fan-in and fan-out.
    """

    def __init__(self, initialize_rule):
        self.initialize_rule = initialize_rule

    def initialize(self, layers, parameters=None):
        """
        Fill ``parameters`` (allocated when missing or wrongly sized).

        Args:
            layers (iterable): Layers with resolved dimensions
            parameters (ndarray, optional): Flat buffer to fill

        Returns:
            ndarray: The filled flat parameter buffer
        """
        layers = list(layers)
        total = sum(layer.weight_size() for layer in layers)
        if parameters is None or parameters.size != total:
            parameters = np.zeros(total, dtype=np.float64)

        offset = 0
        for layer in layers:
            size = layer.weight_size()
            if size:
                self.initialize_rule.initialize(
                    parameters[offset:offset + size],
                    layer.input_size, layer.output_size)
            offset += size
        return parameters
