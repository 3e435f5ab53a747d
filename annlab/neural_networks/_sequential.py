"""
Ordered composition of layers used as the body of a feed-forward network.
"""
import numpy as np


class Sequential:
    """
    A container that holds several layers and applies them in order.

    Forward pass:
        input -> layer_0 -> layer_1 -> ... -> layer_N -> output

    Backward pass:
        output error -> layer_N.backward -> ... -> layer_0.backward

    The sequence keeps the per-layer inputs of the last forward pass and the
    per-layer output errors of the last backward pass, since ``gradient``
    needs both.
    """

    def __init__(self, *layers):
        self.layers = list(layers)
        # Input shape the cached output dimensions were derived from.
        self.input_dimensions = None
        self.output_dimensions = ()
        self._training = False
        self._layer_inputs = []
        self._deltas = []

    # ------------------------------------------------------
    # Structure
    # ------------------------------------------------------
    def add(self, layer):
        """Add a layer to the end; cached shapes are no longer valid."""
        self.layers.append(layer)
        layer.training = self._training
        self.input_dimensions = None
        self.output_dimensions = ()

    @property
    def training(self):
        return self._training

    @training.setter
    def training(self, value):
        self._training = bool(value)
        for layer in self.layers:
            layer.training = self._training

    def compute_output_dimensions(self):
        """Propagate ``input_dimensions`` through every layer in order."""
        if self.input_dimensions is None:
            raise ValueError("input_dimensions must be set before computing output dimensions")
        dims = tuple(self.input_dimensions)
        for layer in self.layers:
            dims = tuple(layer.compute_output_dimensions(dims))
        self.output_dimensions = dims
        return self.output_dimensions

    def output_size(self):
        return int(np.prod(self.output_dimensions, dtype=np.int64))

    def weight_sizes(self):
        return [layer.weight_size() for layer in self.layers]

    def weight_size(self):
        return sum(self.weight_sizes())

    def set_weights(self, parameters):
        """
        Hand every layer a view of its own slice of ``parameters``.

        Returns:
            list: ``(offset, length)`` of each layer's slice, in layer order
        """
        index = []
        offset = 0
        for layer in self.layers:
            size = layer.weight_size()
            layer.set_weights(parameters[offset:offset + size])
            index.append((offset, size))
            offset += size
        return index

    # ------------------------------------------------------
    # Numeric passes
    # ------------------------------------------------------
    def forward(self, x, begin=0, end=None):
        """
        Pass the input through layers ``begin`` to ``end`` (inclusive).

        x: (input features of layer ``begin``, batch)
        returns: output of layer ``end``
        """
        if end is None:
            end = len(self.layers) - 1
        self._layer_inputs = [None] * len(self.layers)
        out = x
        for i in range(begin, end + 1):
            self._layer_inputs[i] = out
            out = self.layers[i].forward(out)
        return out

    def backward(self, error):
        """
        Backpropagate the output error through all layers in reverse order.

        Returns:
            The gradient of the objective with respect to the sequence input.
        """
        grad = error
        self._deltas = [None] * len(self.layers)
        for i in reversed(range(len(self.layers))):
            self._deltas[i] = grad
            grad = self.layers[i].backward(grad)
        return grad

    def gradient(self, x, error, gradient):
        """
        Write every layer's parameter gradient into ``gradient``.

        ``gradient`` has the parameter buffer's layout. ``error`` must be the
        output error the last ``backward`` was run with.
        """
        last = len(self.layers) - 1
        offset = 0
        for i, layer in enumerate(self.layers):
            size = layer.weight_size()
            layer_input = x if i == 0 else self._layer_inputs[i]
            delta = error if i == last else self._deltas[i]
            layer.gradient(layer_input, delta, gradient[offset:offset + size])
            offset += size

    def loss(self):
        """Sum of the auxiliary losses of all layers."""
        return sum(layer.loss() for layer in self.layers)

    # ------------------------------------------------------
    # Convenience
    # ------------------------------------------------------
    def __getstate__(self):
        state = self.__dict__.copy()
        # Activations of the last pass are not part of the model.
        state["_layer_inputs"] = []
        state["_deltas"] = []
        return state

    def __len__(self):
        return len(self.layers)

    def __getitem__(self, idx):
        return self.layers[idx]

    def __iter__(self):
        return iter(self.layers)

    def __repr__(self):
        inner = ",\n  ".join(repr(layer) for layer in self.layers)
        return f"Sequential(\n  {inner}\n)"
