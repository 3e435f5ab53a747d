"""
Neural network layers implementation.

Every layer works on column batches: an input of shape ``(features, batch)``
produces an output of shape ``(output features, batch)``. Layers do not own
their trainable weights; the network hands each layer a view into one flat
parameter buffer through ``set_weights``.
"""
import numpy as np

from ..exceptions import DimensionMismatchError


class Layer:
    """
    Base class for all neural network layers.

    Subclasses override:
      - forward(self, x)
      - backward(self, grad_output)
      - compute_output_dimensions(self, input_dimensions)   (if the shape changes)
      - weight_size / set_weights / gradient / loss          (if they have weights)
    """

    # Per-pass buffers; not kept when the layer is pickled or copied.
    _cache_attributes = ()

    def __init__(self):
        self.input_dimensions = ()
        self.output_dimensions = ()
        self.training = False

    @property
    def input_size(self):
        """Flat number of input features."""
        return int(np.prod(self.input_dimensions, dtype=np.int64))

    @property
    def output_size(self):
        """Flat number of output features."""
        return int(np.prod(self.output_dimensions, dtype=np.int64))

    def compute_output_dimensions(self, input_dimensions):
        """Record the input shape and return the output shape it implies."""
        self.input_dimensions = tuple(int(d) for d in input_dimensions)
        self.output_dimensions = self.input_dimensions
        return self.output_dimensions

    def weight_size(self):
        """Number of trainable weights, valid once dimensions are computed."""
        return 0

    def set_weights(self, weights):
        """Bind the layer to ``weights``, a view into the network parameters."""
        if weights.size != 0:
            raise ValueError(
                f"{self!r} has no weights but was given {weights.size}")

    def forward(self, x):
        """Forward pass through the layer."""
        raise NotImplementedError(f"{self.__class__.__name__}.forward not implemented.")

    def backward(self, grad_output):
        """Backward pass through the layer."""
        raise NotImplementedError(f"{self.__class__.__name__}.backward not implemented.")

    def gradient(self, x, error, out):
        """
        Write the parameter gradient into ``out``.

        Args:
            x (ndarray): Input the layer saw in the forward pass
            error (ndarray): Gradient of the objective w.r.t. the layer output
            out (ndarray): Flat view of the gradient buffer, ``weight_size()`` long
        """

    def loss(self):
        """Auxiliary loss contributed by the layer (e.g. a weight penalty)."""
        return 0.0

    def __call__(self, x):
        return self.forward(x)

    def __getstate__(self):
        state = self.__dict__.copy()
        for name in self._cache_attributes:
            state[name] = None
        return state

    def __repr__(self):
        return f"{self.__class__.__name__}()"


# In-place activation functions
def inplace_relu(x):
    """Compute the rectified linear unit function inplace."""
    np.maximum(x, 0, out=x)


def inplace_tanh(x):
    """Compute the hyperbolic tan function inplace."""
    np.tanh(x, out=x)


def inplace_relu_derivative(z, delta):
    """Apply the derivative of the relu function inplace."""
    delta[z == 0] = 0


def inplace_tanh_derivative(z, delta):
    """Apply the derivative of the hyperbolic tanh function inplace."""
    delta *= 1 - z**2


class Linear(Layer):
    """
    Fully-connected layer ``y = W @ x + b`` with an optional L2 penalty.

    Only the output size is fixed at construction; the input size is taken
    from the input dimensions when the network resolves its shapes, so the
    weight count is known only after ``compute_output_dimensions``.

    Weight layout inside the parameter view: ``W`` row-major
    (out_features x in_features) followed by ``b`` (out_features).
    """

    def __init__(self, out_features, alpha=0.0):
        """
        Args:
            out_features (int): Number of output features
            alpha (float): L2 regularization parameter applied to ``W``
        """
        super().__init__()
        if int(out_features) < 1:
            raise ValueError(f"out_features must be positive, got {out_features}")
        self.out_features = int(out_features)
        self.in_features = None
        self.alpha = alpha

        # Views into the network parameters (set by set_weights)
        self.weight = None
        self.bias = None

    def compute_output_dimensions(self, input_dimensions):
        self.input_dimensions = tuple(int(d) for d in input_dimensions)
        self.in_features = self.input_size
        self.output_dimensions = (self.out_features,)
        return self.output_dimensions

    def weight_size(self):
        if self.in_features is None:
            return 0
        return self.out_features * self.in_features + self.out_features

    def set_weights(self, weights):
        if weights.size != self.weight_size():
            raise ValueError(
                f"{self!r} expects {self.weight_size()} weights, got {weights.size}")
        n_weight = self.out_features * self.in_features
        # reshape of a contiguous slice is a view, not a copy
        self.weight = weights[:n_weight].reshape(self.out_features, self.in_features)
        self.bias = weights[n_weight:]

    def forward(self, x):
        """
        Forward pass: W.dot(x) + b

        Args:
            x (ndarray): Input data of shape (in_features, batch_size)

        Returns:
            ndarray: Output of shape (out_features, batch_size)
        """
        if x.shape[0] != self.in_features:
            raise DimensionMismatchError(
                f"{self!r}: expected {self.in_features} input rows, got {x.shape[0]}")
        return np.dot(self.weight, x) + self.bias[:, np.newaxis]

    def backward(self, grad_output):
        """Gradient with respect to the input: W.T.dot(grad_output)."""
        return np.dot(self.weight.T, grad_output)

    def gradient(self, x, error, out):
        n_weight = self.out_features * self.in_features
        weight_grad = out[:n_weight].reshape(self.out_features, self.in_features)
        weight_grad[...] = np.dot(error, x.T)
        # Add L2 regularization term if alpha is provided
        if self.alpha:
            weight_grad += self.alpha * self.weight
        out[n_weight:] = np.sum(error, axis=1)

    def loss(self):
        if not self.alpha or self.weight is None:
            return 0.0
        return 0.5 * self.alpha * float(np.sum(self.weight ** 2))

    def __repr__(self):
        """String representation of the layer."""
        return (f"Linear(in_features={self.in_features}, "
                f"out_features={self.out_features})")


class SigmoidLayer(Layer):
    """Sigmoid activation layer."""

    _cache_attributes = ("_prev_result",)

    def __init__(self):
        """Initialize the sigmoid layer."""
        super().__init__()
        self._prev_result = None

    def forward(self, x):
        """
        Forward pass: sigmoid(x)

        Args:
            x (ndarray): Input data

        Returns:
            ndarray: Sigmoid activation output
        """
        # Clip input to prevent overflow
        x_clipped = np.clip(x, -500, 500)
        self._prev_result = 1 / (1 + np.exp(-x_clipped))
        return self._prev_result

    def backward(self, grad_output):
        # Sigmoid derivative: sigmoid(x) * (1 - sigmoid(x))
        sigmoid_grad = self._prev_result * (1 - self._prev_result)
        return grad_output * sigmoid_grad


class TanhLayer(Layer):
    """Tanh activation layer."""

    _cache_attributes = ("_prev_result",)

    def __init__(self):
        super().__init__()
        self._prev_result = None

    def forward(self, x):
        output = x.copy()
        inplace_tanh(output)
        self._prev_result = output
        return output

    def backward(self, grad_output):
        # Tanh derivative: 1 - tanh²(x)
        grad_input = grad_output.copy()
        inplace_tanh_derivative(self._prev_result, grad_input)
        return grad_input


class ReLULayer(Layer):
    """ReLU activation layer."""

    _cache_attributes = ("_prev_result",)

    def __init__(self):
        super().__init__()
        self._prev_result = None

    def forward(self, x):
        """
        Forward pass: ReLU(x) = max(0, x)

        Args:
            x (ndarray): Input data

        Returns:
            ndarray: ReLU activation output
        """
        output = x.copy()
        inplace_relu(output)
        self._prev_result = output
        return output

    def backward(self, grad_output):
        # ReLU derivative: gradient is 0 where the output was clamped
        grad_input = grad_output.copy()
        inplace_relu_derivative(self._prev_result, grad_input)
        return grad_input


class DropoutLayer(Layer):
    """Dropout layer for regularization during training."""

    _cache_attributes = ("mask",)

    def __init__(self, p=0.5, random_state=None):
        """
        Initialize dropout layer.

        Args:
            p (float): Dropout probability (0.0 to 1.0)
            random_state (int, optional): Seed for the dropout masks
        """
        super().__init__()
        if not 0.0 <= p < 1.0:
            raise ValueError(f"Dropout probability must be in [0, 1), got {p}")
        self.p = p
        self.mask = None
        self._rng = np.random.default_rng(random_state)

    def forward(self, x):
        """
        Forward pass with dropout.

        Args:
            x (ndarray): Input data

        Returns:
            ndarray: Output with dropout applied (if training)
        """
        if not self.training or self.p == 0.0:
            self.mask = None
            return x
        self.mask = self._rng.binomial(1, 1 - self.p, size=x.shape) / (1 - self.p)
        return x * self.mask

    def backward(self, grad_output):
        """
        Backward pass with dropout mask.

        Args:
            grad_output (ndarray): Gradient from next layer

        Returns:
            ndarray: Gradient with dropout mask applied
        """
        if self.mask is None:
            return grad_output
        return grad_output * self.mask

    def __repr__(self):
        return f"DropoutLayer(p={self.p})"
