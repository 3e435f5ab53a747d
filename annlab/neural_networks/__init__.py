"""
Neural networks module: the feed-forward network container and the layers,
losses, initialization rules and optimizers it works with.
"""
from .layers import (
    Layer,
    Linear,
    SigmoidLayer,
    TanhLayer,
    ReLULayer,
    DropoutLayer
)
from ._sequential import Sequential
from .losses import (
    OutputLayer,
    MeanSquaredError,
    BinaryCrossEntropyError
)
from .initializers import (
    GlorotInitialization,
    RandomInitialization,
    ConstInitialization,
    NetworkInitialization
)
from .optimizers import (
    SGDOptimizer,
    AdamOptimizer,
    LBFGSOptimizer,
    get_optimizer
)
from ._objective import NetworkObjective
from ._ffn import (FFN, NetworkState)

__all__ = [
    'Layer',
    'Linear',
    'SigmoidLayer',
    'TanhLayer',
    'ReLULayer',
    'DropoutLayer',
    'Sequential',
    'OutputLayer',
    'MeanSquaredError',
    'BinaryCrossEntropyError',
    'GlorotInitialization',
    'RandomInitialization',
    'ConstInitialization',
    'NetworkInitialization',
    'SGDOptimizer',
    'AdamOptimizer',
    'LBFGSOptimizer',
    'get_optimizer',
    'NetworkObjective',
    'FFN',
    'NetworkState'
]
