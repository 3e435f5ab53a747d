"""
annlab: a feed-forward neural network container with a flat, aliased
parameter buffer and an optimizer-facing objective contract.
"""
from .exceptions import (
    ConfigurationError,
    DimensionMismatchError,
    ConsistencyFault,
    MissingForwardPassError
)
from .neural_networks import FFN

__version__ = "0.1.0"

__all__ = [
    'FFN',
    'ConfigurationError',
    'DimensionMismatchError',
    'ConsistencyFault',
    'MissingForwardPassError'
]
