"""
Exceptions raised by the network container and its collaborators.
"""


class ConfigurationError(ValueError):
    """The network is not set up well enough to run the requested operation."""


class DimensionMismatchError(ValueError):
    """An input size disagrees with the configured input dimensions."""


class ConsistencyFault(RuntimeError):
    """
    The layer weight bookkeeping disagrees with the parameter buffer.

    This signals an internal bookkeeping bug, not a caller error, and is
    never caught inside the package.
    """


class MissingForwardPassError(RuntimeError):
    """A backward pass was requested without a matching forward pass."""
