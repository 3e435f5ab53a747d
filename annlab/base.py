# pylint: disable=missing-docstring
from abc import abstractmethod
from typing import Any, Dict, TypeVar
import numpy as np

# Define a type variable that's used correctly
T = TypeVar("T", bound="BaseEstimator")

# Attributes that hold learned state rather than configuration.
TRAINABLE_ATTRIBUTES = ("parameters",)


# pylint: disable=too-many-instance-attributes, invalid-name line-too-long missing-docstring
class BaseEstimator:
    # Names of constructor arguments exposed through get_params/set_params.
    _param_names: tuple = ()

    @abstractmethod
    def fit(self: T, X: np.ndarray, y: np.ndarray) -> T:
        """
        :param X: numpy array of shape (N, d) with N being the number of samples and d being the number of feature dimensions
        :param y: numpy array of shape (N, k) with N being the number of samples as in the provided features and k being the number of target dimensions
        :return: the fitted estimator
        """
        raise NotImplementedError

    def get_params(self, mode: str = "config") -> Dict[str, Any]:
        """
        Get parameters for this estimator.

        :param mode: Specifies which parameters to return. Options are:
            - "config": Return the constructor arguments.
            - "trainable": Return only trainable state (e.g., the parameter buffer).
            - "all": Return every attribute.
        :return: Dictionary of parameter names mapped to their values.
        """
        if mode == "config":
            return {name: getattr(self, name) for name in self._param_names}
        if mode == "trainable":
            return {k: v for k, v in self.__dict__.items() if k in TRAINABLE_ATTRIBUTES}
        if mode == "all":
            return dict(self.__dict__)

        raise ValueError(
            f"Invalid mode '{mode}'. Choose from 'config', 'trainable', or 'all'."
        )

    def set_params(self: T, **params: Any) -> T:
        """Set the constructor arguments of this estimator."""
        for param, value in params.items():
            if param not in self._param_names:
                raise ValueError(f"Invalid parameter {param}")
            setattr(self, param, value)
        return self
