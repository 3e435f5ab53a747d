import numpy as np
import pandas as pd


def as_matrix(data, name="data"):
    """
    Convert predictors or responses into a float64 ``(features, batch)`` matrix.

    pandas objects are laid out one row per sample, so they are transposed
    into one column per sample. A 1-D numpy array is read as a single row.
    """
    if isinstance(data, pd.DataFrame):
        return np.ascontiguousarray(data.to_numpy(dtype=np.float64).T)
    if isinstance(data, pd.Series):
        return data.to_numpy(dtype=np.float64).reshape(1, -1)
    if not isinstance(data, np.ndarray):
        try:
            data = np.asarray(data, dtype=np.float64)
        except (TypeError, ValueError) as exc:
            raise TypeError(
                f"{name} must be a pandas DataFrame, Series, or a numpy ndarray. "
                f"Got {type(data)} instead.") from exc

    if data.ndim == 1:
        data = data.reshape(1, -1)
    if data.ndim != 2:
        raise ValueError(f"{name} must be a 2D array, got shape {data.shape}")
    return np.asarray(data, dtype=np.float64)


def column_slice(matrix, begin, batch_size):
    """Return the contiguous column block ``[begin, begin + batch_size)``."""
    if begin < 0 or batch_size < 1 or begin + batch_size > matrix.shape[1]:
        raise IndexError(
            f"Columns [{begin}, {begin + batch_size}) are out of range for a "
            f"dataset with {matrix.shape[1]} columns")
    return matrix[:, begin:begin + batch_size]
