import numpy as np
import pandas as pd
import pytest

from annlab.exceptions import DimensionMismatchError
from annlab.neural_networks import NetworkObjective


def test_dataframe_data_is_stored_one_column_per_sample(tanh_net, rng):
    X = rng.normal(size=(6, 3))
    y = rng.normal(size=(6, 2))
    objective = NetworkObjective(tanh_net, pd.DataFrame(X), pd.DataFrame(y))
    assert objective.predictors.shape == (3, 6)
    assert objective.responses.shape == (2, 6)
    assert objective.num_functions() == 6


def test_series_response_becomes_one_row(tanh_net, rng):
    objective = NetworkObjective(tanh_net, rng.normal(size=(3, 4)),
                                 pd.Series([1.0, 2.0, 3.0, 4.0]))
    np.testing.assert_array_equal(objective.responses, [[1.0, 2.0, 3.0, 4.0]])


def test_column_counts_must_agree(tanh_net, rng):
    with pytest.raises(DimensionMismatchError):
        NetworkObjective(tanh_net, rng.normal(size=(3, 4)), rng.normal(size=(2, 3)))


def test_batch_objective_matches_network(tanh_net, rng):
    X = rng.normal(size=(3, 6))
    y = rng.normal(size=(2, 6))
    objective = NetworkObjective(tanh_net, X, y)
    value = objective.evaluate(None, 2, 3)
    assert value == pytest.approx(tanh_net.evaluate_dataset(X[:, 2:5], y[:, 2:5]))


def test_default_batch_size_is_one_example(tanh_net, rng):
    X = rng.normal(size=(3, 6))
    y = rng.normal(size=(2, 6))
    objective = NetworkObjective(tanh_net, X, y)
    assert objective.evaluate(None, 4) == pytest.approx(objective.evaluate(None, 4, 1))


def test_shuffle_is_reproducible(tanh_net, rng):
    X = rng.normal(size=(3, 10))
    y = rng.normal(size=(2, 10))
    first = NetworkObjective(tanh_net, X, y)
    second = NetworkObjective(tanh_net, X, y)
    first.shuffle(random_state=3)
    second.shuffle(random_state=3)
    np.testing.assert_array_equal(first.predictors, second.predictors)
    assert first.predictors.flags["C_CONTIGUOUS"]
