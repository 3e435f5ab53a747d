import numpy as np
import pytest

from annlab.neural_networks import DropoutLayer, Linear, ReLULayer, Sequential


@pytest.fixture
def sequence():
    seq = Sequential(Linear(3), ReLULayer(), Linear(1))
    seq.input_dimensions = (4,)
    seq.compute_output_dimensions()
    return seq


def test_output_dimensions_and_weight_sizes(sequence):
    assert sequence.output_dimensions == (1,)
    assert sequence.output_size() == 1
    assert sequence.weight_sizes() == [15, 0, 4]
    assert sequence.weight_size() == 19
    assert sequence[1].input_dimensions == (3,)


def test_compute_output_dimensions_needs_input_dimensions():
    with pytest.raises(ValueError):
        Sequential(Linear(2)).compute_output_dimensions()


def test_add_forgets_cached_dimensions(sequence):
    sequence.add(Linear(2))
    assert sequence.input_dimensions is None
    assert len(sequence) == 4


def test_set_weights_returns_index_table(sequence):
    parameters = np.zeros(sequence.weight_size())
    index = sequence.set_weights(parameters)
    assert index == [(0, 15), (15, 0), (15, 4)]
    assert np.shares_memory(sequence[2].weight, parameters)


def test_training_flag_reaches_every_layer(sequence):
    sequence.add(DropoutLayer(0.2))
    sequence.training = True
    assert all(layer.training for layer in sequence)
    sequence.training = False
    assert not any(layer.training for layer in sequence)


def test_partial_forward_runs_selected_layers(sequence, rng):
    parameters = rng.normal(size=sequence.weight_size())
    sequence.set_weights(parameters)
    x = rng.normal(size=(4, 5))

    hidden = sequence.forward(x, 0, 1)
    assert hidden.shape == (3, 5)
    np.testing.assert_allclose(sequence.forward(hidden, 2, 2), sequence.forward(x))


def test_gradient_matches_parameter_layout(sequence, rng):
    parameters = rng.normal(size=sequence.weight_size())
    sequence.set_weights(parameters)
    x = rng.normal(size=(4, 5))
    sequence.forward(x)
    error = rng.normal(size=(1, 5))
    sequence.backward(error)

    gradient = np.full(sequence.weight_size(), np.nan)
    sequence.gradient(x, error, gradient)
    assert np.all(np.isfinite(gradient))

    hidden = sequence[1]._prev_result
    np.testing.assert_allclose(gradient[15:18].reshape(1, 3), error @ hidden.T)
    np.testing.assert_allclose(gradient[18:], error.sum(axis=1))
