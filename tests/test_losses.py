import numpy as np
import pytest

from annlab.exceptions import DimensionMismatchError
from annlab.neural_networks import (
    FFN,
    BinaryCrossEntropyError,
    GlorotInitialization,
    Linear,
    MeanSquaredError,
    SigmoidLayer,
)


def test_mean_squared_error_averages_over_the_batch():
    prediction = np.array([[1.0, 2.0], [0.0, 0.0]])
    target = np.array([[0.0, 0.0], [1.0, 1.0]])
    loss = MeanSquaredError()
    assert loss.forward(prediction, target) == pytest.approx((1 + 4 + 1 + 1) / 2)
    np.testing.assert_allclose(loss.backward(prediction, target),
                               (prediction - target))


def test_binary_cross_entropy(rng):
    prediction = rng.uniform(0.05, 0.95, size=(1, 6))
    target = (rng.uniform(size=(1, 6)) > 0.5).astype(float)
    loss = BinaryCrossEntropyError()

    expected = -np.sum(target * np.log(prediction)
                       + (1 - target) * np.log(1 - prediction)) / 6
    assert loss.forward(prediction, target) == pytest.approx(expected)

    h = 1e-7
    numeric = np.zeros_like(prediction)
    for j in range(6):
        shifted = prediction.copy()
        shifted[0, j] += h
        numeric[0, j] = (loss.forward(shifted, target) - expected) / h
    np.testing.assert_allclose(loss.backward(prediction, target), numeric, rtol=1e-4)


def test_shapes_must_agree():
    with pytest.raises(DimensionMismatchError):
        MeanSquaredError().forward(np.zeros((1, 3)), np.zeros((2, 3)))


def test_sigmoid_network_with_cross_entropy_trains(rng):
    X = rng.normal(size=(2, 20))
    y = (X[0] + X[1] > 0).astype(float).reshape(1, -1)
    net = FFN(output_layer=BinaryCrossEntropyError(),
              initialize_rule=GlorotInitialization(factor=2.0, random_state=0))
    net.add(Linear(1))
    net.add(SigmoidLayer())
    net.reset_data(X, y)
    before = net.evaluate(None)
    after = net.train(X, y, "lbfgs", max_iterations=30)
    assert after < before
