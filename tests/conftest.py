import numpy as np
import pytest

from annlab.neural_networks import FFN, GlorotInitialization, Linear, TanhLayer


@pytest.fixture
def rng():
    return np.random.default_rng(0)


@pytest.fixture
def regression_data(rng):
    """4 features x 10 samples with a noisy linear target."""
    X = rng.normal(size=(4, 10))
    coef = np.array([[0.5, -1.0, 2.0, 0.3]])
    y = coef @ X + 0.1 + 0.01 * rng.normal(size=(1, 10))
    return X, y


@pytest.fixture
def two_layer_net():
    """Linear 4->3 followed by Linear 3->1."""
    net = FFN(initialize_rule=GlorotInitialization(random_state=1))
    net.add(Linear(3))
    net.add(Linear(1))
    return net


@pytest.fixture
def tanh_net():
    net = FFN(initialize_rule=GlorotInitialization(random_state=2))
    net.add(Linear(5))
    net.add(TanhLayer())
    net.add(Linear(2))
    return net
