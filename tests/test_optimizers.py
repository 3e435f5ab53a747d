import numpy as np
import pytest

from annlab.neural_networks import (
    AdamOptimizer,
    LBFGSOptimizer,
    SGDOptimizer,
    get_optimizer,
)


class SeparableQuadratic:
    """sum_i ||x - c_i||^2 over the columns c_i of ``centers``."""

    def __init__(self, centers):
        self.centers = np.asarray(centers, dtype=np.float64)
        self.shuffled = 0

    def num_functions(self):
        return self.centers.shape[1]

    def shuffle(self, random_state=None):
        rng = np.random.default_rng(random_state)
        self.centers = self.centers[:, rng.permutation(self.num_functions())]
        self.shuffled += 1

    def _columns(self, begin, batch_size):
        if begin is None:
            return self.centers
        return self.centers[:, begin:begin + (batch_size or 1)]

    def evaluate(self, coordinates, begin=None, batch_size=None):
        diff = coordinates[:, None] - self._columns(begin, batch_size)
        return float(np.sum(diff ** 2))

    def evaluate_with_gradient(self, coordinates, gradient, begin=None, batch_size=None):
        diff = coordinates[:, None] - self._columns(begin, batch_size)
        gradient[...] = 2 * diff.sum(axis=1)
        return float(np.sum(diff ** 2))


@pytest.fixture
def quadratic():
    centers = np.array([[1.0, 2.0, 3.0, 6.0],
                        [-1.0, 0.0, 1.0, 4.0]])
    return SeparableQuadratic(centers)


def test_sgd_converges_to_the_mean(quadratic):
    coordinates = np.zeros(2)
    optimizer = SGDOptimizer(lr=0.01, batch_size=4, max_iterations=4 * 500,
                             tol=1e-12, shuffle=False)
    optimizer.optimize(quadratic, coordinates)
    np.testing.assert_allclose(coordinates, [3.0, 1.0], atol=1e-3)
    assert optimizer.n_epochs_ > 0


def test_adam_gets_close_to_the_mean(quadratic):
    coordinates = np.zeros(2)
    AdamOptimizer(lr=0.05, batch_size=4, max_iterations=4 * 2000, tol=0.0,
                  shuffle=False).optimize(quadratic, coordinates)
    np.testing.assert_allclose(coordinates, [3.0, 1.0], atol=1e-2)


def test_lbfgs_solves_the_quadratic(quadratic):
    coordinates = np.array([10.0, -10.0])
    objective = LBFGSOptimizer().optimize(quadratic, coordinates)
    np.testing.assert_allclose(coordinates, [3.0, 1.0], atol=1e-6)
    assert objective == pytest.approx(quadratic.evaluate(coordinates))


def test_coordinates_are_updated_in_place(quadratic):
    coordinates = np.zeros(2)
    alias = coordinates[:]
    SGDOptimizer(batch_size=2, max_iterations=4, shuffle=False).optimize(quadratic, coordinates)
    assert np.shares_memory(alias, coordinates)
    assert np.all(alias != 0.0)


def test_shuffle_is_requested_per_epoch(quadratic):
    SGDOptimizer(batch_size=4, max_iterations=12, tol=0.0, shuffle=True,
                 random_state=0).optimize(quadratic, np.zeros(2))
    assert quadratic.shuffled >= 3


def test_divergence_is_reported(quadratic):
    with pytest.warns(RuntimeWarning, match="diverged"):
        SGDOptimizer(lr=10.0, momentum=0.0, batch_size=4, max_iterations=0,
                     shuffle=False).optimize(quadratic, np.zeros(2))


def test_empty_objective_is_rejected():
    with pytest.raises(ValueError):
        SGDOptimizer().optimize(SeparableQuadratic(np.zeros((2, 0))), np.zeros(2))


def test_get_optimizer():
    assert isinstance(get_optimizer('sgd', lr=0.1), SGDOptimizer)
    assert isinstance(get_optimizer('adam'), AdamOptimizer)
    assert get_optimizer('lbfgs', num_basis=3).num_basis == 3
    with pytest.raises(ValueError):
        get_optimizer('rmsprop')
