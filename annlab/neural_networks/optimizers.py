"""
Gradient-based optimizers for differentiable objective functions.

An optimizer never touches layers. It drives an objective through:

    function.num_functions()
    function.shuffle(random_state)
    function.evaluate(coordinates[, begin, batch_size])
    function.evaluate_with_gradient(coordinates, gradient[, begin, batch_size])

and updates ``coordinates`` in place, so that a network whose layers are
views into ``coordinates`` sees every step without any copying.
"""
import warnings
from collections import deque

import numpy as np


class _SeparableOptimizer:
    """
    Mini-batch loop shared by the first-order optimizers.

    ``max_iterations`` counts processed examples (0 means no limit); one
    epoch is a full pass over ``function.num_functions()`` examples.
    """

    def __init__(self, lr, batch_size, max_iterations, tol, shuffle, verbose,
                 random_state):
        self.lr = lr
        self.batch_size = batch_size
        self.max_iterations = max_iterations
        self.tol = tol
        self.shuffle = shuffle
        self.verbose = verbose
        self.random_state = random_state
        self.n_epochs_ = 0

    def _reset(self, coordinates):
        raise NotImplementedError

    def _step(self, coordinates, gradient):
        raise NotImplementedError

    def optimize(self, function, coordinates):
        """
        Minimize ``function`` starting from ``coordinates`` (updated in place).

        Returns:
            float: Objective over the whole dataset at the final coordinates
        """
        n_functions = function.num_functions()
        if n_functions == 0:
            raise ValueError("Cannot optimize an objective with no examples")
        batch_size = max(1, min(self.batch_size, n_functions))
        gradient = np.zeros_like(coordinates)
        self._reset(coordinates)
        self.n_epochs_ = 0
        rng = np.random.default_rng(self.random_state)

        if self.shuffle:
            function.shuffle(random_state=int(rng.integers(2**31 - 1)))

        processed = 0
        current = 0
        epoch_objective = 0.0
        last_objective = np.inf
        while self.max_iterations == 0 or processed < self.max_iterations:
            effective = min(batch_size, n_functions - current)
            if self.max_iterations:
                effective = min(effective, self.max_iterations - processed)

            epoch_objective += function.evaluate_with_gradient(
                coordinates, gradient, current, effective)
            self._step(coordinates, gradient)
            processed += effective
            current += effective

            if current < n_functions:
                continue

            # End of an epoch
            self.n_epochs_ += 1
            if not np.isfinite(epoch_objective):
                warnings.warn(
                    f"{self.__class__.__name__}: objective diverged to "
                    f"{epoch_objective}; terminating optimization", RuntimeWarning)
                return epoch_objective

            if self.verbose:
                print(f"Epoch {self.n_epochs_}, Objective: {epoch_objective:.6f}")

            if abs(last_objective - epoch_objective) < self.tol:
                if self.verbose:
                    print(f"Convergence after {self.n_epochs_} epochs")
                break

            last_objective = epoch_objective
            epoch_objective = 0.0
            current = 0
            if self.shuffle:
                function.shuffle(random_state=int(rng.integers(2**31 - 1)))

        return function.evaluate(coordinates)


class SGDOptimizer(_SeparableOptimizer):
    """
    Stochastic Gradient Descent optimizer with momentum and Nesterov acceleration.
    """

    def __init__(self, lr=0.01, momentum=0.9, nesterov=True, batch_size=32,
                 max_iterations=100000, tol=1e-5, shuffle=True, verbose=False,
                 random_state=None):
        """
        Initialize SGD optimizer.

        Args:
            lr (float): Learning rate
            momentum (float): Momentum factor
            nesterov (bool): Whether to apply Nesterov momentum
            batch_size (int): Examples per gradient step
            max_iterations (int): Maximum processed examples (0 for no limit)
            tol (float): Stop when the epoch objective changes less than this
            shuffle (bool): Shuffle the dataset before every epoch
            verbose (bool): Whether to print progress messages
        """
        super().__init__(lr, batch_size, max_iterations, tol, shuffle, verbose,
                         random_state)
        self.momentum = momentum
        self.nesterov = nesterov
        self.velocity = None

    def _reset(self, coordinates):
        self.velocity = np.zeros_like(coordinates)

    def _step(self, coordinates, gradient):
        # Update velocity
        self.velocity *= self.momentum
        self.velocity -= self.lr * gradient

        if self.nesterov:
            # Nesterov momentum
            coordinates += self.momentum * self.velocity - self.lr * gradient
        else:
            # Standard momentum
            coordinates += self.velocity


class AdamOptimizer(_SeparableOptimizer):
    """
    Adam optimizer implementation.
    """

    def __init__(self, lr=0.001, beta1=0.9, beta2=0.999, epsilon=1e-8,
                 batch_size=32, max_iterations=100000, tol=1e-5, shuffle=True,
                 verbose=False, random_state=None):
        """
        Initialize Adam optimizer.

        Args:
            lr (float): Learning rate
            beta1 (float): Exponential decay rate for first moment
            beta2 (float): Exponential decay rate for second moment
            epsilon (float): Small constant for numerical stability
            batch_size (int): Examples per gradient step
            max_iterations (int): Maximum processed examples (0 for no limit)
            tol (float): Stop when the epoch objective changes less than this
            shuffle (bool): Shuffle the dataset before every epoch
            verbose (bool): Whether to print progress messages
        """
        super().__init__(lr, batch_size, max_iterations, tol, shuffle, verbose,
                         random_state)
        self.beta1 = beta1
        self.beta2 = beta2
        self.epsilon = epsilon
        self.m = None
        self.v = None
        self.t = 0

    def _reset(self, coordinates):
        self.m = np.zeros_like(coordinates)
        self.v = np.zeros_like(coordinates)
        self.t = 0

    def _step(self, coordinates, gradient):
        self.t += 1

        # Update biased first moment estimate
        self.m *= self.beta1
        self.m += (1 - self.beta1) * gradient

        # Update biased second raw moment estimate
        self.v *= self.beta2
        self.v += (1 - self.beta2) * (gradient ** 2)

        # Bias-corrected moment estimates
        m_corrected = self.m / (1 - self.beta1 ** self.t)
        v_corrected = self.v / (1 - self.beta2 ** self.t)

        coordinates -= self.lr * m_corrected / (np.sqrt(v_corrected) + self.epsilon)


class LBFGSOptimizer:
    """
    Limited-memory BFGS optimizer with a backtracking (Armijo) line search.

    Works on the full objective: every iteration evaluates all examples.
    """

    def __init__(self, num_basis=10, max_iterations=100, armijo_constant=1e-4,
                 min_step=1e-20, min_gradient_norm=1e-6, factr=1e-15,
                 verbose=False):
        """
        Initialize L-BFGS optimizer.

        Args:
            num_basis (int): Number of (s, y) pairs kept for the Hessian estimate
            max_iterations (int): Maximum iterations (0 for no limit)
            armijo_constant (float): Sufficient decrease constant of the line search
            min_step (float): Smallest step the line search tries
            min_gradient_norm (float): Stop when the gradient norm drops below this
            factr (float): Stop when the relative objective change drops below this
            verbose (bool): Whether to print progress messages
        """
        self.num_basis = num_basis
        self.max_iterations = max_iterations
        self.armijo_constant = armijo_constant
        self.min_step = min_step
        self.min_gradient_norm = min_gradient_norm
        self.factr = factr
        self.verbose = verbose
        self.n_iter_ = 0

    @staticmethod
    def _search_direction(gradient, s_history, y_history):
        """Two-loop recursion: approximate inverse Hessian times gradient."""
        q = gradient.copy()
        alphas = []
        for s, y in zip(reversed(s_history), reversed(y_history)):
            rho = 1.0 / np.dot(y, s)
            alpha = rho * np.dot(s, q)
            q -= alpha * y
            alphas.append((rho, alpha))

        if s_history:
            s, y = s_history[-1], y_history[-1]
            q *= np.dot(s, y) / np.dot(y, y)

        for (s, y), (rho, alpha) in zip(zip(s_history, y_history), reversed(alphas)):
            beta = rho * np.dot(y, q)
            q += s * (alpha - beta)
        return -q

    def optimize(self, function, coordinates):
        """
        Minimize ``function`` starting from ``coordinates`` (updated in place).

        Returns:
            float: Objective at the final coordinates
        """
        s_history = deque(maxlen=self.num_basis)
        y_history = deque(maxlen=self.num_basis)
        gradient = np.zeros_like(coordinates)
        objective = function.evaluate_with_gradient(coordinates, gradient)

        self.n_iter_ = 0
        while self.max_iterations == 0 or self.n_iter_ < self.max_iterations:
            if not np.isfinite(objective):
                warnings.warn(f"LBFGSOptimizer: objective is {objective}; "
                              "terminating optimization", RuntimeWarning)
                break
            if np.linalg.norm(gradient) < self.min_gradient_norm:
                break

            direction = self._search_direction(gradient, s_history, y_history)
            slope = np.dot(gradient, direction)
            if slope >= 0:
                # Not a descent direction; fall back to steepest descent.
                direction = -gradient
                slope = -np.dot(gradient, gradient)

            old_coordinates = coordinates.copy()
            old_gradient = gradient.copy()
            old_objective = objective

            step = 1.0
            while True:
                coordinates[...] = old_coordinates + step * direction
                objective = function.evaluate(coordinates)
                if objective <= old_objective + self.armijo_constant * step * slope:
                    break
                step *= 0.5
                if step < self.min_step:
                    break

            if step < self.min_step:
                coordinates[...] = old_coordinates
                objective = old_objective
                if self.verbose:
                    print("Line search failed to find a decrease; stopping")
                break

            objective = function.evaluate_with_gradient(coordinates, gradient)
            self.n_iter_ += 1

            s = coordinates - old_coordinates
            y = gradient - old_gradient
            if np.dot(s, y) > 1e-10:
                s_history.append(s)
                y_history.append(y)

            if self.verbose:
                print(f"Iteration {self.n_iter_}, Objective: {objective:.6f}")

            if abs(old_objective - objective) <= self.factr * max(abs(old_objective), abs(objective), 1.0):
                break

        return objective


def get_optimizer(solver='adam', **kwargs):
    """
    Factory function to get optimizer instances.

    Args:
        solver (str): Optimizer type ('sgd', 'adam', 'lbfgs')
        **kwargs: Optimizer-specific parameters

    Returns:
        Optimizer instance
    """
    if solver == 'sgd':
        return SGDOptimizer(**kwargs)
    elif solver == 'adam':
        return AdamOptimizer(**kwargs)
    elif solver == 'lbfgs':
        return LBFGSOptimizer(**kwargs)
    else:
        raise ValueError(f"Unknown solver: {solver}")
