"""
Leaf Calibration

Fit the values of selected leaves so that a scalar expression is minimised:

    min_{x}  root(x; constants)

where x is the concatenation of the chosen leaves' values and every other
leaf is held fixed.

The loss comes from forward propagation and its gradient from one restricted
backward sweep: only nodes reachable from the chosen leaves
(Expression.find_non_consts) are expanded, so constant subtrees cost nothing
on the way back. The optimisation itself is scipy.optimize.minimize.
"""

import numpy as np
from typing import Dict, List, Optional, Sequence, Tuple
from dataclasses import dataclass
from scipy.optimize import minimize, OptimizeResult

from ..aad.core.expression import Expression
from ..aad.core.node import Node


@dataclass
class CalibrationConfig:
    """Configuration for leaf calibration."""
    # Optimization
    optimizer: str = 'L-BFGS-B'  # any gradient-based scipy.optimize.minimize method
    max_iterations: int = 200
    tolerance: float = 1e-10

    # Box constraints applied to every element (None = unbounded)
    lower_bound: Optional[float] = None
    upper_bound: Optional[float] = None

    # Logging
    verbose: bool = False


class LeafCalibrator:
    """
    Minimise a scalar expression over the values of some of its leaves.

    Usage:
        >>> w = var([[0.0, 0.0]], name="w")
        >>> target = var([[1.0, 2.0]])
        >>> loss = ops.sum((w - target) ** 2)
        >>> result = LeafCalibrator(Expression(loss), [w]).calibrate()
        >>> result['values'][w]   # ≈ [[1.0, 2.0]]
    """

    def __init__(self,
                 expression: Expression,
                 leaves: Sequence[Node],
                 config: Optional[CalibrationConfig] = None):
        """
        Args:
            expression: Expression with a scalar root (the loss)
            leaves: leaves to fit; must already hold starting values
            config: calibration configuration (defaults if None)
        """
        self.expression = expression
        self.leaves: List[Node] = list(dict.fromkeys(leaves))
        self.config = config or CalibrationConfig()

        if not self.leaves:
            raise ValueError("LeafCalibrator needs at least one leaf to fit")
        for leaf in self.leaves:
            if not leaf.is_leaf():
                raise ValueError(f"{leaf!r} is not a leaf")
            if leaf.value is None:
                raise ValueError(f"{leaf!r} has no starting value")

        self.shapes: List[Tuple[int, ...]] = [leaf.value.shape for leaf in self.leaves]
        self.sizes = [int(np.prod(s)) for s in self.shapes]
        self.n_params = sum(self.sizes)

        # Gradient only flows along paths that start at the fitted leaves
        self.nonconsts = expression.find_non_consts(self.leaves)

        # Optimization history
        self.iteration = 0
        self.loss_history: List[float] = []

    # ------------------------------------------------------------------ #
    def _pack(self) -> np.ndarray:
        return np.concatenate([leaf.value.ravel() for leaf in self.leaves])

    def _unpack(self, x: np.ndarray) -> None:
        offset = 0
        for leaf, shape, size in zip(self.leaves, self.shapes, self.sizes):
            leaf.value = np.asarray(x[offset:offset + size], dtype=np.float64).reshape(shape)
            offset += size

    def _loss(self) -> float:
        root_value = self.expression.propagate()
        if root_value.size != 1:
            raise ValueError(
                f"calibration needs a scalar root, got shape {root_value.shape}"
            )
        return float(root_value.reshape(-1)[0])

    def _objective_function(self, x: np.ndarray) -> float:
        self._unpack(x)
        loss = self._loss()

        self.iteration += 1
        self.loss_history.append(loss)
        if self.config.verbose and self.iteration % 10 == 0:
            print(f"  Iteration {self.iteration}: Loss = {loss:.6e}")
        return loss

    def _objective_gradient(self, x: np.ndarray) -> np.ndarray:
        self._unpack(x)
        self._loss()
        grads = self.expression.gradients(self.leaves, self.nonconsts)
        return np.concatenate([grads[leaf].ravel() for leaf in self.leaves])

    # ------------------------------------------------------------------ #
    def calibrate(self) -> Dict:
        """
        Run the optimisation and leave the fitted values on the leaves.

        Returns:
            Dictionary with:
                - values: {leaf: fitted ndarray}
                - loss: Final loss value
                - n_iterations: Number of optimizer iterations
                - success: Whether optimization succeeded
                - message: Optimization status message
                - loss_history: every loss evaluated
        """
        x0 = self._pack()
        if self.config.verbose:
            print(f"\nCalibrating {len(self.leaves)} leaves ({self.n_params} parameters)...")
            print(f"  Optimizer: {self.config.optimizer}")

        bounds = None
        if self.config.lower_bound is not None or self.config.upper_bound is not None:
            bounds = [(self.config.lower_bound, self.config.upper_bound)] * self.n_params

        self.iteration = 0
        self.loss_history = []

        result: OptimizeResult = minimize(
            fun=self._objective_function,
            x0=x0,
            method=self.config.optimizer,
            jac=self._objective_gradient,
            bounds=bounds,
            tol=self.config.tolerance,
            options={'maxiter': self.config.max_iterations},
        )

        self._unpack(result.x)
        final_loss = self._loss()

        if self.config.verbose:
            print(f"\nCalibration Complete:")
            print(f"  Status: {result.message}")
            print(f"  Iterations: {result.get('nit', 0)}")
            print(f"  Final loss: {final_loss:.6e}")

        return {
            'values': {leaf: leaf.value.copy() for leaf in self.leaves},
            'loss': final_loss,
            'n_iterations': result.get('nit', 0),
            'success': bool(result.success),
            'message': result.message,
            'loss_history': self.loss_history,
        }
