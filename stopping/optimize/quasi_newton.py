"""BFGS driven by an :class:`~stopping.nlp.NLPStopping`.

The final inverse-Hessian approximation is left in
``stp.user_specific_struct`` so that another run can be warm-started from it,
either directly or through :func:`inverse_hessian_from_history`.
"""

from __future__ import annotations

from typing import Callable, Optional

import numpy as np

from ..history import ListStates
from ..logging import get_logger
from ..nlp import NLPStopping
from ..utils import Array, is_pos_def
from .line_search import wolfe_line_search

logger = get_logger(__name__)


def _bfgs_update(inv_hessian: Array, s: Array, y: Array) -> Array:
    """Rank-two update of the inverse Hessian; unchanged when ``y's`` is not positive."""
    ys = float(np.dot(y, s))
    if ys <= 1e-12 * np.linalg.norm(s) * np.linalg.norm(y):
        return inv_hessian
    rho = 1.0 / ys
    identity = np.eye(s.size)
    outer_sy = np.outer(s, y)
    return (
        (identity - rho * outer_sy) @ inv_hessian @ (identity - rho * outer_sy.T)
        + rho * np.outer(s, s)
    )


def bfgs(
    stp: NLPStopping,
    inv_hessian0: Optional[Array] = None,
    line_search: Callable = wolfe_line_search,
) -> NLPStopping:
    """
    Full-memory BFGS with strong Wolfe line search.

    Starts at ``stp.current_state.x`` and iterates until ``stp`` halts.

    Args:
        stp: Stopping of the problem; its state and meta are updated in place.
        inv_hessian0: Initial inverse-Hessian approximation, identity by default.
        line_search: Called as ``line_search(f, grad, x, direction)`` and
            returning ``(alpha, nfev)``.

    Returns:
        ``stp``, with the last inverse Hessian in ``user_specific_struct``.
    """
    pb = stp.pb
    x = np.asarray(stp.current_state.x, dtype=float).copy()
    n = x.size
    if inv_hessian0 is None:
        inv_hessian = np.eye(n)
    else:
        inv_hessian = np.asarray(inv_hessian0, dtype=float).copy()
        if inv_hessian.shape != (n, n):
            raise ValueError(f"inv_hessian0 must have shape {(n, n)}, got {inv_hessian.shape}")

    grad = pb.grad(x)
    OK = stp.update_and_start(x=x, fx=pb.obj(x), gx=grad)
    while not OK:
        direction = -inv_hessian @ grad
        if float(np.dot(grad, direction)) >= 0:
            logger.debug("BFGS direction is not a descent direction; restarting from identity")
            inv_hessian = np.eye(n)
            direction = -grad
        alpha, _ = line_search(pb.obj, pb.grad, x, direction)
        s = alpha * direction
        x_new = x + s
        grad_new = pb.grad(x_new)
        inv_hessian = _bfgs_update(inv_hessian, s, grad_new - grad)
        x, grad = x_new, grad_new
        OK = stp.update_and_stop(x=x, fx=pb.obj(x), gx=grad, d=s)

    stp.user_specific_struct = inv_hessian
    return stp


def inverse_hessian_from_history(history: ListStates) -> Array:
    """
    Inverse-Hessian approximation from the iterates recorded in ``history``.

    The states must carry ``x`` and ``gx``. With ``S`` and ``Y`` the matrices
    of successive differences of iterates and gradients, the secant fit
    ``S Y^+`` is used when ``Y`` has full row rank and its symmetric part is
    positive definite; otherwise the pairs are replayed through BFGS updates
    from a scaled identity.
    """
    points = [
        (np.asarray(state.x, dtype=float), np.asarray(state.gx, dtype=float))
        for state in history.states()
        if state.x is not None and getattr(state, "gx", None) is not None
    ]
    if not points:
        raise ValueError("history holds no state with both x and gx")
    n = points[0][0].size
    pairs = []
    for (x_prev, g_prev), (x_next, g_next) in zip(points, points[1:]):
        s, y = x_next - x_prev, g_next - g_prev
        if float(np.dot(s, y)) > 1e-12 * np.linalg.norm(s) * np.linalg.norm(y):
            pairs.append((s, y))
    if not pairs:
        return np.eye(n)

    S = np.column_stack([s for s, _ in pairs])
    Y = np.column_stack([y for _, y in pairs])
    if np.linalg.matrix_rank(Y) == n:
        fitted = S @ np.linalg.pinv(Y)
        fitted = 0.5 * (fitted + fitted.T)
        if is_pos_def(fitted):
            return fitted
        logger.debug("secant fit is not positive definite; replaying BFGS updates")

    s_last, y_last = pairs[-1]
    inv_hessian = float(np.dot(s_last, y_last) / np.dot(y_last, y_last)) * np.eye(n)
    for s, y in pairs:
        inv_hessian = _bfgs_update(inv_hessian, s, y)
    return inv_hessian


__all__ = ["bfgs", "inverse_hessian_from_history"]
