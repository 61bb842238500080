"""Optimality functions for nonlinear programs.

Each function has the signature ``(pb, state) -> score`` expected by
``StoppingMeta.optimality_check``. Fields of the state that are still unset
(``None``) are computed from the problem and stored back into the state.
Use :func:`functools.partial` to change ``pnorm``.

References:
    - Nocedal & Wright, *Numerical Optimization* (2006), chapter 12
"""

from __future__ import annotations

import numpy as np

from .problem import NLPProblem
from .state import NLPAtX


def _ensure_gradient(pb: NLPProblem, state: NLPAtX) -> np.ndarray:
    if state.gx is None:
        state.update(gx=pb.grad(state.x))
    return np.asarray(state.gx, dtype=float)


def unconstrained_check(pb: NLPProblem, state: NLPAtX, pnorm: float = np.inf) -> float:
    """Norm of the gradient of the objective."""
    gx = _ensure_gradient(pb, state)
    return float(np.linalg.norm(gx, pnorm))


def unconstrained2nd_check(pb: NLPProblem, state: NLPAtX, pnorm: float = np.inf) -> float:
    """
    Second-order unconstrained residual.

    ``max(||gx||, max(-lambda_min(Hx), 0))``: zero only at points where the
    gradient vanishes and the Hessian is positive semidefinite.
    """
    gx = _ensure_gradient(pb, state)
    if state.Hx is None:
        state.update(Hx=pb.hess(state.x))
    hess = np.asarray(state.Hx, dtype=float)
    # Only the symmetric part carries curvature.
    eigmin = float(np.linalg.eigvalsh(0.5 * (hess + hess.T)).min())
    return max(float(np.linalg.norm(gx, pnorm)), max(-eigmin, 0.0))


def optim_check_bounded(pb: NLPProblem, state: NLPAtX, pnorm: float = np.inf) -> float:
    """Norm of the projected gradient step ``P[x - gx] - x`` on the box ``[lvar, uvar]``."""
    gx = _ensure_gradient(pb, state)
    x = np.asarray(state.x, dtype=float)
    projected = np.clip(x - gx, pb.lvar, pb.uvar)
    return float(np.linalg.norm(projected - x, pnorm))


def _estimate_multipliers(
    gx: np.ndarray, Jx: np.ndarray, bounded: np.ndarray
) -> tuple[np.ndarray, np.ndarray]:
    """Least-squares multipliers of ``gx + mu + Jx^T lambda = 0``.

    Only variables with a finite bound receive a bound multiplier.
    """
    n = gx.size
    columns = [np.eye(n)[:, bounded], Jx.T]
    Jc = np.hstack(columns)
    mu = np.zeros(n)
    if Jc.shape[1] == 0:
        return mu, np.zeros(0)
    sol, *_ = np.linalg.lstsq(Jc, -gx, rcond=None)
    nb = int(bounded.sum())
    mu[bounded] = sol[:nb]
    return mu, sol[nb:]


def kkt_check(pb: NLPProblem, state: NLPAtX, pnorm: float = np.inf) -> float:
    """
    Violation of the first-order KKT conditions.

    Stacks the gradient of the Lagrangian, the primal infeasibility and the
    complementarity of bound and general constraints. When the multipliers
    are unset they are estimated by least squares and stored in the state.
    """
    gx = _ensure_gradient(pb, state)
    x = np.asarray(state.x, dtype=float)
    bounded = np.isfinite(pb.lvar) | np.isfinite(pb.uvar)
    if not pb.constrained and not bounded.any():
        return float(np.linalg.norm(gx, pnorm))

    if state.cx is None:
        state.update(cx=pb.cons(x))
    if state.Jx is None:
        state.update(Jx=pb.jac(x))
    cx = np.asarray(state.cx, dtype=float)
    Jx = np.asarray(state.Jx, dtype=float).reshape(pb.ncon, pb.dim)

    if state.mu is None or state.lambda_ is None:
        mu, lambda_ = _estimate_multipliers(gx, Jx, bounded)
        state.update(mu=mu, lambda_=lambda_)
    mu = np.asarray(state.mu, dtype=float)
    lambda_ = np.asarray(state.lambda_, dtype=float)

    grad_lagrangian = gx + mu + Jx.T @ lambda_
    # Complementarity: a multiplier may be nonzero only on an active bound.
    bounds = np.concatenate(
        [
            np.minimum(np.maximum(mu, 0.0), pb.uvar - x),
            np.minimum(np.maximum(-mu, 0.0), x - pb.lvar),
        ]
    )
    nonlinear = np.concatenate(
        [
            np.minimum(np.maximum(lambda_, 0.0), pb.ucon - cx),
            np.minimum(np.maximum(-lambda_, 0.0), cx - pb.lcon),
        ]
    )
    feasibility = np.concatenate(
        [
            np.maximum(cx - pb.ucon, 0.0),
            np.maximum(pb.lcon - cx, 0.0),
            np.maximum(x - pb.uvar, 0.0),
            np.maximum(pb.lvar - x, 0.0),
        ]
    )
    residual = np.concatenate([grad_lagrangian, feasibility, bounds, nonlinear])
    return float(np.linalg.norm(residual, pnorm))


__all__ = [
    "unconstrained_check",
    "unconstrained2nd_check",
    "optim_check_bounded",
    "kkt_check",
]
