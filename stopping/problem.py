"""Problem descriptions consumed by the stopping criteria.

A stopping criterion never evaluates a problem itself except through the
optimality functions; it reads the evaluation counters of the problem to
decide whether the budget is exhausted.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Callable, Dict, Optional

import numpy as np
import torch

from .utils import Array, approx_grad, approx_hessian, approx_jacobian

Objective = Callable[[Array], float]
Gradient = Callable[[Array], Array]
Hessian = Callable[[Array], Array]
Constraints = Callable[[Array], Array]
Jacobian = Callable[[Array], Array]


@dataclass
class EvaluationCounters:
    """Number of evaluations of each quantity of a problem."""

    neval_obj: int = 0
    neval_grad: int = 0
    neval_hess: int = 0
    neval_hprod: int = 0
    neval_cons: int = 0
    neval_jac: int = 0

    def as_dict(self) -> Dict[str, int]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    def total(self) -> int:
        return sum(self.as_dict().values())

    def reset(self) -> None:
        for f in fields(self):
            setattr(self, f.name, 0)


class NLPProblem:
    """
    Nonlinear program ``min f(x)`` s.t. ``lcon <= c(x) <= ucon`` and
    ``lvar <= x <= uvar``.

    Every evaluation goes through :meth:`obj`, :meth:`grad`, :meth:`hess`,
    :meth:`hprod`, :meth:`cons` or :meth:`jac`, which update
    :attr:`counters`. Missing derivatives are approximated by central finite
    differences; the objective evaluations they cost are counted as such.

    Args:
        fun: Objective function.
        grad: Gradient of the objective.
        hess: Hessian of the objective.
        cons: Constraint function returning a vector.
        jac: Jacobian of the constraints.
        dim: Number of variables.
        x0: Default starting point (zeros when omitted).
        lvar, uvar: Bounds on the variables (``-inf``/``inf`` when omitted).
        lcon, ucon: Bounds on the constraints (equalities when omitted).
    """

    def __init__(
        self,
        fun: Objective,
        grad: Optional[Gradient] = None,
        hess: Optional[Hessian] = None,
        cons: Optional[Constraints] = None,
        jac: Optional[Jacobian] = None,
        dim: Optional[int] = None,
        x0: Optional[Array] = None,
        lvar: Optional[Array] = None,
        uvar: Optional[Array] = None,
        lcon: Optional[Array] = None,
        ucon: Optional[Array] = None,
    ) -> None:
        if dim is None and x0 is None:
            raise ValueError("NLPProblem needs either dim or x0.")
        self.x0 = np.zeros(dim) if x0 is None else np.asarray(x0, dtype=float).copy()
        self.dim = int(self.x0.size if dim is None else dim)
        if self.x0.size != self.dim:
            raise ValueError(f"x0 has size {self.x0.size}, expected {self.dim}.")
        self._fun = fun
        self._grad = grad
        self._hess = hess
        self._cons = cons
        self._jac = jac
        self.lvar = np.full(self.dim, -np.inf) if lvar is None else np.asarray(lvar, dtype=float)
        self.uvar = np.full(self.dim, np.inf) if uvar is None else np.asarray(uvar, dtype=float)
        self.ncon = 0
        if cons is not None:
            self.ncon = int(np.atleast_1d(np.asarray(cons(self.x0), dtype=float)).size)
        zeros = np.zeros(self.ncon)
        self.lcon = zeros.copy() if lcon is None else np.asarray(lcon, dtype=float)
        self.ucon = zeros.copy() if ucon is None else np.asarray(ucon, dtype=float)
        self.counters = EvaluationCounters()

    @classmethod
    def from_torch(
        cls,
        fun: Callable[[torch.Tensor], torch.Tensor],
        dim: Optional[int] = None,
        **kwargs,
    ) -> "NLPProblem":
        """
        Build a problem whose derivatives come from torch autograd.

        Args:
            fun: Callable taking a 1D float64 tensor and returning a scalar tensor.
            dim: Number of variables.
            **kwargs: Forwarded to the constructor (bounds, x0, constraints).

        Raises:
            ValueError: If ``fun`` does not return a scalar tensor.
        """

        def _value(x: Array) -> torch.Tensor:
            value = fun(torch.as_tensor(x, dtype=torch.float64))
            if value.ndim != 0:
                raise ValueError(
                    f"objective must return a scalar tensor (0D), got shape {tuple(value.shape)}"
                )
            return value

        def objective(x: Array) -> float:
            with torch.no_grad():
                return float(_value(x))

        def gradient(x: Array) -> Array:
            params = torch.as_tensor(x, dtype=torch.float64).clone().requires_grad_(True)
            value = _value(params)
            (grad,) = torch.autograd.grad(value, params)
            return grad.detach().cpu().numpy()

        def hessian(x: Array) -> Array:
            params = torch.as_tensor(x, dtype=torch.float64)
            hess = torch.autograd.functional.hessian(_value, params)
            return hess.detach().cpu().numpy()

        return cls(objective, grad=gradient, hess=hessian, dim=dim, **kwargs)

    @property
    def constrained(self) -> bool:
        return self.ncon > 0

    def obj(self, x: Array) -> float:
        self.counters.neval_obj += 1
        return float(self._fun(np.asarray(x, dtype=float)))

    def grad(self, x: Array) -> Array:
        x = np.asarray(x, dtype=float)
        if self._grad is not None:
            self.counters.neval_grad += 1
            return np.asarray(self._grad(x), dtype=float)
        grad, evals = approx_grad(self._fun, x, return_evals=True)
        self.counters.neval_obj += int(evals)
        return grad

    def hess(self, x: Array) -> Array:
        x = np.asarray(x, dtype=float)
        if self._hess is not None:
            self.counters.neval_hess += 1
            return np.asarray(self._hess(x), dtype=float)
        hess, evals = approx_hessian(self._fun, x, return_evals=True)
        self.counters.neval_obj += int(evals)
        return hess

    def hprod(self, x: Array, v: Array) -> Array:
        """Hessian-vector product."""
        x = np.asarray(x, dtype=float)
        v = np.asarray(v, dtype=float)
        if self._hess is not None:
            self.counters.neval_hprod += 1
            return np.asarray(self._hess(x), dtype=float) @ v
        if self._grad is not None:
            eps = 1e-6
            self.counters.neval_grad += 2
            g_plus = np.asarray(self._grad(x + eps * v), dtype=float)
            g_minus = np.asarray(self._grad(x - eps * v), dtype=float)
            return (g_plus - g_minus) / (2.0 * eps)
        return self.hess(x) @ v

    def cons(self, x: Array) -> Array:
        if self._cons is None:
            return np.zeros(0)
        self.counters.neval_cons += 1
        return np.atleast_1d(np.asarray(self._cons(np.asarray(x, dtype=float)), dtype=float))

    def jac(self, x: Array) -> Array:
        x = np.asarray(x, dtype=float)
        if self._cons is None:
            return np.zeros((0, self.dim))
        if self._jac is not None:
            self.counters.neval_jac += 1
            return np.atleast_2d(np.asarray(self._jac(x), dtype=float))
        jac, evals = approx_jacobian(self._cons, x, return_evals=True)
        self.counters.neval_cons += int(evals)
        return jac

    def reset_counters(self) -> None:
        self.counters.reset()

    def __repr__(self) -> str:
        return f"NLPProblem(dim={self.dim}, ncon={self.ncon})"


class LinearSystem:
    """
    Linear system ``A x = b``.

    Matrix-vector products go through :meth:`prod` and are counted in
    ``counters.neval_hprod``. Passing the counters of another problem, e.g.
    the nonlinear program whose Hessian is ``A``, charges the products to
    that problem.
    """

    def __init__(
        self, A: Array, b: Array, counters: Optional[EvaluationCounters] = None
    ) -> None:
        A = np.asarray(A, dtype=float)
        b = np.asarray(b, dtype=float)
        if A.ndim != 2 or A.shape[0] != b.size:
            raise ValueError(f"incompatible shapes A{A.shape} and b{b.shape}")
        self.A = A
        self.b = b
        self.dim = A.shape[1]
        self._owns_counters = counters is None
        self.counters = EvaluationCounters() if counters is None else counters

    def prod(self, v: Array) -> Array:
        self.counters.neval_hprod += 1
        return self.A @ np.asarray(v, dtype=float)

    def residual(self, x: Array) -> Array:
        return self.prod(x) - self.b

    def reset_counters(self) -> None:
        # Shared counters belong to the problem that supplied them.
        if self._owns_counters:
            self.counters.reset()

    def __repr__(self) -> str:
        return f"LinearSystem(shape={self.A.shape})"


class LineSearchProblem:
    """
    One-dimensional restriction ``h(t) = f(x + t d)`` of a nonlinear program.

    Evaluations are counted on the counters of the underlying problem, so a
    line search consumes the budget of the problem it serves.
    """

    def __init__(self, nlp: NLPProblem, x: Array, d: Array) -> None:
        self.nlp = nlp
        self.x = np.asarray(x, dtype=float).copy()
        self.d = np.asarray(d, dtype=float).copy()

    @property
    def counters(self) -> EvaluationCounters:
        return self.nlp.counters

    def point(self, t: float) -> Array:
        return self.x + t * self.d

    def h(self, t: float) -> float:
        return self.nlp.obj(self.point(t))

    def dh(self, t: float) -> float:
        return float(np.dot(self.nlp.grad(self.point(t)), self.d))

    def reset_counters(self) -> None:
        """Leave the counters of the underlying problem untouched."""


__all__ = [
    "Objective",
    "Gradient",
    "Hessian",
    "Constraints",
    "Jacobian",
    "EvaluationCounters",
    "NLPProblem",
    "LinearSystem",
    "LineSearchProblem",
]
