"""Resolution of absolute/relative tolerances into comparison thresholds.

A score is declared null when it is below ``tol_check(atol, rtol, opt0)``,
where ``opt0`` is the score measured at the initial iterate. The default rule
is ``max(atol, rtol * opt0)``; alternatives such as ``atol + rtol * opt0``
are passed as plain callables.
"""

from __future__ import annotations

from typing import Callable, Optional, Union

import numpy as np

from .errors import ConfigurationError

Tolerance = Union[float, np.ndarray]
TolCheck = Callable[[Tolerance, Tolerance, Tolerance], Tolerance]


def default_tol_check(atol: Tolerance, rtol: Tolerance, optimality0: Tolerance) -> Tolerance:
    """Return ``max(atol, rtol * optimality0)`` elementwise."""
    value = np.maximum(atol, np.multiply(rtol, optimality0))
    return float(value) if np.ndim(value) == 0 else value


def default_tol_check_neg(atol: Tolerance, rtol: Tolerance, optimality0: Tolerance) -> Tolerance:
    """Return the opposite of :func:`default_tol_check`."""
    return -default_tol_check(atol, rtol, optimality0)


class ThresholdPolicy:
    """Pair of thresholds ``(check_pos, check_neg)`` derived from tolerances.

    Parameters
    ----------
    atol, rtol:
        Absolute and relative tolerances (scalars or arrays).
    optimality0:
        Reference score at the initial iterate.
    tol_check:
        Callable ``(atol, rtol, optimality0) -> threshold``. Defaults to
        :func:`default_tol_check`.
    tol_check_neg:
        Callable producing the lower threshold. Defaults to the opposite of
        ``tol_check``.
    retol:
        When True, every call to :meth:`evaluate` recomputes the thresholds
        from the current tolerances. When False the cached pair is returned,
        which freezes the thresholds.

    Raises
    ------
    ConfigurationError
        If ``check_pos < check_neg`` for any component at construction.
        Recomputations in :meth:`evaluate` are not validated.
    """

    def __init__(
        self,
        atol: Tolerance = 1e-6,
        rtol: Tolerance = 1e-15,
        optimality0: Tolerance = 1.0,
        tol_check: Optional[TolCheck] = None,
        tol_check_neg: Optional[TolCheck] = None,
        retol: bool = True,
    ) -> None:
        self.atol = atol
        self.rtol = rtol
        self.optimality0 = optimality0
        self.tol_check = tol_check if tol_check is not None else default_tol_check
        if tol_check_neg is None:
            positive = self.tol_check

            def tol_check_neg(a: Tolerance, r: Tolerance, o: Tolerance) -> Tolerance:
                value = -np.asarray(positive(a, r, o), dtype=float)
                return float(value) if value.ndim == 0 else value

        self.tol_check_neg = tol_check_neg
        self.retol = retol
        check_pos, check_neg = self._compute()
        if np.any(np.asarray(check_pos) < np.asarray(check_neg)):
            raise ConfigurationError(
                "tol_check should be greater than tol_check_neg "
                f"(check_pos={check_pos}, check_neg={check_neg})."
            )
        self.check_pos, self.check_neg = check_pos, check_neg

    def _compute(self) -> tuple[Tolerance, Tolerance]:
        check_pos = self.tol_check(self.atol, self.rtol, self.optimality0)
        check_neg = self.tol_check_neg(self.atol, self.rtol, self.optimality0)
        return check_pos, check_neg

    def update(
        self,
        atol: Optional[Tolerance] = None,
        rtol: Optional[Tolerance] = None,
        optimality0: Optional[Tolerance] = None,
    ) -> "ThresholdPolicy":
        """Overwrite the supplied tolerances and request a recomputation."""
        self.retol = True
        if atol is not None:
            self.atol = atol
        if rtol is not None:
            self.rtol = rtol
        if optimality0 is not None:
            self.optimality0 = optimality0
        return self

    def evaluate(self) -> tuple[Tolerance, Tolerance]:
        """Return ``(check_pos, check_neg)``, recomputed when ``retol`` is set."""
        if self.retol:
            self.check_pos, self.check_neg = self._compute()
        return self.check_pos, self.check_neg

    def is_null(self, score: Tolerance) -> bool:
        """Return True if every component of ``score`` is below ``check_pos``."""
        check_pos, _ = self.evaluate()
        score_arr = np.asarray(score, dtype=float)
        if np.any(np.isnan(score_arr)):
            return False
        return bool(np.all(score_arr <= np.asarray(check_pos)))

    def __repr__(self) -> str:
        return (
            f"ThresholdPolicy(atol={self.atol!r}, rtol={self.rtol!r}, "
            f"optimality0={self.optimality0!r}, retol={self.retol!r})"
        )


__all__ = [
    "Tolerance",
    "TolCheck",
    "ThresholdPolicy",
    "default_tol_check",
    "default_tol_check_neg",
]
