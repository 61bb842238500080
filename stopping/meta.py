"""Configuration and status record of a stopping criterion."""

from __future__ import annotations

import math
import sys
from typing import Any, Callable, Dict, Optional

from .errors import ConfigurationError
from .remote import StopRemoteControl
from .threshold import ThresholdPolicy, TolCheck, Tolerance

OptimalityCheck = Callable[[Any, Any], Any]
UserCheck = Callable[[Any, bool], None]

STATUS_FLAGS = (
    "fail_sub_pb",
    "unbounded",
    "unbounded_pb",
    "tired",
    "stalled",
    "iteration_limit",
    "resources",
    "optimal",
    "infeasible",
    "main_pb",
    "domainerror",
    "suboptimal",
    "stopbyuser",
)


def _no_optimality_check(pb: Any, state: Any) -> float:
    return math.inf


class StoppingMeta:
    """
    Tolerances, resource limits and status flags of a stopping criterion.

    The record is mutable: the owning stopping object writes the status
    flags and the counters, while ``fail_sub_pb``, ``suboptimal`` and
    ``infeasible`` may also be raised by the algorithm itself.

    Parameters
    ----------
    atol, rtol, optimality0, tol_check, tol_check_neg, retol:
        Forwarded to :class:`~stopping.threshold.ThresholdPolicy`.
    optimality_check:
        Callable ``(pb, state) -> score`` compared to the thresholds. It
        returns NaN, rather than raising, when the score cannot be evaluated.
    unbounded_threshold:
        Beyond this value the problem is declared unbounded.
    unbounded_x:
        Beyond this value ``||x||_inf`` is declared unbounded.
    max_f:
        Maximum number of objective evaluations.
    max_cntrs:
        Per-counter limits, e.g. ``{"neval_grad": 100}``.
    max_eval:
        Maximum total number of evaluations (all counters summed).
    max_iter:
        Maximum number of ``stop`` calls.
    max_time:
        Wall-clock budget in seconds.
    start_time:
        Monotonic clock origin; NaN until ``start`` sets it.
    meta_user_struct:
        Opaque payload carried along for the user.
    user_check_func:
        Callable ``(stopping, is_start)`` run at the end of ``start`` and
        ``stop``; it may set ``stopbyuser``.
    stop_remote:
        Switches disabling individual checks.
    stalled_delta_check, stalled_x_rtol, stalled_f_rtol:
        Stall on small successive steps. Inactive by default.
    """

    def __init__(
        self,
        *,
        atol: Tolerance = 1e-6,
        rtol: Tolerance = 1e-15,
        optimality0: Tolerance = 1.0,
        tol_check: Optional[TolCheck] = None,
        tol_check_neg: Optional[TolCheck] = None,
        optimality_check: OptimalityCheck = _no_optimality_check,
        retol: bool = True,
        unbounded_threshold: float = 1.0e50,
        unbounded_x: float = 1.0e50,
        max_f: int = sys.maxsize,
        max_cntrs: Optional[Dict[str, int]] = None,
        max_eval: int = 20000,
        max_iter: int = 5000,
        max_time: float = 300.0,
        start_time: float = math.nan,
        meta_user_struct: Any = None,
        user_check_func: Optional[UserCheck] = None,
        stop_remote: Optional[StopRemoteControl] = None,
        stalled_delta_check: bool = False,
        stalled_x_rtol: float = 1e-12,
        stalled_f_rtol: float = 1e-12,
    ) -> None:
        for name, value in (("max_f", max_f), ("max_eval", max_eval), ("max_iter", max_iter)):
            if value < 0:
                raise ConfigurationError(f"{name} must be non-negative, got {value}.")
        if max_time < 0:
            raise ConfigurationError(f"max_time must be non-negative, got {max_time}.")
        limits = dict(max_cntrs or {})
        for key, value in limits.items():
            if value < 0:
                raise ConfigurationError(f"max_cntrs[{key!r}] must be non-negative, got {value}.")

        self.thresholds = ThresholdPolicy(
            atol=atol,
            rtol=rtol,
            optimality0=optimality0,
            tol_check=tol_check,
            tol_check_neg=tol_check_neg,
            retol=retol,
        )
        self.optimality_check = optimality_check

        self.unbounded_threshold = unbounded_threshold
        self.unbounded_x = unbounded_x

        self.max_f = max_f
        self.max_cntrs = limits
        self.max_eval = max_eval
        self.max_iter = max_iter
        self.max_time = float(max_time)

        self.stalled_delta_check = stalled_delta_check
        self.stalled_x_rtol = stalled_x_rtol
        self.stalled_f_rtol = stalled_f_rtol

        self.nb_of_stop = 0
        self.start_time = float(start_time)

        self.meta_user_struct = meta_user_struct
        self.user_check_func = user_check_func
        self.stop_remote = stop_remote if stop_remote is not None else StopRemoteControl()

        self.reset_status()

    # Tolerances live in the threshold policy.
    @property
    def atol(self) -> Tolerance:
        return self.thresholds.atol

    @atol.setter
    def atol(self, value: Tolerance) -> None:
        self.thresholds.atol = value

    @property
    def rtol(self) -> Tolerance:
        return self.thresholds.rtol

    @rtol.setter
    def rtol(self, value: Tolerance) -> None:
        self.thresholds.rtol = value

    @property
    def optimality0(self) -> Tolerance:
        return self.thresholds.optimality0

    @optimality0.setter
    def optimality0(self, value: Tolerance) -> None:
        self.thresholds.optimality0 = value

    @property
    def retol(self) -> bool:
        return self.thresholds.retol

    @retol.setter
    def retol(self, value: bool) -> None:
        self.thresholds.retol = value

    def update_tol(
        self,
        atol: Optional[Tolerance] = None,
        rtol: Optional[Tolerance] = None,
        optimality0: Optional[Tolerance] = None,
    ) -> "StoppingMeta":
        """Overwrite the supplied tolerances; thresholds are recomputed on next read."""
        self.thresholds.update(atol=atol, rtol=rtol, optimality0=optimality0)
        return self

    def tol_check(self) -> tuple[Tolerance, Tolerance]:
        """Return the current ``(check_pos, check_neg)`` thresholds."""
        return self.thresholds.evaluate()

    def reset_status(self) -> None:
        """Set every status flag to False."""
        for flag in STATUS_FLAGS:
            setattr(self, flag, False)

    def status_flags(self) -> Dict[str, bool]:
        return {flag: bool(getattr(self, flag)) for flag in STATUS_FLAGS}

    def __repr__(self) -> str:
        active = [flag for flag, value in self.status_flags().items() if value]
        return (
            f"StoppingMeta(atol={self.atol!r}, rtol={self.rtol!r}, "
            f"max_iter={self.max_iter}, max_time={self.max_time}, "
            f"nb_of_stop={self.nb_of_stop}, active={active})"
        )


__all__ = ["StoppingMeta", "STATUS_FLAGS", "OptimalityCheck", "UserCheck"]
