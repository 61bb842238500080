"""Stopping criterion for nonlinear programs."""

from __future__ import annotations

from typing import Any, Optional

import numpy as np

from .admissible import unconstrained_check
from .generic import GenericStopping
from .history import ListStates
from .meta import StoppingMeta
from .problem import NLPProblem
from .state import NLPAtX, as_array
from .utils import inf_norm


class NLPStopping(GenericStopping):
    """
    Stopping for ``NLPProblem`` instances with an :class:`NLPAtX` state.

    Defaults to :func:`~stopping.admissible.unconstrained_check` as
    optimality function and to a state at ``pb.x0``. On top of the generic
    checks, the objective is declared unbounded below when
    ``fx <= -unbounded_threshold`` and the constraints when
    ``||cx||_inf >= unbounded_threshold``.
    """

    def __init__(
        self,
        pb: NLPProblem,
        current_state: Optional[NLPAtX] = None,
        meta: Optional[StoppingMeta] = None,
        main_stp: Optional[GenericStopping] = None,
        history: Optional[ListStates] = None,
        history_capacity: Optional[int] = None,
        user_specific_struct: Any = None,
        **kwargs: Any,
    ) -> None:
        if current_state is None:
            current_state = NLPAtX(pb.x0.copy())
        if meta is None or kwargs:
            kwargs.setdefault("optimality_check", unconstrained_check)
        super().__init__(
            pb,
            current_state,
            meta=meta,
            main_stp=main_stp,
            history=history,
            history_capacity=history_capacity,
            user_specific_struct=user_specific_struct,
            **kwargs,
        )
        self._previous_fx: Optional[float] = None

    def fill_in(
        self,
        x: Any,
        fx: Optional[float] = None,
        gx: Optional[np.ndarray] = None,
        Hx: Optional[np.ndarray] = None,
        cx: Optional[np.ndarray] = None,
        Jx: Optional[np.ndarray] = None,
        lambda_: Optional[np.ndarray] = None,
        mu: Optional[np.ndarray] = None,
        matrix_info: bool = True,
    ) -> NLPAtX:
        """
        Evaluate every quantity the optimality functions need at ``x``.

        Supplied values are trusted and not recomputed. The Hessian is only
        evaluated when ``matrix_info`` is True, the constraints only for a
        constrained problem. Multipliers are left to the caller.
        """
        pb = self.pb
        x = as_array(x)
        values: dict[str, Any] = {
            "x": x,
            "fx": pb.obj(x) if fx is None else fx,
            "gx": pb.grad(x) if gx is None else gx,
            "Hx": pb.hess(x) if Hx is None and matrix_info else Hx,
            "lambda_": lambda_,
            "mu": mu,
        }
        if pb.constrained:
            values["cx"] = pb.cons(x) if cx is None else cx
            values["Jx"] = pb.jac(x) if Jx is None else Jx
        self.current_state.update(**values)
        return self.current_state

    def stop(self) -> bool:
        OK = super().stop()
        self._previous_fx = self.current_state.fx
        return OK

    def reinit(self, reset_state: bool = False, reset_counters: bool = False) -> "NLPStopping":
        super().reinit(reset_state=reset_state, reset_counters=reset_counters)
        self._previous_fx = None
        return self

    def _unbounded_problem_check(self) -> bool:
        state = self.current_state
        threshold = self.meta.unbounded_threshold
        f_too_large = state.fx is not None and state.fx <= -threshold
        c_too_large = (
            state.cx is not None
            and np.size(state.cx) > 0
            and inf_norm(state.cx) >= threshold
        )
        self.meta.unbounded_pb = bool(f_too_large or c_too_large)
        return self.meta.unbounded_pb

    def _small_steps(self) -> bool:
        fx = self.current_state.fx
        small_f = (
            fx is not None
            and self._previous_fx is not None
            and abs(fx - self._previous_fx) <= self.meta.stalled_f_rtol * max(1.0, abs(fx))
        )
        return super()._small_steps() or small_f


__all__ = ["NLPStopping"]
