"""Stopping criterion for one-dimensional line searches.

The state is an :class:`~stopping.state.LSAtT` whose ``x`` is the step
length ``t``. The optimality functions return scores that vanish when the
step is acceptable:

- Armijo: ``max(h(t) - h(0) - tau_0 * t * h'(0), 0)``
- strong Wolfe curvature: ``max(|h'(t)| + tau_1 * h'(0), 0)``
"""

from __future__ import annotations

from typing import Any, Optional

from .generic import GenericStopping
from .history import ListStates
from .meta import StoppingMeta
from .problem import LineSearchProblem
from .state import LSAtT


def _ensure_origin(pb: LineSearchProblem, state: LSAtT) -> None:
    if state.h0 is None:
        state.update(h0=pb.h(0.0))
    if state.g0 is None:
        state.update(g0=pb.dh(0.0))


def armijo_check(pb: LineSearchProblem, state: LSAtT, tau_0: float = 1e-4) -> float:
    """Sufficient decrease condition."""
    _ensure_origin(pb, state)
    if state.ht is None:
        state.update(ht=pb.h(state.x))
    return max(state.ht - state.h0 - tau_0 * state.x * state.g0, 0.0)


def wolfe_check(pb: LineSearchProblem, state: LSAtT, tau_1: float = 0.99) -> float:
    """Strong Wolfe curvature condition."""
    _ensure_origin(pb, state)
    if state.gt is None:
        state.update(gt=pb.dh(state.x))
    return max(abs(state.gt) + tau_1 * state.g0, 0.0)


def armijo_wolfe_check(
    pb: LineSearchProblem, state: LSAtT, tau_0: float = 1e-4, tau_1: float = 0.99
) -> float:
    """Both the Armijo and the strong Wolfe conditions."""
    return max(armijo_check(pb, state, tau_0=tau_0), wolfe_check(pb, state, tau_1=tau_1))


class LSStopping(GenericStopping):
    """Stopping for line searches, :func:`armijo_check` by default."""

    def __init__(
        self,
        pb: LineSearchProblem,
        current_state: Optional[LSAtT] = None,
        meta: Optional[StoppingMeta] = None,
        main_stp: Optional[GenericStopping] = None,
        history: Optional[ListStates] = None,
        history_capacity: Optional[int] = None,
        user_specific_struct: Any = None,
        **kwargs: Any,
    ) -> None:
        if current_state is None:
            current_state = LSAtT(1.0)
        if meta is None or kwargs:
            kwargs.setdefault("optimality_check", armijo_check)
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

    def fill_in(self, x: Any) -> LSAtT:
        pb = self.pb
        t = float(x)
        state = self.current_state
        state.update(x=t, ht=pb.h(t), gt=pb.dh(t))
        _ensure_origin(pb, state)
        return state


__all__ = ["LSStopping", "armijo_check", "wolfe_check", "armijo_wolfe_check"]
