"""Stopping criterion for linear systems ``A x = b``."""

from __future__ import annotations

from typing import Any, Optional

import numpy as np

from .generic import GenericStopping
from .history import ListStates
from .meta import StoppingMeta
from .problem import LinearSystem
from .state import GenericState, as_array


def linear_system_check(pb: LinearSystem, state: GenericState, pnorm: float = np.inf) -> float:
    """Norm of the residual ``A x - b``; computed only when ``state.res`` is unset."""
    if state.res is None:
        state.update(res=pb.residual(state.x))
    return float(np.linalg.norm(np.asarray(state.res, dtype=float), pnorm))


class LAStopping(GenericStopping):
    """
    Stopping for iterative linear solvers.

    The state is a :class:`GenericState` whose ``res`` field holds the
    residual ``A x - b``. Solvers that maintain the residual themselves pass
    it along with ``x``; otherwise it is recomputed, at the cost of one
    matrix-vector product, whenever it is unset.
    """

    def __init__(
        self,
        pb: LinearSystem,
        current_state: Optional[GenericState] = None,
        meta: Optional[StoppingMeta] = None,
        main_stp: Optional[GenericStopping] = None,
        history: Optional[ListStates] = None,
        history_capacity: Optional[int] = None,
        user_specific_struct: Any = None,
        **kwargs: Any,
    ) -> None:
        if current_state is None:
            current_state = GenericState(np.zeros(pb.dim))
        if meta is None or kwargs:
            kwargs.setdefault("optimality_check", linear_system_check)
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

    def fill_in(self, x: Any) -> GenericState:
        x = as_array(x)
        self.current_state.update(x=x, res=self.pb.residual(x))
        return self.current_state


__all__ = ["LAStopping", "linear_system_check"]
