"""Result container shared by the example solvers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np

from ..generic import GenericStopping, StopStatus

Array = np.ndarray


@dataclass
class OptimizeResult:
    """Summary of a run driven by a stopping object."""

    x: Array
    fun: Optional[float]
    nit: int
    status: StopStatus
    success: bool
    message: str
    grad_norm: Optional[float]
    nfev: int
    njev: int
    nhev: int
    history: List[Array] = field(default_factory=list)


def result_from_stopping(stp: GenericStopping) -> OptimizeResult:
    """Build an :class:`OptimizeResult` from the final state of ``stp``."""
    state = stp.current_state
    status = stp.status()
    gx = getattr(state, "gx", None)
    counters = getattr(stp.pb, "counters", None)
    history = [] if stp.history is None else [np.asarray(x, dtype=float) for x in stp.history.values("x")]
    fx = getattr(state, "fx", None)
    return OptimizeResult(
        x=np.asarray(state.x, dtype=float),
        fun=None if fx is None else float(fx),
        nit=stp.meta.nb_of_stop,
        status=status,
        success=status is StopStatus.OPTIMAL,
        message=", ".join(s.value for s in stp.status(as_list=True)),
        grad_norm=None if gx is None else float(np.linalg.norm(gx)),
        nfev=0 if counters is None else counters.neval_obj,
        njev=0 if counters is None else counters.neval_grad,
        nhev=0 if counters is None else counters.neval_hess + counters.neval_hprod,
        history=history,
    )


__all__ = ["Array", "OptimizeResult", "result_from_stopping"]
