"""Steepest descent with a line search controlled by its own stopping."""

from __future__ import annotations

import numpy as np

from ..generic import StopStatus
from ..line_search import LSStopping
from ..nlp import NLPStopping
from ..problem import LineSearchProblem
from ..state import LSAtT
from .line_search import backtracking


def steepest_descent(
    stp: NLPStopping,
    t0: float = 1.0,
    rho: float = 0.5,
    ls_max_iter: int = 50,
) -> NLPStopping:
    """
    Steepest descent with Armijo backtracking.

    Each line search runs under an :class:`LSStopping` whose ``main_stp`` is
    ``stp``, so it halts as soon as the time or evaluation budget of the
    outer problem is exhausted. A line search that ends without an
    acceptable step for another reason marks the outer stopping as stalled
    through ``fail_sub_pb``. In both cases the iterate is left unchanged.
    """
    pb = stp.pb
    x = np.asarray(stp.current_state.x, dtype=float).copy()
    fx = pb.obj(x)
    gx = pb.grad(x)
    OK = stp.update_and_start(x=x, fx=fx, gx=gx)
    while not OK:
        d = -gx
        ls_stp = LSStopping(
            LineSearchProblem(pb, x, d),
            LSAtT(t0, h0=fx, g0=float(np.dot(gx, d))),
            main_stp=stp,
            max_iter=ls_max_iter,
        )
        backtracking(ls_stp, rho=rho)
        if ls_stp.status() is StopStatus.OPTIMAL:
            t = ls_stp.current_state.x
            x = x + t * d
            fx = ls_stp.current_state.ht
            gx = pb.grad(x)
            OK = stp.update_and_stop(x=x, fx=fx, gx=gx, d=t * d)
        else:
            # An exhausted outer budget is reported by the outer checks.
            stp.meta.fail_sub_pb = not ls_stp.meta.main_pb
            OK = stp.update_and_stop()
    return stp


__all__ = ["steepest_descent"]
