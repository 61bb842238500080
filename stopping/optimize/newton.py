"""Truncated Newton method with conjugate-gradient inner solves."""

from __future__ import annotations

from typing import Optional

import numpy as np

from ..generic import StopStatus
from ..linear_algebra import LAStopping
from ..logging import get_logger
from ..nlp import NLPStopping
from ..problem import LinearSystem
from ..state import GenericState

logger = get_logger(__name__)


def cg(stp: LAStopping) -> LAStopping:
    """
    Conjugate gradient for a symmetric positive definite system.

    Starts at ``stp.current_state.x``. A direction of non-positive curvature
    ends the run with ``fail_sub_pb`` set.
    """
    system = stp.pb
    x = np.asarray(stp.current_state.x, dtype=float).copy()
    r = system.residual(x)
    p = -r
    rr = float(np.dot(r, r))
    OK = stp.update_and_start(x=x, res=r)
    while not OK:
        Ap = system.prod(p)
        curvature = float(np.dot(p, Ap))
        if curvature <= 0:
            logger.debug("cg: non-positive curvature %.3e", curvature)
            stp.meta.fail_sub_pb = True
            OK = stp.update_and_stop()
            break
        alpha = rr / curvature
        step = alpha * p
        x = x + step
        r = r + alpha * Ap
        rr_next = float(np.dot(r, r))
        p = -r + (rr_next / rr) * p
        rr = rr_next
        OK = stp.update_and_stop(x=x, res=r, d=step)
    return stp


def newton_cg(
    stp: NLPStopping,
    cg_max_iter: Optional[int] = None,
    forcing: float = 0.5,
) -> NLPStopping:
    """
    Newton's method whose steps are computed by :func:`cg`.

    The inner solve of ``Hx d = -gx`` runs under an :class:`LAStopping`
    nested in ``stp``; its matrix-vector products are charged to
    ``neval_hprod`` of the outer problem. The inner tolerance is
    ``min(forcing, sqrt(||gx||)) * ||gx||``.

    The statuses of the inner runs are collected in
    ``stp.user_specific_struct["inner_status"]``.
    """
    pb = stp.pb
    x = np.asarray(stp.current_state.x, dtype=float).copy()
    inner_status: list[StopStatus] = []
    stp.user_specific_struct = {"inner_status": inner_status}
    if cg_max_iter is None:
        cg_max_iter = 2 * x.size

    gx = pb.grad(x)
    Hx = pb.hess(x)
    OK = stp.update_and_start(x=x, fx=pb.obj(x), gx=gx, Hx=Hx)
    while not OK:
        gnorm = float(np.linalg.norm(gx, np.inf))
        sub_stp = LAStopping(
            LinearSystem(Hx, -gx, counters=pb.counters),
            GenericState(np.zeros_like(x)),
            main_stp=stp,
            atol=min(forcing, np.sqrt(gnorm)) * gnorm,
            rtol=0.0,
            max_iter=cg_max_iter,
        )
        cg(sub_stp)
        inner_status.append(sub_stp.status())
        d = np.asarray(sub_stp.current_state.x, dtype=float)
        if not np.any(d):
            stp.meta.fail_sub_pb = not sub_stp.meta.main_pb
            OK = stp.update_and_stop()
            continue
        x = x + d
        gx = pb.grad(x)
        Hx = pb.hess(x)
        OK = stp.update_and_stop(x=x, fx=pb.obj(x), gx=gx, Hx=Hx, d=d)
    return stp


__all__ = ["cg", "newton_cg"]
