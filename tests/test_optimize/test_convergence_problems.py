"""End-to-end runs of the solvers under a stopping criterion."""

import numpy as np

from stopping import NLPStopping, StopStatus, cheap_stop_remote_control
from stopping.optimize import bfgs, newton_cg, result_from_stopping, steepest_descent


def test_bfgs_reaches_requested_accuracy(ill_conditioned):
    stp = NLPStopping(ill_conditioned, atol=1e-6, rtol=0.0, max_iter=100)
    res = result_from_stopping(bfgs(stp))
    assert res.status is StopStatus.OPTIMAL
    assert res.success
    assert res.message == "Optimal"
    assert np.abs(stp.current_state.gx).max() <= 1e-6
    assert res.nit == stp.meta.nb_of_stop < 100


def test_iteration_limit_with_bounded_history(ill_conditioned):
    stp = NLPStopping(ill_conditioned, atol=1e-6, rtol=0.0, max_iter=5, history_capacity=5)
    res = result_from_stopping(bfgs(stp))
    assert res.status is StopStatus.STALLED
    assert not res.success
    assert res.nit == 5
    # start plus five stops were recorded, the start was evicted
    assert len(stp.history) == 5
    assert [entry.nb_of_stop for entry in stp.history] == [1, 2, 3, 4, 5]
    assert stp.history[-1].flags["stalled"]
    assert len(res.history) == 5
    assert np.array_equal(res.history[-1], res.x)


def test_relative_tolerance_uses_initial_score(ill_conditioned):
    stp = NLPStopping(ill_conditioned, atol=0.0, rtol=1e-3, max_iter=500)
    bfgs(stp)
    assert stp.meta.optimality0 == 100.0
    assert stp.status() is StopStatus.OPTIMAL
    assert np.abs(stp.current_state.gx).max() <= 0.1


def test_reinit_allows_second_run(ill_conditioned):
    stp = NLPStopping(ill_conditioned, atol=1e-6, rtol=0.0, max_iter=5)
    bfgs(stp)
    assert stp.status() is StopStatus.STALLED
    stp.reinit(reset_state=True, reset_counters=True)
    stp.meta.max_iter = 200
    newton_cg(stp)
    assert stp.status() is StopStatus.OPTIMAL


def test_cheap_remote_on_full_run(make_problem):
    stp = NLPStopping(
        make_problem([1.0, 4.0]),
        atol=1e-6,
        rtol=0.0,
        max_iter=1000,
        stop_remote=cheap_stop_remote_control(),
    )
    steepest_descent(stp)
    assert stp.status(as_list=True) == [StopStatus.OPTIMAL]
