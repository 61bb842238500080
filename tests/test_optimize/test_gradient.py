import numpy as np

from stopping import NLPStopping, StopStatus
from stopping.optimize import result_from_stopping, steepest_descent


def test_steepest_descent_converges(make_problem):
    problem = make_problem([1.0, 4.0])
    stp = steepest_descent(NLPStopping(problem, atol=1e-6, rtol=0.0, max_iter=1000))
    assert stp.status() is StopStatus.OPTIMAL
    assert np.allclose(stp.current_state.x, [1.0, 0.25], atol=1e-5)
    assert np.abs(stp.current_state.gx).max() <= 1e-6


def test_steepest_descent_objective_decreases(make_problem):
    problem = make_problem([1.0, 4.0])
    stp = NLPStopping(problem, max_iter=20, history_capacity=-1)
    steepest_descent(stp)
    values = stp.history.values("fx")
    assert all(b <= a for a, b in zip(values, values[1:]))


def test_failed_line_search_stalls_outer_loop(quadratic):
    stp = NLPStopping(quadratic)
    steepest_descent(stp, t0=1e3, ls_max_iter=1)
    assert stp.status() is StopStatus.STALLED
    assert stp.meta.fail_sub_pb
    assert np.array_equal(stp.current_state.x, quadratic.x0)
    assert stp.meta.nb_of_stop == 1


def test_line_search_shares_outer_budget(quadratic):
    stp = NLPStopping(quadratic, max_cntrs={"neval_obj": 10})
    res = result_from_stopping(steepest_descent(stp))
    assert res.status is StopStatus.RESOURCES_EXHAUSTED
    assert not stp.meta.fail_sub_pb
    assert res.nfev <= 12


def test_failed_line_search_is_recorded(quadratic):
    stp = NLPStopping(quadratic, history_capacity=-1)
    steepest_descent(stp, t0=1e3, ls_max_iter=1)
    assert [entry.nb_of_stop for entry in stp.history] == [0, 1]
    assert stp.history[-1].flags["stalled"]
