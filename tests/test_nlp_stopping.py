import numpy as np
import torch

from stopping import NLPAtX, NLPProblem, NLPStopping, StopStatus, unconstrained_check


def test_defaults(quadratic):
    stp = NLPStopping(quadratic)
    assert isinstance(stp.current_state, NLPAtX)
    assert np.array_equal(stp.current_state.x, quadratic.x0)
    assert stp.current_state.x is not quadratic.x0
    assert stp.meta.optimality_check is unconstrained_check


def test_gradient_computed_lazily(quadratic):
    stp = NLPStopping(quadratic)
    assert not stp.update_and_start(x=np.zeros(2))
    assert np.allclose(stp.current_state.gx, [-1.0, -1.0])
    assert quadratic.counters.neval_grad == 1
    assert stp.update_and_stop(x=np.array([1.0, 0.04]), gx=None)
    assert stp.status() is StopStatus.OPTIMAL


def test_fill_in_evaluates_missing_fields(quadratic):
    stp = NLPStopping(quadratic)
    state = stp.fill_in(np.ones(2))
    assert state is stp.current_state
    assert state.fx == quadratic.obj(np.ones(2))
    assert np.allclose(state.Hx, np.diag([1.0, 25.0]))
    assert state.cx is None


def test_fill_in_trusts_supplied_values(quadratic):
    stp = NLPStopping(quadratic)
    stp.fill_in(np.ones(2), fx=3.0, gx=np.zeros(2), matrix_info=False)
    assert quadratic.counters.total() == 0
    assert stp.current_state.fx == 3.0
    assert stp.current_state.Hx is None


def test_fill_in_constrained_problem():
    pb = NLPProblem(
        lambda x: float(x @ x),
        grad=lambda x: 2 * x,
        cons=lambda x: np.array([x.sum()]),
        jac=lambda x: np.ones((1, x.size)),
        dim=3,
    )
    state = NLPStopping(pb).fill_in(np.ones(3), matrix_info=False)
    assert np.allclose(state.cx, [3.0])
    assert state.Jx.shape == (1, 3)


def test_objective_unbounded_below():
    pb = NLPProblem(lambda x: float(-(x @ x)), grad=lambda x: -2 * x, dim=1)
    stp = NLPStopping(pb, unbounded_threshold=100.0)
    stp.start()
    assert not stp.update_and_stop(x=np.array([2.0]), fx=-4.0, gx=None)
    assert stp.update_and_stop(x=np.array([20.0]), fx=-400.0, gx=None)
    assert stp.meta.unbounded_pb
    assert stp.status() is StopStatus.UNBOUNDED


def test_constraint_values_unbounded(quadratic):
    stp = NLPStopping(quadratic, unbounded_threshold=10.0)
    stp.start()
    assert stp.update_and_stop(x=np.ones(2), fx=0.0, cx=np.array([1e3]))
    assert stp.status() is StopStatus.UNBOUNDED


def test_objective_stagnation_stalls_when_enabled(quadratic):
    stp = NLPStopping(quadratic, stalled_delta_check=True)
    stp.update_and_start(x=np.zeros(2), fx=0.0)
    assert not stp.update_and_stop(x=np.array([0.5, 0.0]), fx=-0.375, d=np.array([0.5, 0.0]))
    assert stp.update_and_stop(x=np.array([0.5, 0.1]), fx=-0.375, d=np.array([0.0, 0.1]))
    assert stp.status() is StopStatus.STALLED

    stp.reinit()
    stp.update_and_start(x=np.zeros(2), fx=-0.375)
    assert not stp.update_and_stop(x=np.array([0.5, 0.0]), fx=-0.375, d=np.array([0.5, 0.0]))


def test_accepts_torch_iterates(quadratic):
    stp = NLPStopping(quadratic)
    stp.start()
    assert stp.update_and_stop(x=torch.tensor([1.0, 0.04], dtype=torch.float64), gx=None)
    assert isinstance(stp.current_state.x, np.ndarray)
