import numpy as np
import pytest
import torch

from stopping import EvaluationCounters, LinearSystem, LineSearchProblem, NLPProblem


def test_counters_total_and_reset():
    counters = EvaluationCounters(neval_obj=2, neval_grad=3)
    assert counters.total() == 5
    assert counters.as_dict()["neval_grad"] == 3
    counters.reset()
    assert counters.total() == 0


def test_problem_needs_dimension():
    with pytest.raises(ValueError):
        NLPProblem(lambda x: 0.0)
    with pytest.raises(ValueError):
        NLPProblem(lambda x: 0.0, dim=3, x0=np.zeros(2))


def test_evaluations_are_counted(quadratic):
    x = np.array([1.0, 1.0])
    quadratic.obj(x)
    quadratic.grad(x)
    quadratic.grad(x)
    quadratic.hess(x)
    quadratic.hprod(x, np.ones(2))
    counters = quadratic.counters
    assert (counters.neval_obj, counters.neval_grad, counters.neval_hess) == (1, 2, 1)
    assert counters.neval_hprod == 1
    quadratic.reset_counters()
    assert quadratic.counters.total() == 0


def test_finite_difference_gradient_charges_objective():
    pb = NLPProblem(lambda x: float(x @ x), dim=3)
    grad = pb.grad(np.array([1.0, 2.0, 3.0]))
    assert np.allclose(grad, [2.0, 4.0, 6.0], atol=1e-5)
    assert pb.counters.neval_obj == 6
    assert pb.counters.neval_grad == 0


def test_unconstrained_defaults():
    pb = NLPProblem(lambda x: 0.0, dim=2)
    assert not pb.constrained
    assert np.all(np.isinf(pb.lvar))
    assert pb.cons(np.zeros(2)).size == 0
    assert pb.jac(np.zeros(2)).shape == (0, 2)


def test_constraints_and_finite_difference_jacobian():
    pb = NLPProblem(
        lambda x: float(x @ x),
        cons=lambda x: np.array([x[0] + 2 * x[1]]),
        dim=2,
        ucon=np.array([1.0]),
        lcon=np.array([-np.inf]),
    )
    assert pb.constrained
    assert pb.ncon == 1
    jac = pb.jac(np.zeros(2))
    assert np.allclose(jac, [[1.0, 2.0]], atol=1e-6)
    assert pb.counters.neval_jac == 0
    assert pb.counters.neval_cons == 4


def test_from_torch_uses_autograd():
    pb = NLPProblem.from_torch(lambda x: (x**2).sum() + x[0] * x[1], dim=2)
    x = np.array([1.0, 2.0])
    assert pb.obj(x) == pytest.approx(7.0)
    assert np.allclose(pb.grad(x), [4.0, 5.0])
    assert np.allclose(pb.hess(x), [[2.0, 1.0], [1.0, 2.0]])
    assert pb.counters.neval_grad == 1
    assert pb.counters.neval_hess == 1


def test_from_torch_rejects_non_scalar_objective():
    pb = NLPProblem.from_torch(lambda x: x * 2.0, dim=2)
    with pytest.raises(ValueError):
        pb.obj(np.zeros(2))


def test_linear_system_counts_products():
    system = LinearSystem(np.diag([1.0, 2.0]), np.array([1.0, 1.0]))
    assert np.allclose(system.residual(np.array([1.0, 0.5])), [0.0, 0.0])
    assert system.counters.neval_hprod == 1


def test_linear_system_can_share_counters(quadratic):
    system = LinearSystem(np.eye(2), np.ones(2), counters=quadratic.counters)
    system.prod(np.ones(2))
    assert quadratic.counters.neval_hprod == 1


def test_linear_system_shape_mismatch():
    with pytest.raises(ValueError):
        LinearSystem(np.eye(2), np.ones(3))


def test_line_search_problem_restricts_objective(quadratic):
    x = np.zeros(2)
    d = np.array([1.0, 0.0])
    ls = LineSearchProblem(quadratic, x, d)
    assert ls.h(0.0) == pytest.approx(0.0)
    assert ls.h(1.0) == pytest.approx(-0.5)
    assert ls.dh(1.0) == pytest.approx(0.0)
    assert ls.counters is quadratic.counters
    assert quadratic.counters.neval_obj == 2


def test_tensor_inputs_accepted():
    pb = NLPProblem(lambda x: float(np.sum(x)), x0=torch.zeros(2).numpy())
    assert pb.dim == 2


def test_linear_system_resets_only_own_counters(quadratic):
    shared = LinearSystem(np.eye(2), np.ones(2), counters=quadratic.counters)
    own = LinearSystem(np.eye(2), np.ones(2))
    shared.prod(np.ones(2))
    own.prod(np.ones(2))
    shared.reset_counters()
    own.reset_counters()
    assert quadratic.counters.neval_hprod == 1
    assert own.counters.neval_hprod == 0


def test_line_search_problem_does_not_reset_nlp_counters(quadratic):
    ls = LineSearchProblem(quadratic, np.zeros(2), np.ones(2))
    ls.h(1.0)
    ls.reset_counters()
    assert quadratic.counters.neval_obj == 1
