import numpy as np
import pytest

from stopping import LineSearchProblem, LSAtT, LSStopping, NLPProblem, StopStatus
from stopping.optimize.line_search import backtracking, backtracking_armijo, wolfe_line_search


def quadratic_fun(x: np.ndarray) -> float:
    return float(x.T @ x)


def quadratic_grad(x: np.ndarray) -> np.ndarray:
    return 2 * x


def rosen(x: np.ndarray) -> float:
    return (1 - x[0]) ** 2 + 100 * (x[1] - x[0] ** 2) ** 2


def rosen_grad(x: np.ndarray) -> np.ndarray:
    return np.array(
        [
            -2 * (1 - x[0]) - 400 * x[0] * (x[1] - x[0] ** 2),
            200 * (x[1] - x[0] ** 2),
        ]
    )


def test_backtracking_armijo_decreases_objective():
    x = np.array([1.0, -2.0])
    grad = quadratic_grad(x)
    alpha, nevals = backtracking_armijo(quadratic_fun, x, -grad, grad, alpha0=2.0)
    assert 0 < alpha <= 1.0
    assert quadratic_fun(x - alpha * grad) <= quadratic_fun(x)
    assert nevals > 1


def test_backtracking_armijo_raises_on_invalid_params():
    x = np.array([1.0])
    grad = quadratic_grad(x)
    with pytest.raises(ValueError):
        backtracking_armijo(quadratic_fun, x, -grad, grad, c=1.5)
    with pytest.raises(ValueError):
        backtracking_armijo(quadratic_fun, x, -grad, grad, rho=1.1)


def test_wolfe_conditions_rosenbrock():
    x = np.array([-1.2, 1.0])
    grad = rosen_grad(x)
    direction = -grad
    alpha, _ = wolfe_line_search(rosen, rosen_grad, x, direction)
    slope = grad @ direction
    assert rosen(x + alpha * direction) <= rosen(x) + 1e-4 * alpha * slope
    assert abs(rosen_grad(x + alpha * direction) @ direction) <= 0.9 * abs(slope)


def test_wolfe_rejects_ascent_direction():
    x = np.array([1.0, 1.0])
    with pytest.raises(ValueError):
        wolfe_line_search(quadratic_fun, quadratic_grad, x, quadratic_grad(x))
    with pytest.raises(ValueError):
        wolfe_line_search(quadratic_fun, quadratic_grad, x, -x, c1=0.9, c2=0.1)


def test_stopping_driven_backtracking_counts_evaluations():
    nlp = NLPProblem(quadratic_fun, grad=quadratic_grad, dim=1)
    ls = LineSearchProblem(nlp, np.array([1.0]), np.array([-1.0]))
    stp = backtracking(LSStopping(ls, LSAtT(8.0)), rho=0.5)
    assert stp.status() is StopStatus.OPTIMAL
    assert stp.current_state.x == 1.0
    assert stp.meta.nb_of_stop == 3
    # h(0) and h'(0) once, then one value per trial step
    assert nlp.counters.neval_obj == 5
    assert nlp.counters.neval_grad == 1


def test_stopping_driven_backtracking_invalid_rho():
    nlp = NLPProblem(quadratic_fun, grad=quadratic_grad, dim=1)
    ls = LineSearchProblem(nlp, np.array([1.0]), np.array([-1.0]))
    with pytest.raises(ValueError):
        backtracking(LSStopping(ls), rho=1.0)
