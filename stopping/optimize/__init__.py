"""Small solvers driven by stopping objects.

Example
-------
>>> import numpy as np
>>> from stopping import NLPProblem, NLPStopping
>>> from stopping.optimize import bfgs, result_from_stopping
>>> def rosen(x):
...     return (1 - x[0])**2 + 100 * (x[1] - x[0]**2)**2
>>> def rosen_grad(x):
...     return np.array([
...         -2 * (1 - x[0]) - 400 * x[0] * (x[1] - x[0] ** 2),
...         200 * (x[1] - x[0] ** 2),
...     ])
>>> problem = NLPProblem(rosen, grad=rosen_grad, x0=np.array([-1.2, 1.0]))
>>> res = result_from_stopping(bfgs(NLPStopping(problem, atol=1e-8, rtol=0.0)))
>>> res.status.value
'Optimal'
"""

from .core import OptimizeResult, result_from_stopping
from .gradient import steepest_descent
from .line_search import backtracking, backtracking_armijo, wolfe_line_search
from .newton import cg, newton_cg
from .quasi_newton import bfgs, inverse_hessian_from_history

__all__ = [
    "OptimizeResult",
    "backtracking",
    "backtracking_armijo",
    "bfgs",
    "cg",
    "inverse_hessian_from_history",
    "newton_cg",
    "result_from_stopping",
    "steepest_descent",
    "wolfe_line_search",
]
