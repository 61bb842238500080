"""Containers for the values an algorithm holds at its current iterate.

A field that has not been computed yet is ``None``. Optimality functions
treat ``None`` as "compute lazily" and never as a number, so a missing value
cannot leak into arithmetic as NaN would.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, fields
from typing import Any, Dict, Optional

import numpy as np
import torch

_TIME_FIELDS = ("start_time", "current_time")


def as_array(value: Any) -> Any:
    """Convert tensors and sequences to float NumPy arrays; keep scalars as floats."""
    if value is None:
        return None
    if isinstance(value, torch.Tensor):
        value = value.detach().cpu().numpy()
    arr = np.asarray(value, dtype=float)
    if arr.ndim == 0:
        return float(arr)
    return arr


@dataclass
class GenericState:
    """
    Minimal state shared by every problem family.

    Args:
        x: Current iterate.
        d: Last step taken, if the algorithm records it.
        res: Residual, if meaningful for the problem.
        current_time: Time stamp of the last update.
        current_score: Last optimality score computed by the stopping.
        start_time: Clock origin, mirrored from the stopping metadata.
    """

    x: Any
    d: Optional[Any] = None
    res: Optional[Any] = None
    current_time: Optional[float] = None
    current_score: Optional[Any] = None
    start_time: Optional[float] = None

    def __post_init__(self) -> None:
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, torch.Tensor):
                setattr(self, f.name, as_array(value))

    def field_names(self) -> list[str]:
        return [f.name for f in fields(self)]

    def update(self, convert: bool = False, **values: Any) -> "GenericState":
        """
        Set the named fields, leaving the others untouched.

        Torch tensors are always converted to NumPy arrays. With
        ``convert=True`` every other value is coerced to float as well.

        Raises
        ------
        AttributeError
            If a name is not a field of this state.
        """
        known = set(self.field_names())
        for name, value in values.items():
            if name not in known:
                raise AttributeError(f"{type(self).__name__} has no field '{name}'.")
            if convert or isinstance(value, torch.Tensor):
                value = as_array(value)
            setattr(self, name, value)
        return self

    def is_unset(self, name: str) -> bool:
        return getattr(self, name) is None

    def has_nan(self) -> bool:
        """Return True if any computed numeric field contains NaN."""
        for f in fields(self):
            if f.name in _TIME_FIELDS:
                continue
            value = getattr(self, f.name)
            if isinstance(value, (float, int, np.number)) and not isinstance(value, bool):
                if np.isnan(value):
                    return True
            elif isinstance(value, np.ndarray) and value.dtype.kind in "fc":
                if np.isnan(value).any():
                    return True
        return False

    def copy(self) -> "GenericState":
        return copy.deepcopy(self)

    def restore(self, other: "GenericState") -> "GenericState":
        """Copy every field of ``other`` into this state, in place."""
        if type(other) is not type(self):
            raise TypeError(
                f"cannot restore a {type(self).__name__} from a {type(other).__name__}"
            )
        for f in fields(self):
            setattr(self, f.name, copy.deepcopy(getattr(other, f.name)))
        return self

    def as_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass
class NLPAtX(GenericState):
    """
    State of a nonlinear program ``min f(x)`` s.t. ``lcon <= c(x) <= ucon``,
    ``lvar <= x <= uvar``.

    Args:
        fx: Objective value.
        gx: Gradient of the objective.
        Hx: Hessian of the objective.
        mu: Multipliers of the bound constraints.
        cx: Constraint values.
        Jx: Constraint Jacobian.
        lambda_: Multipliers of the general constraints.
    """

    fx: Optional[float] = None
    gx: Optional[np.ndarray] = None
    Hx: Optional[np.ndarray] = None
    mu: Optional[np.ndarray] = None
    cx: Optional[np.ndarray] = None
    Jx: Optional[np.ndarray] = None
    lambda_: Optional[np.ndarray] = None


@dataclass
class LSAtT(GenericState):
    """
    State of a one-dimensional line search ``h(t) = f(x + t d)``.

    ``x`` holds the step length ``t``.

    Args:
        ht: Value of ``h`` at ``t``.
        gt: Derivative of ``h`` at ``t``.
        h0: Value of ``h`` at 0.
        g0: Derivative of ``h`` at 0.
    """

    ht: Optional[float] = None
    gt: Optional[float] = None
    h0: Optional[float] = None
    g0: Optional[float] = None


__all__ = ["as_array", "GenericState", "NLPAtX", "LSAtT"]
