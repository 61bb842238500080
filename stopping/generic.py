"""Generic stopping criterion for iterative algorithms.

A :class:`GenericStopping` owns a :class:`~stopping.meta.StoppingMeta` and a
state. The algorithm updates the state and asks the stopping whether to halt:

>>> import numpy as np
>>> from stopping import GenericStopping, GenericState
>>> stp = GenericStopping(None, GenericState(np.ones(2)),
...                       optimality_check=lambda pb, s: float(np.abs(s.x).max()))
>>> stp.update_and_start(x=np.ones(2))
False
>>> stp.update_and_stop(x=np.zeros(2))
True
>>> stp.status()
<StopStatus.OPTIMAL: 'Optimal'>

Besides optimality, every ``stop`` call looks for the classical emergency
exits: unbounded iterate, exhausted time or evaluation budget, stalling, and
the exhaustion of the budget of a parent problem when the stopping belongs to
a sub-problem.
"""

from __future__ import annotations

import math
import time
import weakref
from enum import Enum
from typing import Any, Callable, List, Optional, Union

import numpy as np

from .history import ListStates
from .logging import get_logger
from .meta import StoppingMeta
from .state import GenericState, as_array
from .utils import inf_norm

logger = get_logger(__name__)


class StopStatus(Enum):
    """Outcome of a run, ordered by reporting priority."""

    OPTIMAL = "Optimal"
    UNBOUNDED = "Unbounded"
    STALLED = "Stalled"
    TIRED = "Tired"
    RESOURCES_EXHAUSTED = "ResourcesExhausted"
    RESOURCES_OF_MAIN_PROBLEM_EXHAUSTED = "ResourcesOfMainProblemExhausted"
    INFEASIBLE = "Infeasible"
    DOMAIN_ERROR = "DomainError"
    STOPPED_BY_USER = "StoppedByUser"
    UNKNOWN = "Unknown"


_STATUS_PRIORITY = (
    (StopStatus.OPTIMAL, ("optimal",)),
    (StopStatus.UNBOUNDED, ("unbounded", "unbounded_pb")),
    (StopStatus.STALLED, ("stalled",)),
    (StopStatus.TIRED, ("tired",)),
    (StopStatus.RESOURCES_EXHAUSTED, ("resources",)),
    (StopStatus.RESOURCES_OF_MAIN_PROBLEM_EXHAUSTED, ("main_pb",)),
    (StopStatus.INFEASIBLE, ("infeasible",)),
    (StopStatus.DOMAIN_ERROR, ("domainerror",)),
    (StopStatus.STOPPED_BY_USER, ("stopbyuser",)),
)

# Flags that end a run. ``infeasible`` is reported but left to the algorithm.
_HALTING_FLAGS = (
    "optimal",
    "unbounded",
    "unbounded_pb",
    "tired",
    "stalled",
    "resources",
    "main_pb",
    "domainerror",
    "stopbyuser",
)


def _has_nan(score: Any) -> bool:
    return bool(np.any(np.isnan(np.asarray(score, dtype=float))))


class GenericStopping:
    """
    Stopping criterion for a problem ``pb`` described by a state.

    Args:
        pb: The problem. Never copied; its ``counters`` attribute, when
            present, feeds the resource check.
        current_state: State of the algorithm, mutated in place by
            :meth:`update_and_start` and :meth:`update_and_stop`.
        meta: Metadata. Ignored when keyword arguments are given, in which
            case a new :class:`StoppingMeta` is built from them.
        main_stp: Stopping of the enclosing problem when this one controls
            a sub-problem. Held through a weak reference: the caller keeps
            the parent alive, otherwise the parent check is skipped.
        history: Recorder receiving a copy of the state after each update.
        history_capacity: Builds a :class:`ListStates` of this capacity when
            ``history`` is not given. ``None`` or 0 disables recording,
            a negative value records without bound.
        user_specific_struct: Opaque payload for the algorithm, e.g. a final
            curvature approximation.
        **kwargs: Forwarded to :class:`StoppingMeta`.
    """

    def __init__(
        self,
        pb: Any,
        current_state: GenericState,
        meta: Optional[StoppingMeta] = None,
        main_stp: Optional["GenericStopping"] = None,
        history: Optional[ListStates] = None,
        history_capacity: Optional[int] = None,
        user_specific_struct: Any = None,
        **kwargs: Any,
    ) -> None:
        if kwargs or meta is None:
            meta = StoppingMeta(**kwargs)
        self.pb = pb
        self.meta = meta
        self.current_state = current_state
        self._initial_state = current_state.copy()
        self._main_stp: Optional[weakref.ReferenceType] = None
        self.main_stp = main_stp
        if history is None and history_capacity:
            history = ListStates(history_capacity)
        self.history = history
        self.user_specific_struct = user_specific_struct

    @classmethod
    def from_iterate(cls, pb: Any, x: Any, **kwargs: Any) -> "GenericStopping":
        """Build a stopping with a default :class:`GenericState` at ``x``."""
        return cls(pb, GenericState(as_array(x)), **kwargs)

    @property
    def main_stp(self) -> Optional["GenericStopping"]:
        if self._main_stp is None:
            return None
        parent = self._main_stp()
        if parent is None:
            logger.debug("main_stp was garbage collected, the main problem check is skipped.")
            self._main_stp = None
        return parent

    @main_stp.setter
    def main_stp(self, parent: Optional["GenericStopping"]) -> None:
        ancestor = parent
        while ancestor is not None:
            if ancestor is self:
                raise ValueError("main_stp would create a cycle of stopping objects.")
            ancestor = ancestor.main_stp
        self._main_stp = weakref.ref(parent) if parent is not None else None

    # ------------------------------------------------------------------
    # Start / stop protocol
    # ------------------------------------------------------------------
    def update_and_start(self, **fields: Any) -> bool:
        """Update the state with ``fields`` and call :meth:`start`."""
        self.current_state.update(**fields)
        OK = self.start()
        self._record()
        return OK

    def start(self) -> bool:
        """
        Initialize the clock and the reference score, then test optimality.

        ``optimality0`` is taken from the first call only: a second call
        without :meth:`reinit` keeps the reference score of the first one.

        Returns:
            True if the initial iterate is optimal or cannot be evaluated.
        """
        meta = self.meta
        remote = meta.stop_remote
        state = self.current_state
        now = time.monotonic()
        first_start = math.isnan(meta.start_time)
        if first_start:
            meta.start_time = now
        if state.start_time is None:
            state.start_time = now
        state.current_time = now

        checks = [
            (remote.domain_check, self._domain_check),
            (remote.optimality_check, lambda: self._optimality_test(record_reference=first_start)),
            (remote.user_check, lambda: self._user_check(True)),
        ]
        self._run_checks(checks)
        return bool(meta.optimal or meta.domainerror or meta.stopbyuser)

    def update_and_stop(self, **fields: Any) -> bool:
        """Update the state with ``fields`` and call :meth:`stop`."""
        self.current_state.update(**fields)
        OK = self.stop()
        self._record()
        return OK

    def stop(self) -> bool:
        """
        Run every enabled check on the current state.

        Order: domain, optimality, unboundedness, tiredness, resources,
        stalling, parent problem, infeasibility, user check. The stop
        counter is incremented once per call, whatever the outcome.

        Returns:
            True if the algorithm must halt.
        """
        meta = self.meta
        remote = meta.stop_remote
        self.current_state.current_time = time.monotonic()

        checks = [
            (remote.domain_check, self._domain_check),
            (remote.optimality_check, self._optimality_test),
            (remote.unbounded_and_domain_x_check, self._unbounded_check),
            (remote.unbounded_problem_check, self._unbounded_problem_check),
            (remote.tired_check, self._tired_check),
            (remote.resources_check, self._resources_check),
            (remote.stalled_check, self._stalled_check),
            (remote.main_pb_check and self.main_stp is not None, self._main_pb_check),
            (remote.infeasibility_check, self._infeasibility_check),
            (remote.user_check, lambda: self._user_check(False)),
        ]
        self._run_checks(checks)
        self._add_stop()

        OK = self._halting()
        if OK:
            logger.debug("stop %d: halting with status %s", meta.nb_of_stop, self.status().value)
        return OK

    def reinit(self, reset_state: bool = False, reset_counters: bool = False) -> "GenericStopping":
        """
        Clear the clock, the reference score, the status flags and the stop
        counter so the object can serve another run.

        Args:
            reset_state: Also restore the state to its value at construction.
            reset_counters: Also reset the evaluation counters of the problem.
        """
        meta = self.meta
        meta.start_time = math.nan
        meta.optimality0 = 1.0
        meta.reset_status()
        meta.nb_of_stop = 0
        if reset_state:
            self.current_state.restore(self._initial_state)
        else:
            self.current_state.start_time = None
        if reset_counters:
            reset = getattr(self.pb, "reset_counters", None)
            if callable(reset):
                reset()
        return self

    def fill_in(self, x: Any) -> GenericState:
        """Compute every field of the state needed by the checks at ``x``."""
        raise NotImplementedError(
            f"fill_in is not implemented for {type(self).__name__}; "
            "use a stopping specialized for the problem family."
        )

    def status(self, as_list: bool = False) -> Union[StopStatus, List[StopStatus]]:
        """
        Map the status flags to a :class:`StopStatus`.

        Args:
            as_list: Return every active status in priority order instead
                of the first one.
        """
        active = [
            status
            for status, flags in _STATUS_PRIORITY
            if any(getattr(self.meta, flag) for flag in flags)
        ]
        if not active:
            active = [StopStatus.UNKNOWN]
        return active if as_list else active[0]

    # ------------------------------------------------------------------
    # Individual checks
    # ------------------------------------------------------------------
    def _run_checks(self, checks: list[tuple[bool, Callable[[], Any]]]) -> None:
        cheap = self.meta.stop_remote.cheap_check
        for enabled, check in checks:
            if not enabled:
                continue
            check()
            if cheap and self._halting():
                break

    def _halting(self) -> bool:
        return any(getattr(self.meta, flag) for flag in _HALTING_FLAGS)

    def _add_stop(self) -> None:
        self.meta.nb_of_stop += 1

    def _record(self) -> None:
        if self.history is not None:
            self.history.append(self.current_state, self.meta)

    def _compute_score(self) -> Any:
        return as_array(self.meta.optimality_check(self.pb, self.current_state))

    def _optimality_test(self, record_reference: bool = False) -> bool:
        meta = self.meta
        score = self._compute_score()
        if "current_score" in self.current_state.field_names():
            self.current_state.current_score = score
        if _has_nan(score):
            logger.warning("DomainError: optimality score is NaN (stop call %d).", meta.nb_of_stop)
            meta.domainerror = True
            meta.optimal = False
            return False
        if record_reference and np.all(np.isfinite(score)):
            meta.optimality0 = score
        meta.optimal = self._null_test(score)
        return meta.optimal

    def _null_test(self, score: Any) -> bool:
        return self.meta.thresholds.is_null(score)

    def _domain_check(self) -> bool:
        if self.current_state.has_nan():
            logger.warning("DomainError: the state contains NaN (stop call %d).", self.meta.nb_of_stop)
            self.meta.domainerror = True
        return self.meta.domainerror

    def _unbounded_check(self) -> bool:
        x = self.current_state.x
        self.meta.unbounded = x is not None and inf_norm(x) >= self.meta.unbounded_x
        return self.meta.unbounded

    def _unbounded_problem_check(self) -> bool:
        return self.meta.unbounded_pb

    def _tired_check(self, time_t: Optional[float] = None) -> bool:
        if time_t is None:
            time_t = self.meta.start_time
        if math.isnan(time_t):
            tired = False
        else:
            tired = (time.monotonic() - time_t) > self.meta.max_time
        self.meta.tired = tired
        return tired

    def _resources_check(self) -> bool:
        meta = self.meta
        counters = getattr(self.pb, "counters", None)
        if counters is None:
            meta.resources = False
            return False
        values = counters.as_dict() if hasattr(counters, "as_dict") else dict(counters)
        max_cntrs = any(values.get(name, 0) > limit for name, limit in meta.max_cntrs.items())
        max_evals = sum(values.values()) > meta.max_eval
        max_f = values.get("neval_obj", 0) > meta.max_f
        meta.resources = bool(max_cntrs or max_evals or max_f)
        return meta.resources

    def _small_steps(self) -> bool:
        state = self.current_state
        if state.d is None or state.x is None:
            return False
        return inf_norm(state.d) <= self.meta.stalled_x_rtol * max(1.0, inf_norm(state.x))

    def _stalled_check(self) -> bool:
        meta = self.meta
        # Counts the stop call in progress.
        iteration = meta.nb_of_stop + 1
        meta.iteration_limit = meta.stop_remote.iteration_check and iteration >= meta.max_iter
        small_steps = meta.stalled_delta_check and self._small_steps()
        meta.stalled = bool(meta.iteration_limit or meta.fail_sub_pb or meta.suboptimal or small_steps)
        return meta.stalled

    def _main_pb_check(self) -> bool:
        parent = self.main_stp
        if parent is None:
            self.meta.main_pb = False
            return False
        tired = parent._tired_check(time_t=self.meta.start_time)
        resources = parent._resources_check()
        ancestors = parent._main_pb_check() if parent.main_stp is not None else False
        self.meta.main_pb = bool(tired or resources or ancestors)
        if self.meta.main_pb:
            logger.debug(
                "main problem exhausted (tired=%s, resources=%s, ancestors=%s)",
                tired,
                resources,
                ancestors,
            )
        return self.meta.main_pb

    def _infeasibility_check(self) -> bool:
        return self.meta.infeasible

    def _user_check(self, is_start: bool) -> None:
        func = self.meta.user_check_func
        if func is not None:
            func(self, is_start)

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(pb={self.pb!r}, status={self.status().value}, "
            f"nb_of_stop={self.meta.nb_of_stop})"
        )


__all__ = ["StopStatus", "GenericStopping"]
