"""Switches that selectively disable the checks run by a stopping criterion."""

from __future__ import annotations

from dataclasses import dataclass, fields, replace


@dataclass(frozen=True)
class StopRemoteControl:
    """
    One boolean per check category; setting it to False cancels the check in
    ``start`` and ``stop``.

    Args:
        unbounded_and_domain_x_check: Iterate magnitude check. O(n).
        domain_check: NaN detection in the state. O(n).
        optimality_check: Optimality score test.
        infeasibility_check: Infeasibility hook of specialized stoppings.
        unbounded_problem_check: Objective/constraint magnitude check. O(n).
        tired_check: Wall-clock limit.
        resources_check: Evaluation-count limits.
        stalled_check: Stalling (iteration limit, sub-problem failure).
        iteration_check: Iteration limit part of the stalling check.
        main_pb_check: Budget of the parent problem. O(depth).
        user_check: User-supplied callback.
        cheap_check: Skip the remaining checks as soon as one of them
            requests a halt.
    """

    unbounded_and_domain_x_check: bool = True
    domain_check: bool = True
    optimality_check: bool = True
    infeasibility_check: bool = True
    unbounded_problem_check: bool = True
    tired_check: bool = True
    resources_check: bool = True
    stalled_check: bool = True
    iteration_check: bool = True
    main_pb_check: bool = True
    user_check: bool = True
    cheap_check: bool = False

    def enabled(self) -> list[str]:
        """Names of the checks currently switched on."""
        return [f.name for f in fields(self) if f.name != "cheap_check" and getattr(self, f.name)]


def cheap_stop_remote_control(**overrides: bool) -> StopRemoteControl:
    """
    Return a remote control with the O(n) checks disabled.

    Meant for deeply nested sub-problems whose parent already runs the
    expensive checks. Keyword arguments override the preset.
    """
    preset = StopRemoteControl(
        unbounded_and_domain_x_check=False,
        domain_check=False,
        unbounded_problem_check=False,
        main_pb_check=False,
        cheap_check=True,
    )
    return replace(preset, **overrides)


__all__ = ["StopRemoteControl", "cheap_stop_remote_control"]
