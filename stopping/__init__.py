"""Stopping criteria for iterative numerical algorithms."""

__version__ = "0.1.0"

# Tolerances and switches
from .admissible import kkt_check, optim_check_bounded, unconstrained2nd_check, unconstrained_check
from .errors import ConfigurationError

# Stopping objects
from .generic import GenericStopping, StopStatus
from .history import HistoryEntry, ListStates
from .line_search import LSStopping, armijo_check, armijo_wolfe_check, wolfe_check
from .linear_algebra import LAStopping, linear_system_check
from .logging import configure_logging, get_logger, set_log_level
from .meta import STATUS_FLAGS, StoppingMeta
from .nlp import NLPStopping

# Problems and states
from .problem import EvaluationCounters, LinearSystem, LineSearchProblem, NLPProblem
from .remote import StopRemoteControl, cheap_stop_remote_control
from .state import GenericState, LSAtT, NLPAtX
from .threshold import ThresholdPolicy, default_tol_check, default_tol_check_neg

__all__ = [
    "__version__",
    # Thresholds and configuration
    "ConfigurationError",
    "STATUS_FLAGS",
    "StopRemoteControl",
    "StoppingMeta",
    "ThresholdPolicy",
    "cheap_stop_remote_control",
    "default_tol_check",
    "default_tol_check_neg",
    # States and history
    "GenericState",
    "HistoryEntry",
    "LSAtT",
    "ListStates",
    "NLPAtX",
    # Problems
    "EvaluationCounters",
    "LineSearchProblem",
    "LinearSystem",
    "NLPProblem",
    # Stopping objects
    "GenericStopping",
    "LAStopping",
    "LSStopping",
    "NLPStopping",
    "StopStatus",
    # Optimality functions
    "armijo_check",
    "armijo_wolfe_check",
    "kkt_check",
    "linear_system_check",
    "optim_check_bounded",
    "unconstrained2nd_check",
    "unconstrained_check",
    "wolfe_check",
    # Logging
    "configure_logging",
    "get_logger",
    "set_log_level",
]
