"""Recording of the successive states seen by a stopping criterion."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import Any, Deque, Dict, Iterator, List, Optional

from .state import GenericState


@dataclass
class HistoryEntry:
    """
    Snapshot taken after an update of the state.

    Args:
        state: Deep copy of the state.
        nb_of_stop: Number of completed ``stop`` calls at recording time.
        flags: Status flags of the metadata at recording time.
    """

    state: GenericState
    nb_of_stop: int
    flags: Dict[str, bool] = field(default_factory=dict)


class ListStates:
    """
    Ordered history of states.

    Args:
        capacity: Maximum number of entries. Negative means unbounded; a
            positive value turns the history into a ring buffer where the
            oldest entry is dropped silently.

    Raises:
        ValueError: If capacity is 0.
    """

    def __init__(self, capacity: int = -1) -> None:
        if capacity == 0:
            raise ValueError("capacity must be positive, or negative for an unbounded history.")
        self.capacity = capacity
        maxlen: Optional[int] = capacity if capacity > 0 else None
        self._entries: Deque[HistoryEntry] = deque(maxlen=maxlen)

    def append(self, state: GenericState, meta: Any = None) -> HistoryEntry:
        """Record a copy of ``state`` with a snapshot of ``meta``."""
        entry = HistoryEntry(
            state=state.copy(),
            nb_of_stop=int(getattr(meta, "nb_of_stop", 0)),
            flags=meta.status_flags() if meta is not None else {},
        )
        self._entries.append(entry)
        return entry

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[HistoryEntry]:
        return iter(self._entries)

    def __getitem__(self, index: int) -> HistoryEntry:
        return self._entries[index]

    def states(self) -> List[GenericState]:
        return [entry.state for entry in self._entries]

    def values(self, name: str) -> List[Any]:
        """Series of one state field, oldest first."""
        return [getattr(entry.state, name) for entry in self._entries]

    def clear(self) -> None:
        self._entries.clear()

    def __repr__(self) -> str:
        return f"ListStates(capacity={self.capacity}, length={len(self)})"


__all__ = ["HistoryEntry", "ListStates"]
