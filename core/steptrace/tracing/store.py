"""In-memory storage for step traces.

Storage layout:
    RecordLog
      [EnvRecord | StepRecord, ...]   # every trace, insertion order
    TraceStateTable
      {trace_id: TraceState}          # one entry per created trace

Nothing here is persisted; both containers live as long as the
StepRecorder that owns them. Neither class locks on its own, the
recorder serialises access.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator

from steptrace.tracing.schemas import TraceRecord, TraceState

logger = logging.getLogger(__name__)


class RecordLog:
    """Append-only ordered log of env and step records for all traces."""

    def __init__(self) -> None:
        self._records: list[TraceRecord] = []

    def append(self, record: TraceRecord) -> None:
        self._records.append(record)

    def records(self) -> list[TraceRecord]:
        """Snapshot of every record. The returned list is the caller's."""
        return list(self._records)

    def for_trace(self, trace_id: str) -> list[TraceRecord]:
        """Records belonging to one trace, in insertion order."""
        return [r for r in self._records if r.trace_id == trace_id]

    def clear(self) -> None:
        self._records.clear()

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[TraceRecord]:
        return iter(list(self._records))


class TraceStateTable:
    """Mapping from trace id to its mutable TraceState."""

    def __init__(self) -> None:
        self._states: dict[str, TraceState] = {}

    def insert(self, trace_id: str, state: TraceState) -> None:
        if trace_id in self._states:
            raise KeyError(f"Trace '{trace_id}' already exists")
        self._states[trace_id] = state

    def get(self, trace_id: str) -> TraceState | None:
        return self._states.get(trace_id)

    def trace_ids(self) -> list[str]:
        return list(self._states)

    def items(self) -> list[tuple[str, TraceState]]:
        return list(self._states.items())

    def clear(self) -> None:
        logger.debug(f"Dropping {len(self._states)} trace state(s)")
        self._states.clear()

    def __contains__(self, trace_id: object) -> bool:
        return trace_id in self._states

    def __len__(self) -> int:
        return len(self._states)
