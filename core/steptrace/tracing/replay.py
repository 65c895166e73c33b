"""Read-only views over the record log and trace state table.

Replay lets a caller see what a flow did after it failed, which is the
whole point when the host offers no debugger:

    try:
        ctx = recorder.step(ctx, "send", "enter")
        ...
    except Exception:
        print(format_replay(recorder.replay(ctx.trace_id)))
        raise

Replay reads only the log. Stats read only the table, apart from the
total record count.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any

from steptrace.tracing.errors import InvalidArgumentError
from steptrace.tracing.schemas import (
    EnvRecord,
    StepRecord,
    TraceRecord,
    TraceState,
    TraceStats,
    TraceSummary,
)
from steptrace.tracing.store import RecordLog, TraceStateTable

logger = logging.getLogger(__name__)


def _replay_order(record: TraceRecord) -> tuple[int, int]:
    if isinstance(record, EnvRecord):
        return (0, 0)
    return (1, record.step_id)


def replay_trace(log: RecordLog, trace_id: str) -> list[TraceRecord]:
    """Return the env record followed by step records in step order.

    Raises:
        InvalidArgumentError: If trace_id is empty or not a string.
    """
    if not isinstance(trace_id, str) or not trace_id:
        raise InvalidArgumentError("trace_id must be a non-empty string")

    records = log.for_trace(trace_id)
    logger.debug(f"Replaying {len(records)} record(s) for trace {trace_id}")
    return sorted(records, key=_replay_order)


def summarize_trace(trace_id: str, state: TraceState) -> TraceSummary:
    return TraceSummary(
        trace_id=trace_id,
        env_id=state.env_id,
        steps=state.last_step_id,
        nodes=len(state.nodes),
        has_error=state.has_critical_error,
        open_nodes=state.open_nodes(),
    )


def collect_stats(log: RecordLog, table: TraceStateTable) -> TraceStats:
    return TraceStats(
        total_records=len(log),
        active_traces=len(table),
        traces=[summarize_trace(trace_id, state) for trace_id, state in table.items()],
    )


def last_good_step(records: list[TraceRecord]) -> StepRecord | None:
    """The last admitted step in a replay, or None if nothing was admitted."""
    steps = [r for r in records if isinstance(r, StepRecord)]
    if not steps:
        return None
    return max(steps, key=lambda r: r.step_id)


def format_replay(records: list[TraceRecord]) -> str:
    """Format a replay for human-readable display."""
    lines = []
    for record in records:
        if isinstance(record, EnvRecord):
            lines.append(f"trace {record.trace_id} ({record.source}) at {record.timestamp}")
            lines.append(f"      Env: {record.env_id}")
            lines.append(f"      Payload: {record.payload!r}")
        else:
            lines.append(record.format_for_display())
    return "\n".join(lines)


def _jsonable(value: Any) -> Any:
    # JSON object keys must be strings
    if isinstance(value, Mapping):
        return {
            key if isinstance(key, str) else str(key): _jsonable(item)
            for key, item in value.items()
        }
    if isinstance(value, list | tuple):
        return [_jsonable(item) for item in value]
    return value


def records_to_json(records: list[TraceRecord], indent: int | None = 2) -> str:
    """Serialise records to a JSON array.

    Non-string mapping keys are stringified and other unknown values fall
    back to str.
    """
    data = [_jsonable(record.model_dump(mode="python")) for record in records]
    return json.dumps(data, indent=indent, ensure_ascii=False, default=str)
