"""StepRecorder: record and replay the steps of an execution flow.

Meant for hosts with no debugger or stack persistence (serverless
handlers, short-lived workers). The caller opens a trace, then threads
the returned context through every step it records:

    from steptrace import StepRecorder

    recorder = StepRecorder()
    ctx = recorder.create_env({"user_id": "123"}, source="webhook")

    ctx = recorder.step(ctx, "validate", "enter")
    ctx = recorder.step(ctx, "validate", "exit", {"valid": True})

    for record in recorder.replay(ctx.trace_id):
        print(record)

Each step is checked against the live trace state before it is admitted
(see ``steptrace.tracing.guards``). A context can only be used once:
reusing it after it advanced raises OutOfSequenceError, which is how a
forked control flow gets noticed instead of silently reordering steps.

The recorder owns its log and state table. Create one per application
(or per test) and pass it to whatever needs it.
"""

from __future__ import annotations

import copy
import dataclasses
import logging
import threading
import time
import uuid
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel

from steptrace.tracing.config import StepTraceConfig
from steptrace.tracing.errors import InvalidPayloadError, StepTraceError
from steptrace.tracing.guards import StepAdmission, validate_step
from steptrace.tracing.replay import (
    collect_stats,
    records_to_json,
    replay_trace,
    summarize_trace,
)
from steptrace.tracing.schemas import (
    EnvRecord,
    NodeState,
    StepRecord,
    StepStatus,
    TraceContext,
    TraceRecord,
    TraceState,
    TraceStats,
    TraceSummary,
)
from steptrace.tracing.store import RecordLog, TraceStateTable

logger = logging.getLogger(__name__)


def _is_structured(payload: Any) -> bool:
    if isinstance(payload, (Mapping, BaseModel)):
        return True
    return dataclasses.is_dataclass(payload) and not isinstance(payload, type)


class StepRecorder:
    """Records execution steps against traces in a thread-safe manner.

    All store access happens under one lock, so two callers racing with
    the same context see exactly one success and one OutOfSequenceError.
    """

    def __init__(self, config: StepTraceConfig | None = None) -> None:
        self._config = config or StepTraceConfig()
        self._log = RecordLog()
        self._states = TraceStateTable()
        self._lock = threading.Lock()

    @property
    def config(self) -> StepTraceConfig:
        return self._config

    def _get_timestamp(self) -> str:
        """Get current ISO timestamp."""
        return datetime.now(UTC).isoformat()

    def _new_id(self, prefix: str) -> str:
        return f"{prefix}{int(time.time() * 1000)}_{uuid.uuid4().hex}"

    def _snapshot(self, value: Any) -> Any:
        """Deep copy a value if configured to. Uncopyable values are kept as-is."""
        if not self._config.copy_values or value is None:
            return value
        try:
            return copy.deepcopy(value)
        except (TypeError, copy.Error) as e:
            logger.debug(f"Storing {type(value).__name__} by reference: {e}")
            return value

    # ------------------------------------------------------------------
    # Writers
    # ------------------------------------------------------------------

    def create_env(self, payload: Any, source: Any = None) -> TraceContext:
        """Open a new trace.

        Args:
            payload: The data the flow is processing. Must be a mapping or a
                structured record (pydantic model, dataclass instance).
            source: Where the flow came from. Defaults to
                ``config.default_source``.

        Returns:
            A frozen TraceContext with step_id 0.

        Raises:
            InvalidPayloadError: If payload is None or a primitive.
        """
        if payload is None or not _is_structured(payload):
            raise InvalidPayloadError(
                f"payload must be a valid object, got {type(payload).__name__}"
            )

        trace_id = self._new_id(self._config.trace_id_prefix)
        env_id = self._new_id(self._config.env_id_prefix)
        record = EnvRecord(
            trace_id=trace_id,
            env_id=env_id,
            timestamp=self._get_timestamp(),
            source=self._config.default_source if source is None else source,
            payload=self._snapshot(payload),
        )

        with self._lock:
            self._states.insert(trace_id, TraceState(env_id=env_id))
            self._log.append(record)

        logger.debug(f"Created trace {trace_id} (env {env_id}, source {record.source})")
        return TraceContext(trace_id=trace_id, env_id=env_id, step_id=0)

    def step(
        self,
        ctx: TraceContext | Mapping[str, Any],
        node: str,
        status: StepStatus | str = StepStatus.ENTER,
        meta: Any = None,
    ) -> TraceContext:
        """Record one step of a node.

        Args:
            ctx: The context returned by the previous call.
            node: Node name, e.g. ``"validate"``.
            status: ``enter``, ``exit`` or ``error``.
            meta: Optional metadata, stored without interpretation.

        Returns:
            A new frozen TraceContext whose step_id is one higher.

        Raises:
            StepTraceError: The subclass names the guard that rejected the
                step. Nothing is recorded in that case.
        """
        with self._lock:
            try:
                admission = validate_step(self._states, ctx, node, status)
            except StepTraceError as e:
                logger.debug(f"Rejected step {node!r}/{status!r}: {e}")
                raise
            self._apply(admission, meta)

        logger.debug(
            f"Trace {admission.trace_id} step {admission.step_id}: "
            f"{admission.node} {admission.status.value}"
        )
        return TraceContext(
            trace_id=admission.trace_id,
            env_id=admission.env_id,
            step_id=admission.step_id,
        )

    def _apply(self, admission: StepAdmission, meta: Any) -> None:
        """Apply an admitted step. Caller holds the lock."""
        state = self._states.get(admission.trace_id)
        record = StepRecord(
            trace_id=admission.trace_id,
            env_id=admission.env_id,
            step_id=admission.step_id,
            timestamp=self._get_timestamp(),
            node=admission.node,
            status=admission.status,
            meta=self._snapshot(meta),
        )

        node_state = state.nodes.setdefault(admission.node, NodeState())
        node_state.current_status = admission.next_node_status
        node_state.last_step_id = admission.step_id
        state.last_step_id = admission.step_id
        if admission.status == StepStatus.ERROR:
            state.has_critical_error = True
            logger.debug(f"Trace {admission.trace_id} terminated by error in {admission.node!r}")

        self._log.append(record)

    def clear_traces(self) -> None:
        """Drop every trace state and empty the log."""
        with self._lock:
            dropped = len(self._states)
            self._log.clear()
            self._states.clear()
        logger.info(f"Cleared {dropped} trace(s)")

    # ------------------------------------------------------------------
    # Readers
    # ------------------------------------------------------------------

    def _copy_records(
        self, records: list[TraceRecord]
    ) -> list[TraceRecord]:
        return [self._snapshot(record) for record in records]

    def replay(self, trace_id: str) -> list[TraceRecord]:
        """Every record of a trace: env record first, then steps by step_id.

        Unknown traces give an empty list.

        Raises:
            InvalidArgumentError: If trace_id is empty or not a string.
        """
        with self._lock:
            records = replay_trace(self._log, trace_id)
        return self._copy_records(records)

    def replay_json(self, trace_id: str, indent: int | None = 2) -> str:
        """Serialize a replay to JSON."""
        return records_to_json(self.replay(trace_id), indent=indent)

    def get_all_traces(self) -> list[TraceRecord]:
        """Snapshot of every record for every trace, in insertion order."""
        with self._lock:
            records = self._log.records()
        return self._copy_records(records)

    def get_active_traces(self) -> list[str]:
        """Trace ids currently held in the state table."""
        with self._lock:
            return self._states.trace_ids()

    def get_stats(self) -> TraceStats:
        with self._lock:
            return collect_stats(self._log, self._states)

    def get_trace_summary(self, trace_id: str) -> TraceSummary | None:
        with self._lock:
            state = self._states.get(trace_id)
            if state is None:
                return None
            return summarize_trace(trace_id, state)
