"""Guard pipeline for admitting a step.

Guards run in a fixed order and the first violation wins:

1. context shape        -> InvalidContextError
2. trace existence      -> UnknownTraceError
3. identity integrity   -> EnvMismatchError
4. step sequencing      -> InvalidStepIdError / OutOfSequenceError
5. terminal-error lock  -> TraceTerminatedError
6. node state machine   -> DoubleEnterError / ExitWithoutEnterError /
                           ErrorWithoutEnterError (InvalidArgumentError for
                           a bad node name or status)

Node state machine::

    idle --enter--> entered --exit--> exited --enter--> entered ...
                    entered --error--> errored   (locks the whole trace)

Nothing in this module mutates state. ``validate_step`` returns a
StepAdmission and the recorder applies it.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from steptrace.tracing.errors import (
    DoubleEnterError,
    EnvMismatchError,
    ErrorWithoutEnterError,
    ExitWithoutEnterError,
    InvalidArgumentError,
    InvalidContextError,
    InvalidStepIdError,
    OutOfSequenceError,
    TraceTerminatedError,
    UnknownTraceError,
)
from steptrace.tracing.schemas import (
    NODE_STATUS_AFTER,
    NodeStatus,
    StepStatus,
    TraceState,
)
from steptrace.tracing.store import TraceStateTable


@dataclass(frozen=True)
class StepAdmission:
    """A step that passed every guard and is ready to be applied."""

    trace_id: str
    env_id: str
    step_id: int
    node: str
    status: StepStatus
    next_node_status: NodeStatus


def _field(ctx: Any, name: str) -> Any:
    if isinstance(ctx, Mapping):
        return ctx.get(name)
    return getattr(ctx, name, None)


def read_context(ctx: Any) -> tuple[str, str, Any]:
    """Guard 1: pull (trace_id, env_id, step_id) out of a context-like object."""
    if ctx is None or isinstance(ctx, (str, bytes, int, float)):
        raise InvalidContextError(f"context must be an object, got {type(ctx).__name__}")

    trace_id = _field(ctx, "trace_id")
    env_id = _field(ctx, "env_id")
    if not isinstance(trace_id, str) or not trace_id:
        raise InvalidContextError("context missing trace_id")
    if not isinstance(env_id, str) or not env_id:
        raise InvalidContextError("context missing env_id", trace_id)
    return trace_id, env_id, _field(ctx, "step_id")


def require_trace(table: TraceStateTable, trace_id: str) -> TraceState:
    """Guard 2."""
    state = table.get(trace_id)
    if state is None:
        raise UnknownTraceError(f"no trace state found for trace_id {trace_id}", trace_id)
    return state


def check_env(state: TraceState, trace_id: str, env_id: str) -> None:
    """Guard 3."""
    if env_id != state.env_id:
        raise EnvMismatchError(
            f"env_id mismatch - expected {state.env_id}, got {env_id}",
            trace_id,
            expected=state.env_id,
            actual=env_id,
        )


def check_sequence(state: TraceState, trace_id: str, step_id: Any) -> int:
    """Guard 4: step_id must be exactly the number of admitted steps."""
    if isinstance(step_id, bool) or not isinstance(step_id, int) or step_id < 0:
        raise InvalidStepIdError(
            f"invalid step_id {step_id!r} - must be a non-negative integer", trace_id
        )
    if step_id != state.last_step_id:
        raise OutOfSequenceError(
            f"step_id out of sequence - expected {state.last_step_id}, got {step_id}",
            trace_id,
            expected=state.last_step_id,
            actual=step_id,
        )
    return step_id


def check_not_terminated(state: TraceState, trace_id: str) -> None:
    """Guard 5."""
    if state.has_critical_error:
        raise TraceTerminatedError(
            f"trace {trace_id} is in error state, cannot continue", trace_id
        )


def coerce_status(status: Any, trace_id: str | None = None) -> StepStatus:
    try:
        return StepStatus(status)
    except ValueError:
        allowed = ", ".join(s.value for s in StepStatus)
        raise InvalidArgumentError(
            f"status must be one of {allowed}, got {status!r}", trace_id
        ) from None


def check_transition(
    state: TraceState, trace_id: str, node: Any, status: Any
) -> tuple[StepStatus, NodeStatus]:
    """Guard 6: per-node state machine.

    An unseen node is treated as idle without being added to the state.
    """
    if not isinstance(node, str) or not node:
        raise InvalidArgumentError(f"node must be a non-empty string, got {node!r}", trace_id)
    step_status = coerce_status(status, trace_id)

    node_state = state.nodes.get(node)
    current = node_state.current_status if node_state else NodeStatus.IDLE

    if step_status == StepStatus.ENTER:
        if current == NodeStatus.ENTERED:
            raise DoubleEnterError(
                f"node '{node}' already entered - must exit before entering again",
                trace_id,
                node=node,
                current_status=current.value,
            )
    elif step_status == StepStatus.EXIT:
        if current != NodeStatus.ENTERED:
            raise ExitWithoutEnterError(
                f"node '{node}' cannot exit - not currently entered (status: {current.value})",
                trace_id,
                node=node,
                current_status=current.value,
            )
    elif current != NodeStatus.ENTERED:
        raise ErrorWithoutEnterError(
            f"node '{node}' cannot error - not currently entered (status: {current.value})",
            trace_id,
            node=node,
            current_status=current.value,
        )

    return step_status, NODE_STATUS_AFTER[step_status]


def validate_step(table: TraceStateTable, ctx: Any, node: Any, status: Any) -> StepAdmission:
    """Run every guard in order and describe the step to admit."""
    trace_id, env_id, step_id = read_context(ctx)
    state = require_trace(table, trace_id)
    check_env(state, trace_id, env_id)
    current = check_sequence(state, trace_id, step_id)
    check_not_terminated(state, trace_id)
    step_status, next_node_status = check_transition(state, trace_id, node, status)

    return StepAdmission(
        trace_id=trace_id,
        env_id=env_id,
        step_id=current + 1,
        node=node,
        status=step_status,
        next_node_status=next_node_status,
    )
