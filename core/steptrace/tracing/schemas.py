"""Pydantic schemas for step traces.

Record log layout:
    TraceRecord
    ├── EnvRecord   (one per trace, written by create_env)
    └── StepRecord  (one per admitted step, step_id 1..n)

Server-side state:
    TraceState
    ├── env_id, last_step_id, has_critical_error
    └── nodes: dict[node name, NodeState]

The caller only ever holds a TraceContext. It is frozen so that a stale
token stays stale: the recorder hands out a new one for every admitted step.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


def _now() -> str:
    return datetime.now(UTC).isoformat()


class StepStatus(StrEnum):
    """Status a caller reports for a node."""

    ENTER = "enter"
    EXIT = "exit"
    ERROR = "error"


class NodeStatus(StrEnum):
    """Per-node state machine status."""

    IDLE = "idle"
    ENTERED = "entered"
    EXITED = "exited"
    ERRORED = "errored"


# Status a node lands in after each admitted step
NODE_STATUS_AFTER: dict[StepStatus, NodeStatus] = {
    StepStatus.ENTER: NodeStatus.ENTERED,
    StepStatus.EXIT: NodeStatus.EXITED,
    StepStatus.ERROR: NodeStatus.ERRORED,
}


class TraceContext(BaseModel):
    """Caller-held proof of position within a trace.

    ``step_id`` is the number of steps admitted so far. It doubles as a
    fencing token: presenting an old value after the trace has moved on is
    rejected as out of sequence.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    trace_id: str
    env_id: str
    step_id: int = Field(default=0, ge=0)


class EnvRecord(BaseModel):
    """Environment record written once when a trace is created."""

    model_config = ConfigDict(frozen=True)

    type: Literal["env"] = "env"
    trace_id: str
    env_id: str
    timestamp: str = Field(default_factory=_now)
    source: Any = "unknown"
    payload: Any = None


class StepRecord(BaseModel):
    """A single admitted step."""

    model_config = ConfigDict(frozen=True)

    type: Literal["step"] = "step"
    trace_id: str
    env_id: str
    step_id: int = Field(ge=1)
    timestamp: str = Field(default_factory=_now)
    node: str
    status: StepStatus
    meta: Any = None

    def format_for_display(self) -> str:
        line = f"[{self.step_id:03d}] {self.node} {self.status.value}"
        if self.meta is not None:
            line += f" {self.meta!r}"
        return line


TraceRecord = Annotated[Union[EnvRecord, StepRecord], Field(discriminator="type")]


class NodeState(BaseModel):
    """State machine position of one node within a trace."""

    current_status: NodeStatus = NodeStatus.IDLE
    last_step_id: int = -1


class TraceState(BaseModel):
    """Mutable server-side state for one trace."""

    env_id: str
    last_step_id: int = 0
    has_critical_error: bool = False
    nodes: dict[str, NodeState] = Field(default_factory=dict)

    def open_nodes(self) -> list[str]:
        """Nodes currently entered, in the order they were entered."""
        entered = [
            (state.last_step_id, name)
            for name, state in self.nodes.items()
            if state.current_status == NodeStatus.ENTERED
        ]
        return [name for _, name in sorted(entered)]


class TraceSummary(BaseModel):
    """Per-trace aggregate returned by the stats reader."""

    trace_id: str
    env_id: str
    steps: int = 0
    nodes: int = 0
    has_error: bool = False
    open_nodes: list[str] = Field(default_factory=list)


class TraceStats(BaseModel):
    """Snapshot of the whole recorder."""

    total_records: int = 0
    active_traces: int = 0
    traces: list[TraceSummary] = Field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump()
