"""Step tracing: record, validate and replay the steps of an execution flow.

- StepRecorder: opens traces and admits steps through the guard pipeline
- RecordLog / TraceStateTable: in-memory storage owned by a recorder
- replay helpers: ordering, stats, display and JSON export

A trace is one env record plus a dense run of step records (1..n). Every
node inside a trace follows enter -> exit (repeatable) or enter -> error,
and an error closes the whole trace.
"""

from steptrace.tracing.config import StepTraceConfig
from steptrace.tracing.errors import (
    DoubleEnterError,
    EnvMismatchError,
    ErrorWithoutEnterError,
    ExitWithoutEnterError,
    InvalidArgumentError,
    InvalidContextError,
    InvalidPayloadError,
    InvalidStepIdError,
    NodeTransitionError,
    OutOfSequenceError,
    StepTraceError,
    TraceTerminatedError,
    UnknownTraceError,
)
from steptrace.tracing.recorder import StepRecorder
from steptrace.tracing.replay import format_replay, last_good_step
from steptrace.tracing.schemas import (
    EnvRecord,
    NodeState,
    NodeStatus,
    StepRecord,
    StepStatus,
    TraceContext,
    TraceRecord,
    TraceState,
    TraceStats,
    TraceSummary,
)
from steptrace.tracing.store import RecordLog, TraceStateTable

__all__ = [
    "StepRecorder",
    "StepTraceConfig",
    "RecordLog",
    "TraceStateTable",
    "TraceContext",
    "EnvRecord",
    "StepRecord",
    "TraceRecord",
    "StepStatus",
    "NodeStatus",
    "NodeState",
    "TraceState",
    "TraceStats",
    "TraceSummary",
    "format_replay",
    "last_good_step",
    "StepTraceError",
    "InvalidPayloadError",
    "InvalidArgumentError",
    "InvalidContextError",
    "UnknownTraceError",
    "EnvMismatchError",
    "InvalidStepIdError",
    "OutOfSequenceError",
    "TraceTerminatedError",
    "NodeTransitionError",
    "DoubleEnterError",
    "ExitWithoutEnterError",
    "ErrorWithoutEnterError",
]
