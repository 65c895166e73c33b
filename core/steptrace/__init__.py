"""steptrace - execution step tracing for hosts without a debugger."""

from steptrace.tracing import (
    StepRecorder,
    StepStatus,
    StepTraceConfig,
    StepTraceError,
    TraceContext,
    format_replay,
)

__version__ = "0.1.0"

__all__ = [
    "StepRecorder",
    "StepStatus",
    "StepTraceConfig",
    "StepTraceError",
    "TraceContext",
    "format_replay",
]
