"""Exceptions raised by the step recorder.

Every failure is a caller-input or protocol violation. None of them are
retried internally, and a rejected step never touches the log or the
trace state.
"""

from __future__ import annotations

from typing import Any


class StepTraceError(Exception):
    """Base exception for step tracing errors."""

    kind: str = "StepTraceError"

    def __init__(self, message: str, trace_id: str | None = None) -> None:
        super().__init__(message)
        self.trace_id = trace_id

    def __str__(self) -> str:
        if self.trace_id:
            return f"{self.kind}(trace={self.trace_id}): {self.args[0]}"
        return f"{self.kind}: {self.args[0]}"


class InvalidPayloadError(StepTraceError):
    """Raised when create_env receives a null or primitive payload."""

    kind = "InvalidPayload"


class InvalidArgumentError(StepTraceError):
    """Raised for a malformed trace id, node name or status."""

    kind = "InvalidArgument"


class InvalidContextError(StepTraceError):
    """Raised when the context is not an object carrying string ids."""

    kind = "InvalidContext"


class UnknownTraceError(StepTraceError):
    """Raised when no trace state exists (never created, or cleared)."""

    kind = "UnknownTrace"


class EnvMismatchError(StepTraceError):
    """
    Raised when the context's env_id differs from the stored one.

    This usually means a context was copied from another trace or forged.
    """

    kind = "EnvMismatch"

    def __init__(self, message: str, trace_id: str, expected: str, actual: Any) -> None:
        super().__init__(message, trace_id)
        self.expected = expected
        self.actual = actual


class InvalidStepIdError(StepTraceError):
    """Raised when step_id is not a non-negative integer."""

    kind = "InvalidStepId"


class OutOfSequenceError(StepTraceError):
    """
    Raised when step_id does not match the number of admitted steps.

    A context that was already consumed by an earlier step, or one that
    jumps ahead, lands here. Two callers racing with the same context
    will see exactly one of them fail this way.
    """

    kind = "OutOfSequence"

    def __init__(self, message: str, trace_id: str, expected: int, actual: int) -> None:
        super().__init__(message, trace_id)
        self.expected = expected
        self.actual = actual


class TraceTerminatedError(StepTraceError):
    """Raised for any step on a trace that already recorded an error."""

    kind = "TraceTerminated"


class NodeTransitionError(StepTraceError):
    """Base for rejected per-node state machine transitions."""

    kind = "NodeTransition"

    def __init__(self, message: str, trace_id: str, node: str, current_status: str) -> None:
        super().__init__(message, trace_id)
        self.node = node
        self.current_status = current_status


class DoubleEnterError(NodeTransitionError):
    kind = "DoubleEnter"


class ExitWithoutEnterError(NodeTransitionError):
    kind = "ExitWithoutEnter"


class ErrorWithoutEnterError(NodeTransitionError):
    kind = "ErrorWithoutEnter"
