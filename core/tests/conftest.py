"""
Shared fixtures for core tests.

Every test gets its own StepRecorder, so no trace state leaks between
tests.
"""

from typing import Callable

import pytest

from steptrace.tracing import StepRecorder, TraceContext


@pytest.fixture
def recorder() -> StepRecorder:
    """Create a fresh StepRecorder instance for testing."""
    return StepRecorder()


@pytest.fixture
def ctx(recorder: StepRecorder) -> TraceContext:
    """A freshly created trace on the recorder fixture."""
    return recorder.create_env({"a": 1}, "t")


@pytest.fixture
def run_steps(recorder: StepRecorder) -> Callable[..., TraceContext]:
    """
    Factory fixture that applies a series of (node, status) steps.

    Returns:
        A function taking a context and (node, status) pairs and returning
        the context after the last step.
    """

    def _run(ctx: TraceContext, *steps: tuple[str, str]) -> TraceContext:
        for node, status in steps:
            ctx = recorder.step(ctx, node, status)
        return ctx

    return _run
