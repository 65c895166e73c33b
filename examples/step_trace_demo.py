#!/usr/bin/env python3
"""
Demo: Step tracing, replaying what a handler did when there is no debugger.

This script walks through four scenarios:
1. Recording a simple enter/exit flow
2. A node that errors and closes its trace
3. An API-style handler that reports its trace id
4. Catching a stale (forked) context

Run with:
    python examples/step_trace_demo.py
"""

import logging
import sys
from pathlib import Path

# Add core to path
sys.path.insert(0, str(Path(__file__).parent.parent / "core"))

from steptrace import StepRecorder, format_replay
from steptrace.tracing import OutOfSequenceError, TraceTerminatedError, last_good_step


def demo_basic(recorder: StepRecorder):
    """Demo 1: Enter and exit a couple of nodes."""
    print("\n" + "=" * 60)
    print("DEMO 1: Basic Flow")
    print("=" * 60)

    ctx = recorder.create_env({"user_id": "123", "action": "login"}, "api")
    print(f"Created trace: {ctx.trace_id}")

    ctx = recorder.step(ctx, "validate", "enter")
    ctx = recorder.step(ctx, "validate", "exit", {"valid": True})
    ctx = recorder.step(ctx, "authenticate", "enter")
    ctx = recorder.step(ctx, "authenticate", "exit", {"success": True})

    print(format_replay(recorder.replay(ctx.trace_id)))


def demo_error(recorder: StepRecorder):
    """Demo 2: An error step terminates the trace."""
    print("\n" + "=" * 60)
    print("DEMO 2: Error Handling")
    print("=" * 60)

    ctx = recorder.create_env({"data": "invalid"}, "webhook")
    ctx = recorder.step(ctx, "validate", "enter")
    ctx = recorder.step(ctx, "validate", "error", {"reason": "invalid data"})

    try:
        recorder.step(ctx, "send", "enter")
    except TraceTerminatedError as e:
        print(f"✅ Got expected error: {e}")

    last = last_good_step(recorder.replay(ctx.trace_id))
    print(f"Last recorded step: {last.format_for_display()}")


def handle_request(recorder: StepRecorder, body: dict) -> dict:
    """Demo 3 helper: a request handler that threads its context through."""
    ctx = recorder.create_env(body, "http")

    ctx = recorder.step(ctx, "parse", "enter")
    ctx = recorder.step(ctx, "parse", "exit", {"keys": sorted(body)})

    ctx = recorder.step(ctx, "validate", "enter")
    if "event" not in body:
        ctx = recorder.step(ctx, "validate", "error", {"reason": "missing event"})
        return {"status": 400, "error": "Missing event", "trace_id": ctx.trace_id}
    ctx = recorder.step(ctx, "validate", "exit")

    ctx = recorder.step(ctx, "send", "enter", {"destination": "webhook"})
    ctx = recorder.step(ctx, "send", "exit", {"sent": True})
    return {"status": 200, "ok": True, "trace_id": ctx.trace_id}


def demo_handler(recorder: StepRecorder):
    """Demo 3: Use the returned trace id to replay a failed request."""
    print("\n" + "=" * 60)
    print("DEMO 3: API Handler")
    print("=" * 60)

    ok = handle_request(recorder, {"event": "user.login", "user_id": "123"})
    print(f"✅ Status: {ok['status']}")

    failed = handle_request(recorder, {"user_id": "123"})
    print(f"❌ Status: {failed['status']} ({failed['error']})")
    print(recorder.replay_json(failed["trace_id"]))


def demo_forked_context(recorder: StepRecorder):
    """Demo 4: Reusing a consumed context is caught."""
    print("\n" + "=" * 60)
    print("DEMO 4: Forked Context")
    print("=" * 60)

    ctx = recorder.create_env({"job": "nightly"}, "cron")
    recorder.step(ctx, "load", "enter")

    try:
        recorder.step(ctx, "load", "enter")
    except OutOfSequenceError as e:
        print(f"✅ Got expected error: {e}")


def main():
    """Run all demos."""
    logging.basicConfig(level=logging.INFO)

    recorder = StepRecorder()
    demo_basic(recorder)
    demo_error(recorder)
    demo_handler(recorder)
    demo_forked_context(recorder)

    stats = recorder.get_stats()
    print("\n" + "=" * 60)
    print(f"Total records: {stats.total_records}")
    print(f"Active traces: {stats.active_traces}")
    for t in stats.traces:
        print(f"  {t.trace_id}: {t.steps} steps, {t.nodes} nodes, error: {t.has_error}")
    print("=" * 60)


if __name__ == "__main__":
    main()
