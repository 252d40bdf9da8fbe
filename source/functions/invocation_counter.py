# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
"""
Counts the invocations served by one execution sandbox and reports whether
the event's `test` attribute repeats the previous invocation's.
"""
from typing import Any, Optional

from rotation_runtime.runner import InvocationRunner
from rotation_runtime.shared_state import SharedState

BORROW_TIMEOUT_SECONDS = 1.0


class Counter:
    def __init__(self) -> None:
        self.invocations = 0
        self.prev_value: Optional[str] = None


def setup() -> Counter:
    return Counter()


def run(shared: Optional[SharedState], event: Any, region: str) -> dict[str, Any]:
    this_value = event.get("test") if isinstance(event, dict) else None
    with shared.borrow(timeout=BORROW_TIMEOUT_SECONDS) as counter:  # type: ignore[union-attr]
        counter.invocations += 1
        matches_prev = this_value == counter.prev_value
        counter.prev_value = this_value
        return {"invocations": counter.invocations, "matches_prev": matches_prev}


def build_runner() -> InvocationRunner:
    return InvocationRunner(run, setup=setup, service_name="invocation_counter")


runner = build_runner()
lambda_handler = runner.lambda_handler
