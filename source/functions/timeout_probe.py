# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
"""
Sleeps for `timeout_secs` (default 60). Deployed with a shorter function
timeout, the invocation must fail with DeadlineExceeded instead of being
killed silently.
"""
import time
from typing import Any, Optional

from rotation_runtime.runner import InvocationRunner
from rotation_runtime.shared_state import SharedState

DEFAULT_TIMEOUT_SECS = 60


def run(shared: Optional[SharedState], event: Any, region: str) -> None:
    timeout_secs = DEFAULT_TIMEOUT_SECS
    if isinstance(event, dict) and event.get("timeout_secs") is not None:
        timeout_secs = event["timeout_secs"]
    time.sleep(timeout_secs)


def build_runner() -> InvocationRunner:
    return InvocationRunner(run, service_name="timeout_probe")


runner = build_runner()
lambda_handler = runner.lambda_handler
