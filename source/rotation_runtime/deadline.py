# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
"""
Races an invocation against the Lambda deadline.

Lambda kills a function that reaches its timeout without producing an error
that failure destinations can see. The supervisor fires slightly earlier and
raises DeadlineExceeded instead. The losing task is never cancelled or
joined: it keeps running on its daemon thread until the sandbox is frozen or
torn down, so anything it was mutating may be left half updated.
"""
import os
import threading
import time
from concurrent.futures import Future, wait
from typing import Any, Callable, Optional, TypeVar

from rotation_runtime.errors import DeadlineExceeded
from rotation_runtime.powertools_logger import get_logger

DEADLINE_MARGIN_MS = int(os.getenv("DEADLINE_MARGIN_MS", "100"))

T = TypeVar("T")

logger = get_logger("deadline")


def now_ms() -> int:
    return int(time.time() * 1000)


def deadline_from_context(context: Any) -> Optional[int]:
    """Absolute epoch-millisecond deadline of the invocation, if known"""
    get_remaining = getattr(context, "get_remaining_time_in_millis", None)
    if get_remaining is None:
        return None
    return now_ms() + int(get_remaining())


def _run_into(future: "Future[T]", task: Callable[[], T]) -> None:
    if not future.set_running_or_notify_cancel():
        return
    try:
        result = task()
    except BaseException as e:
        future.set_exception(e)
    else:
        future.set_result(result)


class DeadlineSupervisor:
    def __init__(self, margin_ms: int = DEADLINE_MARGIN_MS) -> None:
        if margin_ms < 0:
            raise ValueError(f"Deadline margin must not be negative: {margin_ms}")
        self.margin_ms = margin_ms

    def seconds_left(self, deadline_ms: int) -> float:
        return max(0.0, (deadline_ms - self.margin_ms - now_ms()) / 1000)

    def race(self, deadline_ms: Optional[int], task: Callable[[], T]) -> T:
        """
        Run `task` and return its result, or raise DeadlineExceeded once
        `deadline_ms - margin_ms` passes. Exceptions raised by the task are
        re-raised unchanged. Without a deadline the task runs inline.
        """
        if deadline_ms is None:
            return task()

        future: "Future[T]" = Future()
        worker = threading.Thread(
            target=_run_into,
            args=(future, task),
            name="invocation-task",
            daemon=True,
        )
        timeout = self.seconds_left(deadline_ms)
        logger.debug(
            "Setting deadline", deadline_ms=deadline_ms, seconds_left=timeout
        )
        worker.start()

        done, _ = wait([future], timeout=timeout)
        if not done:
            logger.error(
                "Invocation abandoned at deadline",
                deadline_ms=deadline_ms,
                margin_ms=self.margin_ms,
            )
            raise DeadlineExceeded()
        return future.result()
