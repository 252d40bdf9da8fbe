# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
import threading
from contextlib import contextmanager
from typing import Generic, Iterator, Optional, TypeVar

from rotation_runtime.errors import SharedStateBusy

S = TypeVar("S")


class SharedState(Generic[S]):
    """
    Sandbox-lifetime state handed to every invocation.

    Lambda never runs two invocations at once in the same sandbox, so the
    lock only serializes access. The one exception is a task abandoned by
    the deadline supervisor, which may still hold the lock; `borrow` with a
    timeout reports that as SharedStateBusy instead of blocking forever.
    Callers must re-check the value they get, since an abandoned task may
    have left it half updated.
    """

    def __init__(self, value: Optional[S] = None) -> None:
        self._value = value
        self._lock = threading.Lock()

    @property
    def is_ready(self) -> bool:
        return self._value is not None

    def locked(self) -> bool:
        return self._lock.locked()

    @contextmanager
    def borrow(self, timeout: float = -1) -> Iterator[Optional[S]]:
        if not self._lock.acquire(timeout=timeout):
            raise SharedStateBusy()
        try:
            yield self._value
        finally:
            self._lock.release()
