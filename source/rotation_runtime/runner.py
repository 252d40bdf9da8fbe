# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
"""
Lambda entry point: run setup once per sandbox, then run every invocation
under the deadline supervisor.

    runner = InvocationRunner(run, setup=build_state)
    lambda_handler = runner.lambda_handler
"""
import json
import os
from typing import Any, Callable, Optional, Union

from rotation_runtime.cloudwatch_metrics import CloudWatchMetrics, build_metric
from rotation_runtime.deadline import (
    DEADLINE_MARGIN_MS,
    DeadlineSupervisor,
    deadline_from_context,
)
from rotation_runtime.errors import SetupError
from rotation_runtime.powertools_logger import get_logger
from rotation_runtime.rotation import (
    ROTATION_PRESERVE,
    CredentialHandler,
    RotationRequest,
    RotationStateMachine,
)
from rotation_runtime.secret_store import SecretsManagerStore, SecretStore
from rotation_runtime.shared_state import SharedState
from rotation_runtime.tracer_utils import init_tracer

DEFAULT_REGION = "us-east-1"

RunFunction = Callable[[Optional[SharedState], Any, str], Any]


class InvocationRunner:
    def __init__(
        self,
        run: RunFunction,
        setup: Optional[Callable[[], Any]] = None,
        margin_ms: int = DEADLINE_MARGIN_MS,
        metrics: Optional[CloudWatchMetrics] = None,
        service_name: Optional[str] = None,
    ) -> None:
        self.run = run
        self.setup = setup
        self.supervisor = DeadlineSupervisor(margin_ms)
        self.metrics = metrics
        self.logger = get_logger(service_name)
        self.tracer = init_tracer(service_name)
        self.shared: Optional[SharedState] = None
        self.region = ""
        self._setup_error: Optional[SetupError] = None
        self.lambda_handler = self.tracer.capture_lambda_handler(self._lambda_handler)

    @property
    def started(self) -> bool:
        return self.shared is not None

    def setup_once(self) -> SharedState:
        """
        Build the sandbox's shared state on first use. A failed setup is
        remembered and fails every later invocation on this sandbox.
        """
        if self._setup_error is not None:
            raise SetupError(self._setup_error.error) from self._setup_error
        if self.shared is not None:
            return self.shared

        self.region = os.getenv("AWS_REGION", DEFAULT_REGION)
        try:
            value = self.setup() if self.setup else None
        except Exception as e:
            self._setup_error = SetupError(f"{type(e).__name__}: {e}")
            self.logger.exception("Sandbox setup failed")
            raise self._setup_error from e

        self.shared = SharedState(value)
        self.logger.info("Starting lambda runtime", region=self.region)
        return self.shared

    def invoke(
        self,
        event: Any,
        deadline_ms: Optional[int] = None,
        region: Optional[str] = None,
    ) -> Any:
        shared = self.setup_once()
        invocation_region = region or self.region
        return self.supervisor.race(
            deadline_ms, lambda: self.run(shared, event, invocation_region)
        )

    def _lambda_handler(self, event: Any, context: Any) -> Any:
        self.logger.set_lambda_context(context)
        self.logger.info("Received lambda invocation", event=event)
        outcome = "SUCCESS"
        try:
            return self.invoke(event, deadline_from_context(context))
        except Exception as e:
            outcome = getattr(e, "condition", "Error")
            self.logger.error("Lambda invocation failed", error=str(e), outcome=outcome)
            raise
        finally:
            self._send_outcome(outcome)
            self.logger.info("Completed lambda invocation", outcome=outcome)

    def _send_outcome(self, outcome: str) -> None:
        if self.metrics is None:
            return
        self.metrics.send_metric(build_metric("Invocations", {"Outcome": outcome}))

    def run_test(self, test_data: Union[str, dict[str, Any]]) -> list[Any]:
        """
        Replay `{"region": ..., "invocations": [...]}` locally, in order, on
        one shared state and without a deadline.
        """
        if isinstance(test_data, str):
            test_data = json.loads(test_data)
        region = test_data.get("region") or DEFAULT_REGION  # type: ignore[union-attr]
        results = []
        for index, event in enumerate(test_data.get("invocations", [])):  # type: ignore[union-attr]
            self.logger.info("Invocation", index=index)
            result = self.invoke(event, region=region)
            self.logger.info("Invocation result", index=index, result=result)
            results.append(result)
        return results


def rotation_runner(
    handler: CredentialHandler,
    setup: Optional[Callable[[], Any]] = None,
    store: Optional[SecretStore] = None,
    preserve: Optional[bool] = None,
    margin_ms: int = DEADLINE_MARGIN_MS,
    metrics: Optional[CloudWatchMetrics] = None,
    service_name: Optional[str] = None,
) -> InvocationRunner:
    """InvocationRunner that drives one Secrets Manager rotation step per event"""
    mode = ROTATION_PRESERVE if preserve is None else preserve
    tracer = init_tracer(service_name)

    def run(shared: Optional[SharedState], event: Any, region: str) -> None:
        if isinstance(event, dict):
            tracer.add_rotation_context(event)
        request = RotationRequest.from_event(event)
        secret_store = store or SecretsManagerStore(region)
        RotationStateMachine(secret_store, handler, mode).handle(request, shared)

    return InvocationRunner(
        run,
        setup=setup,
        margin_ms=margin_ms,
        metrics=metrics,
        service_name=service_name,
    )
