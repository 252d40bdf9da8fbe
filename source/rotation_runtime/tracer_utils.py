# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
import os
from typing import Any, Dict, Optional

from aws_lambda_powertools import Tracer


class PowertoolsTracer:

    def __init__(self, service_name: Optional[str] = None):
        self.service_name = service_name or os.getenv(
            "POWERTOOLS_SERVICE_NAME", "SecretRotation"
        )
        self.tracer = Tracer(service=self.service_name, auto_patch=True)

    # Tracing must never fail an invocation
    def put_annotation(self, key: str, value: str) -> None:
        try:
            self.tracer.put_annotation(key, value)
        except Exception:
            pass

    def put_metadata(self, key: str, value: Any) -> None:
        try:
            self.tracer.put_metadata(key, value)
        except Exception:
            pass

    def add_rotation_context(self, request: Dict[str, Any]) -> None:
        """Annotate the segment with the rotation request's identifiers"""
        for field, key in (
            ("SecretId", "secret_id"),
            ("Step", "step"),
            ("ClientRequestToken", "client_request_token"),
        ):
            if field in request:
                self.put_annotation(key, str(request[field]))
        self.put_metadata(
            "rotation_request",
            {key: value for key, value in request.items() if key != "SecretString"},
        )

    def capture_lambda_handler(self, lambda_handler):
        return self.tracer.capture_lambda_handler(lambda_handler)


def init_tracer(service_name: Optional[str] = None) -> PowertoolsTracer:
    return PowertoolsTracer(service_name)
