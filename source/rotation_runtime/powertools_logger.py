# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

import os
from typing import Any, Optional

from aws_lambda_powertools import Logger

DEFAULT_SERVICE_NAME = "SecretRotation"


class PowertoolsLogger:
    def __init__(self, service_name: Optional[str] = None, level: str = "info"):
        self.service_name = service_name or os.getenv(
            "POWERTOOLS_SERVICE_NAME", DEFAULT_SERVICE_NAME
        )
        self.logger = Logger(service=self.service_name, level=level.upper())

    def debug(self, message: str, **kwargs: Any) -> None:
        if kwargs:
            self.logger.debug(message, extra=kwargs)
        else:
            self.logger.debug(message)

    def info(self, message: str, **kwargs: Any) -> None:
        if kwargs:
            self.logger.info(message, extra=kwargs)
        else:
            self.logger.info(message)

    def warning(self, message: str, **kwargs: Any) -> None:
        if kwargs:
            self.logger.warning(message, extra=kwargs)
        else:
            self.logger.warning(message)

    def error(self, message: str, **kwargs: Any) -> None:
        if kwargs:
            self.logger.error(message, extra=kwargs)
        else:
            self.logger.error(message)

    def exception(self, message: str, **kwargs: Any) -> None:
        if kwargs:
            self.logger.exception(message, extra=kwargs)
        else:
            self.logger.exception(message)

    def add_persistent_keys(self, **kwargs: Any) -> None:
        self.logger.append_keys(**kwargs)

    def set_lambda_context(self, lambda_context: Any) -> None:
        """Attach the invocation's identifiers to every following record"""
        if lambda_context is None:
            return
        self.add_persistent_keys(
            function_name=getattr(lambda_context, "function_name", None),
            function_request_id=getattr(lambda_context, "aws_request_id", None),
        )


def get_logger(
    service_name: Optional[str] = None, level: Optional[str] = None
) -> PowertoolsLogger:
    return PowertoolsLogger(
        service_name, level or os.getenv("POWERTOOLS_LOG_LEVEL", "info")
    )
