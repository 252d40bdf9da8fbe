# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

import logging
import os
from unittest.mock import MagicMock, patch

from rotation_runtime.powertools_logger import PowertoolsLogger, get_logger


class TestPowertoolsLogger:

    def test_logger_initialization(self):
        logger = PowertoolsLogger("level_info_service", "info")
        assert logger.service_name == "level_info_service"
        assert logger.logger.log_level == logging.INFO

        logger2 = get_logger("level_debug_service", "debug")
        assert logger2.service_name == "level_debug_service"
        assert logger2.logger.log_level == logging.DEBUG

    @patch.dict(os.environ, {"POWERTOOLS_LOG_LEVEL": "warning"})
    def test_level_from_environment(self):
        assert get_logger("level_env_service").logger.log_level == logging.WARNING

    @patch.dict(os.environ, {"POWERTOOLS_SERVICE_NAME": "rotate-db-password"})
    def test_service_name_from_environment(self):
        assert PowertoolsLogger().service_name == "rotate-db-password"

    @patch.dict(os.environ, {}, clear=True)
    def test_default_service_name(self):
        assert PowertoolsLogger().service_name == "SecretRotation"

    def test_all_logging_methods(self):
        logger = get_logger("test_service", "debug")

        logger.debug("Debug message")
        logger.info("Info message")
        logger.warning("Warning message")
        logger.error("Error message")
        logger.exception("Exception message")

        logger.debug("Debug message", key1="value1")
        logger.info("Info message", secret_id="test-secret", step="createSecret")
        logger.warning("Warning message", key3="value3")
        logger.error("Error message", key4="value4")
        logger.exception("Exception message", key5="value5")

    def test_extra_keys_are_passed_as_extra(self):
        logger = get_logger("test_service", "info")

        with patch.object(logger.logger, "info") as info:
            logger.info("Rotation step", step="setSecret")
            logger.info("Plain message")

        info.assert_any_call("Rotation step", extra={"step": "setSecret"})
        info.assert_any_call("Plain message")

    def test_lambda_context_keys(self):
        logger = get_logger("test_service", "info")

        mock_context = MagicMock()
        mock_context.function_name = "test-function"
        mock_context.aws_request_id = "test-request-id"

        with patch.object(logger.logger, "append_keys") as append_keys:
            logger.set_lambda_context(mock_context)

        append_keys.assert_called_once_with(
            function_name="test-function", function_request_id="test-request-id"
        )

    def test_lambda_context_missing(self):
        logger = get_logger("test_service", "info")

        with patch.object(logger.logger, "append_keys") as append_keys:
            logger.set_lambda_context(None)

        append_keys.assert_not_called()
