# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
import os
from typing import TYPE_CHECKING, Any, Optional, cast

import boto3
from rotation_runtime import awsapi_cached_client
from rotation_runtime.powertools_logger import get_logger

if TYPE_CHECKING:
    from mypy_boto3_cloudwatch import CloudWatchClient
    from mypy_boto3_ssm.client import SSMClient
else:
    CloudWatchClient = object
    SSMClient = object

METRICS_PARAMETER_NAME = os.getenv(
    "METRICS_PARAMETER_NAME", "/Solutions/SecretRotation/sendCloudwatchMetrics"
)

logger = get_logger("cloudwatch_metrics")


def build_metric(
    metric_name: str, dimensions: Optional[dict[str, str]] = None, value: int = 1
) -> dict[str, Any]:
    return {
        "MetricName": metric_name,
        "Dimensions": [
            {"Name": name, "Value": dimension_value}
            for name, dimension_value in (dimensions or {}).items()
        ],
        "Unit": "Count",
        "Value": value,
    }


class CloudWatchMetrics:
    namespace = "SecretRotation"

    def __init__(self):
        self.cloudwatch_client: Optional[CloudWatchClient] = None
        try:
            self.session = boto3.session.Session()
            self.region = self.session.region_name
            self.ssm_client = self.init_ssm_client()
            self.metrics_enabled = self.send_cloudwatch_metrics_enabled()
            if not self.metrics_enabled:
                return

            self.cloudwatch_client = self.init_cloudwatch_client()

        except Exception as e:
            logger.error("Could not initialize metrics", error=str(e))
            raise

    def send_cloudwatch_metrics_enabled(self) -> bool:
        is_enabled = False  # default value
        try:
            send_cloudwatch_metrics_from_ssm = (
                self.ssm_client.get_parameter(Name=METRICS_PARAMETER_NAME)  # type: ignore[union-attr]
                .get("Parameter")
                .get("Value")
            )

            if (
                send_cloudwatch_metrics_from_ssm is None
                or send_cloudwatch_metrics_from_ssm.lower() not in ["yes", "no"]
            ):
                logger.warning(
                    "Unexpected metrics parameter value, defaulting to \"no\"",
                    parameter=METRICS_PARAMETER_NAME,
                    value=send_cloudwatch_metrics_from_ssm,
                )
            elif send_cloudwatch_metrics_from_ssm.lower() == "yes":
                is_enabled = True

        except Exception as e:
            logger.warning(
                "Could not read metrics parameter",
                parameter=METRICS_PARAMETER_NAME,
                error=str(e),
            )

        return is_enabled

    def init_ssm_client(self) -> SSMClient:
        try:
            new_ssm_client = awsapi_cached_client.AWSCachedClient(
                self.region
            ).get_connection("ssm")
            return cast(SSMClient, new_ssm_client)

        except Exception as e:
            logger.error("Could not connect to ssm", error=str(e))
            raise e

    def init_cloudwatch_client(self) -> CloudWatchClient:
        try:
            new_cloudwatch_client = awsapi_cached_client.AWSCachedClient(
                self.region
            ).get_connection("cloudwatch")
            return cast(CloudWatchClient, new_cloudwatch_client)
        except Exception as e:
            logger.error("Could not connect to cloudwatch", error=str(e))
            raise e

    def send_metric(self, metric: Any) -> None:
        try:
            if metric is None or not self.metrics_enabled or not self.cloudwatch_client:
                return
            self.cloudwatch_client.put_metric_data(
                MetricData=[metric],
                Namespace=self.namespace,
            )
        except Exception as exception:
            logger.warning("Could not send cloudwatch metric", error=str(exception))
