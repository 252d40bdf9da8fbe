# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
import os
from typing import Any, Optional

import boto3
from botocore.config import Config


class AWSCachedClient:
    """
    Maintains a hash of AWS API Client connections by region and service.

    The hash lives on the class, so connections survive across invocations
    that land on the same execution sandbox.
    """

    region: Optional[str] = ""
    client: dict[str, Any] = {}
    solution_id = ""
    solution_version = "undefined"

    def __init__(self, region: Optional[str]) -> None:
        """
        Region is used as the default for get_connection.
        """
        self.solution_id = os.getenv("SOLUTION_ID", "SecretRotation")
        self.solution_version = os.getenv("SOLUTION_VERSION", "undefined")
        self.region = region
        self.boto_config = Config(
            user_agent_extra=f"AwsSolution/{self.solution_id}/{self.solution_version}",
            retries={"max_attempts": 10, "mode": "standard"},
        )

    def get_connection(self, service: str, region: Optional[str] = None) -> Any:
        """Connect to AWS api"""

        if not region:
            region = self.region

        if service not in self.client:
            self.client[service] = {}

        if region not in self.client[service]:
            self.client[service][region] = boto3.client(
                service, region_name=region, config=self.boto_config
            )

        return self.client[service][region]

    @classmethod
    def reset(cls) -> None:
        """Drop every cached connection"""
        cls.client = {}
