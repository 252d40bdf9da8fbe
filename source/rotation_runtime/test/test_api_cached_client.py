# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
from rotation_runtime.awsapi_cached_client import AWSCachedClient


def test_create_client():
    AWS = AWSCachedClient("us-east-1")

    secretsmanager = AWS.get_connection("secretsmanager")  # in us-east-1
    assert "secretsmanager" in AWS.client
    assert "us-east-1" in AWS.client["secretsmanager"]
    assert AWS.get_connection("secretsmanager") is secretsmanager
    AWS.get_connection("ssm")
    assert "ssm" in AWS.client
    assert "us-east-1" in AWS.client["ssm"]
    AWS.get_connection("secretsmanager", "ap-northeast-1")
    assert "ap-northeast-1" in AWS.client["secretsmanager"]
    assert AWS.get_connection("secretsmanager", "ap-northeast-1") is not secretsmanager


def test_connections_shared_between_instances():
    first = AWSCachedClient("eu-west-1").get_connection("cloudwatch")

    assert AWSCachedClient("eu-west-1").get_connection("cloudwatch") is first


def test_user_agent_carries_solution_id():
    client = AWSCachedClient("us-east-1").get_connection("secretsmanager")

    assert "AwsSolution/SOTestID/" in client.meta.config.user_agent_extra


def test_reset_drops_connections():
    first = AWSCachedClient("us-east-1").get_connection("sns")
    AWSCachedClient.reset()

    assert AWSCachedClient.client == {}
    assert AWSCachedClient("us-east-1").get_connection("sns") is not first
