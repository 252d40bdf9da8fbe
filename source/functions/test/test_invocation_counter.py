# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
import json
from unittest.mock import MagicMock

import invocation_counter


def lambda_context():
    context = MagicMock()
    context.function_name = "invocation-counter"
    context.aws_request_id = "d2a1f0c4-7b61-11e6-9a41-93e812345678"
    context.get_remaining_time_in_millis.return_value = 3000
    return context


def test_counts_invocations_on_one_sandbox():
    test_data = {
        "region": "us-west-2",
        "invocations": [{"test": "a"}, {"test": "a"}, {"test": "b"}, {}],
    }

    results = invocation_counter.build_runner().run_test(json.dumps(test_data))

    assert results == [
        {"invocations": 1, "matches_prev": False},
        {"invocations": 2, "matches_prev": True},
        {"invocations": 3, "matches_prev": False},
        {"invocations": 4, "matches_prev": False},
    ]


def test_lambda_handler_keeps_state_between_invocations():
    runner = invocation_counter.build_runner()

    first = runner.lambda_handler({"test": "x"}, lambda_context())
    second = runner.lambda_handler({"test": "x"}, lambda_context())

    assert first == {"invocations": 1, "matches_prev": False}
    assert second == {"invocations": 2, "matches_prev": True}


def test_fresh_runner_starts_from_zero():
    assert invocation_counter.build_runner().run_test({"invocations": [{}]}) == [
        {"invocations": 1, "matches_prev": True}
    ]
