# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
"""
Reported error surface of the runtime.

Every fatal condition carries its condition name as the first word of the
message, so the Lambda error report lets operators tell them apart.
"""


class RuntimeFailure(Exception):
    condition = "RuntimeFailure"
    error = "Runtime failure"

    def __init__(self, error=""):
        if error:
            self.error = error
        super().__init__(self.error)

    def __str__(self):
        return f"{self.condition}: {self.error}"


class RotationError(RuntimeFailure):
    condition = "RotationError"
    error = "Rotation failed"


class RotationNotEnabled(RotationError):
    condition = "RotationNotEnabled"
    error = "Secret is not enabled for rotation"


class VersionMismatch(RotationError):
    condition = "VersionMismatch"
    error = "Secret version is not in the stage required by this step"


class ConcurrentRotation(RotationError):
    condition = "ConcurrentRotation"
    error = "Another rotation changed the secret's stage labels"


class PreserveViolation(RotationError):
    condition = "PreserveViolation"
    error = "Current credential stopped working after the new one was applied"


class InvalidRequest(RotationError):
    condition = "InvalidRequest"
    error = "Invalid rotation request"


class SupervisorError(RuntimeFailure):
    condition = "SupervisorError"


class DeadlineExceeded(SupervisorError):
    condition = "DeadlineExceeded"
    error = "Lambda failed by running into a timeout"


class SetupError(RuntimeFailure):
    condition = "SetupError"
    error = "Sandbox setup failed"


class SharedStateBusy(RuntimeFailure):
    condition = "SharedStateBusy"
    error = "Shared state is still held by an abandoned invocation"
