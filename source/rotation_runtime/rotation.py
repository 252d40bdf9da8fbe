# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
"""
Secrets Manager rotation protocol.

Secrets Manager invokes the rotation function once per step, in the order
createSecret, setSecret, testSecret, finishSecret, and may redeliver any
step. Each step is therefore derived only from the request and from freshly
described secret metadata, and detects work that was already applied.
"""
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional

from rotation_runtime.errors import (
    ConcurrentRotation,
    InvalidRequest,
    PreserveViolation,
    RotationNotEnabled,
    VersionMismatch,
)
from rotation_runtime.powertools_logger import get_logger
from rotation_runtime.secret_store import (
    CURRENT,
    PENDING,
    SecretMetadata,
    SecretStore,
    SecretValue,
    SecretVersion,
)
from rotation_runtime.shared_state import SharedState

ROTATION_PRESERVE = os.getenv("ROTATION_PRESERVE", "true").lower() == "true"

logger = get_logger("rotation")


class Step(str, Enum):
    CREATE = "createSecret"
    SET = "setSecret"
    TEST = "testSecret"
    FINISH = "finishSecret"


@dataclass(frozen=True)
class RotationRequest:
    secret_id: str
    client_request_token: str
    step: Step

    @classmethod
    def from_event(cls, event: Any) -> "RotationRequest":
        """
        Decode the event Secrets Manager sends to a rotation function:
        `SecretId`, `ClientRequestToken` and `Step`.
        """
        if not isinstance(event, dict):
            raise InvalidRequest(f"Expected a JSON object, got {type(event).__name__}")

        missing = [
            key
            for key in ("SecretId", "ClientRequestToken", "Step")
            if not event.get(key)
        ]
        if missing:
            raise InvalidRequest(f"Missing required fields: {', '.join(missing)}")

        try:
            step = Step(event["Step"])
        except ValueError:
            raise InvalidRequest(f"Invalid step parameter: {event['Step']}") from None

        return cls(
            secret_id=event["SecretId"],
            client_request_token=event["ClientRequestToken"],
            step=step,
        )


class CredentialHandler(ABC):
    """
    Changes the credential on the system the secret protects.

    Any exception raised here fails the current step and reaches Secrets
    Manager unchanged.
    """

    @abstractmethod
    def generate_credential(
        self,
        current: Optional[SecretVersion],
        store: SecretStore,
        shared: Optional[SharedState],
    ) -> SecretValue:
        """
        Build the candidate value. `current` is None for a secret that has
        no AWSCURRENT version yet.
        """

    @abstractmethod
    def apply_credential(
        self,
        pending: SecretVersion,
        current: Optional[SecretVersion],
        preserve: bool,
        shared: Optional[SharedState],
    ) -> None:
        """
        Make the pending credential valid on the target. With `preserve`
        set, the credential in `current` must stay valid as well.
        """

    @abstractmethod
    def verify_credential(
        self, candidate: SecretVersion, shared: Optional[SharedState]
    ) -> None:
        """Authenticate against the target with `candidate`; raise on failure"""

    def finish_credential(
        self,
        current: Optional[SecretVersion],
        pending: SecretVersion,
        shared: Optional[SharedState],
    ) -> None:
        """Runs right before the pending version becomes AWSCURRENT"""


class RotationStateMachine:
    def __init__(
        self,
        store: SecretStore,
        handler: CredentialHandler,
        preserve: bool = ROTATION_PRESERVE,
    ) -> None:
        self.store = store
        self.handler = handler
        self.preserve = preserve
        self._steps: dict[
            Step,
            Callable[[RotationRequest, SecretMetadata, Optional[SharedState]], None],
        ] = {
            Step.CREATE: self._create_secret,
            Step.SET: self._set_secret,
            Step.TEST: self._test_secret,
            Step.FINISH: self._finish_secret,
        }

    def handle(
        self, request: RotationRequest, shared: Optional[SharedState] = None
    ) -> None:
        secret_id = request.secret_id
        token = request.client_request_token
        logger.info("Rotation step", step=request.step.value, secret_id=secret_id)

        metadata = self.store.describe(secret_id)
        if not metadata.rotation_enabled:
            raise RotationNotEnabled(f"Secret {secret_id} is not enabled for rotation")

        stages = metadata.stages_for(token)
        if CURRENT in stages:
            logger.info(
                "Version already set as AWSCURRENT",
                secret_id=secret_id,
                version_id=token,
            )
            if request.step is Step.FINISH and PENDING in stages:
                self._detach_pending(request)
            return

        self._check_version(request, metadata)
        self._steps[request.step](request, metadata, shared)

    def _check_version(
        self, request: RotationRequest, metadata: SecretMetadata
    ) -> None:
        token = request.client_request_token
        stages = metadata.stages_for(token)
        if request.step is Step.CREATE:
            if metadata.has_version(token) and PENDING not in stages:
                raise VersionMismatch(
                    f"Secret version {token} of {request.secret_id} exists but is not AWSPENDING"
                )
        elif PENDING not in stages:
            raise VersionMismatch(
                f"Secret version {token} not set as AWSPENDING for rotation of secret {request.secret_id}"
            )

    def _pending(self, request: RotationRequest) -> SecretVersion:
        pending = self.store.get_value(
            request.secret_id,
            version_id=request.client_request_token,
            stage=PENDING,
        )
        if pending is None:
            raise VersionMismatch(
                f"Secret version {request.client_request_token} of {request.secret_id} has no pending value"
            )
        return pending

    def _is_active(self, candidate: SecretVersion, shared: Optional[SharedState]) -> bool:
        try:
            self.handler.verify_credential(candidate, shared)
        except Exception as e:
            logger.info(
                "Pending credential not active on target",
                version_id=candidate.version_id,
                reason=str(e),
            )
            return False
        return True

    def _detach_pending(self, request: RotationRequest) -> None:
        self.store.update_version_stage(
            request.secret_id,
            PENDING,
            remove_from_version_id=request.client_request_token,
        )

    def _create_secret(
        self,
        request: RotationRequest,
        metadata: SecretMetadata,
        shared: Optional[SharedState],
    ) -> None:
        secret_id = request.secret_id
        token = request.client_request_token

        if self.store.get_value(secret_id, version_id=token) is not None:
            logger.info("Found existing pending value", secret_id=secret_id)
            return

        # A pending label left on the current version is a finished rotation
        other_writers = [
            version_id
            for version_id in metadata.versions_with_stage(PENDING)
            if version_id != token and CURRENT not in metadata.stages_for(version_id)
        ]
        if other_writers:
            raise ConcurrentRotation(
                f"Secret {secret_id} already has AWSPENDING version {other_writers[0]}"
            )

        logger.info("Creating new secret value", secret_id=secret_id)
        current = self.store.get_value(secret_id, stage=CURRENT)
        value = self.handler.generate_credential(current, self.store, shared)
        self.store.put_value(secret_id, token, value, stages=(PENDING,))
        logger.info("Stored pending value", secret_id=secret_id, version_id=token)

    def _set_secret(
        self,
        request: RotationRequest,
        metadata: SecretMetadata,
        shared: Optional[SharedState],
    ) -> None:
        secret_id = request.secret_id
        pending = self._pending(request)
        current = self.store.get_value(secret_id, stage=CURRENT)

        if self._is_active(pending, shared):
            # A redelivered setSecret finds the credential already in place
            logger.info("Password already set in remote system", secret_id=secret_id)
        else:
            logger.info(
                "Setting secret on remote system",
                secret_id=secret_id,
                preserve=self.preserve,
            )
            self.handler.apply_credential(pending, current, self.preserve, shared)

        # Runs on every delivery, including one that skipped the apply
        if self.preserve and current is not None:
            try:
                self.handler.verify_credential(current, shared)
            except Exception as e:
                raise PreserveViolation(
                    f"Version {current.version_id} of {secret_id} no longer authenticates: {e}"
                ) from e

    def _test_secret(
        self,
        request: RotationRequest,
        metadata: SecretMetadata,
        shared: Optional[SharedState],
    ) -> None:
        logger.info("Testing secret on remote system", secret_id=request.secret_id)
        self.handler.verify_credential(self._pending(request), shared)

    def _finish_secret(
        self,
        request: RotationRequest,
        metadata: SecretMetadata,
        shared: Optional[SharedState],
    ) -> None:
        secret_id = request.secret_id
        token = request.client_request_token
        logger.info("Finishing secret deployment", secret_id=secret_id)

        current_version = metadata.version_with_stage(CURRENT)
        pending = self._pending(request)
        current = (
            self.store.get_value(secret_id, version_id=current_version)
            if current_version
            else None
        )
        self.handler.finish_credential(current, pending, shared)

        # Secrets Manager relabels the old holder AWSPREVIOUS in the same call
        self.store.update_version_stage(
            secret_id,
            CURRENT,
            move_to_version_id=token,
            remove_from_version_id=current_version,
        )
        self._detach_pending(request)
        logger.info(
            "Moved AWSCURRENT",
            secret_id=secret_id,
            version_id=token,
            previous_version_id=current_version,
        )
