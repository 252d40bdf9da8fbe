# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
"""Secrets Manager access used by the rotation state machine"""

import json
import os
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Iterable, Optional, Protocol, Union

from botocore.exceptions import ClientError
from rotation_runtime.awsapi_cached_client import AWSCachedClient
from rotation_runtime.errors import ConcurrentRotation
from rotation_runtime.powertools_logger import get_logger

if TYPE_CHECKING:
    from mypy_boto3_secretsmanager.client import SecretsManagerClient
else:
    SecretsManagerClient = object

AWS_REGION = os.getenv("AWS_REGION", "us-east-1")

CURRENT = "AWSCURRENT"
PENDING = "AWSPENDING"
PREVIOUS = "AWSPREVIOUS"

logger = get_logger("secret_store")

SecretValue = Union[str, bytes, dict[str, Any]]


@dataclass
class SecretMetadata:
    arn: str
    name: str
    rotation_enabled: bool
    versions: dict[str, list[str]] = field(default_factory=dict)

    @classmethod
    def from_response(cls, response: dict[str, Any]) -> "SecretMetadata":
        return cls(
            arn=response.get("ARN", ""),
            name=response.get("Name", ""),
            rotation_enabled=bool(response.get("RotationEnabled", False)),
            versions={
                version_id: list(stages)
                for version_id, stages in response.get(
                    "VersionIdsToStages", {}
                ).items()
            },
        )

    def has_version(self, version_id: str) -> bool:
        return version_id in self.versions

    def stages_for(self, version_id: str) -> list[str]:
        return self.versions.get(version_id, [])

    def versions_with_stage(self, stage: str) -> list[str]:
        return [
            version_id
            for version_id, stages in self.versions.items()
            if stage in stages
        ]

    def version_with_stage(self, stage: str) -> Optional[str]:
        holders = self.versions_with_stage(stage)
        return holders[0] if holders else None


@dataclass
class SecretVersion:
    arn: str
    version_id: str
    stages: list[str] = field(default_factory=list)
    secret_string: Optional[str] = None
    secret_binary: Optional[bytes] = None

    @classmethod
    def from_response(cls, response: dict[str, Any]) -> "SecretVersion":
        return cls(
            arn=response.get("ARN", ""),
            version_id=response["VersionId"],
            stages=list(response.get("VersionStages", [])),
            secret_string=response.get("SecretString"),
            secret_binary=response.get("SecretBinary"),
        )

    def as_json(self) -> dict[str, Any]:
        """
        Parse the secret as a JSON document. Raises ValueError when neither
        SecretString nor SecretBinary holds a JSON object.
        """
        raw: Union[str, bytes, None] = self.secret_string
        if raw is None:
            raw = self.secret_binary
        if raw is None:
            raise ValueError(
                f"Neither SecretString nor SecretBinary is set for version {self.version_id}"
            )
        document = json.loads(raw)
        if not isinstance(document, dict):
            raise ValueError(
                f"Secret version {self.version_id} does not hold a JSON object"
            )
        return document

    def with_fields(self, **changes: Any) -> dict[str, Any]:
        """
        Copy of the JSON document with `changes` applied. Fields the caller
        does not name are carried over untouched.
        """
        document = self.as_json()
        document.update(changes)
        return document


class SecretStore(Protocol):
    def describe(self, secret_id: str) -> SecretMetadata: ...

    def get_value(
        self,
        secret_id: str,
        version_id: Optional[str] = None,
        stage: Optional[str] = None,
    ) -> Optional[SecretVersion]: ...

    def put_value(
        self,
        secret_id: str,
        token: str,
        value: SecretValue,
        stages: Iterable[str] = (PENDING,),
    ) -> str: ...

    def update_version_stage(
        self,
        secret_id: str,
        stage: str,
        move_to_version_id: Optional[str] = None,
        remove_from_version_id: Optional[str] = None,
    ) -> None: ...

    def generate_password(
        self,
        exclude_punctuation: bool = False,
        length: Optional[int] = None,
        exclude_characters: str = '"',
    ) -> str: ...


def _error_code(error: ClientError) -> str:
    return str(error.response.get("Error", {}).get("Code", ""))


class SecretsManagerStore:
    """
    SecretStore backed by AWS Secrets Manager. Every method is exactly one
    API call; retries happen when Secrets Manager invokes the step again.
    """

    def __init__(
        self,
        region: Optional[str] = None,
        client: Optional[SecretsManagerClient] = None,
    ) -> None:
        self.region = region or AWS_REGION
        self.client: SecretsManagerClient = client or AWSCachedClient(
            self.region
        ).get_connection("secretsmanager")

    def describe(self, secret_id: str) -> SecretMetadata:
        response = self.client.describe_secret(SecretId=secret_id)
        return SecretMetadata.from_response(response)  # type: ignore[arg-type]

    def get_value(
        self,
        secret_id: str,
        version_id: Optional[str] = None,
        stage: Optional[str] = None,
    ) -> Optional[SecretVersion]:
        """
        Fetch one version by id, stage or both. Returns None when no such
        value exists.
        """
        kwargs: dict[str, Any] = {"SecretId": secret_id}
        if version_id:
            kwargs["VersionId"] = version_id
        if stage:
            kwargs["VersionStage"] = stage
        try:
            response = self.client.get_secret_value(**kwargs)
        except ClientError as e:
            if _error_code(e) == "ResourceNotFoundException":
                logger.debug(
                    "Secret value not found",
                    secret_id=secret_id,
                    version_id=version_id,
                    stage=stage,
                )
                return None
            raise
        return SecretVersion.from_response(response)  # type: ignore[arg-type]

    def put_value(
        self,
        secret_id: str,
        token: str,
        value: SecretValue,
        stages: Iterable[str] = (PENDING,),
    ) -> str:
        kwargs: dict[str, Any] = {
            "SecretId": secret_id,
            "ClientRequestToken": token,
            "VersionStages": list(stages),
        }
        if isinstance(value, bytes):
            kwargs["SecretBinary"] = value
        elif isinstance(value, dict):
            kwargs["SecretString"] = json.dumps(value)
        else:
            kwargs["SecretString"] = value

        try:
            response = self.client.put_secret_value(**kwargs)
        except ClientError as e:
            if _error_code(e) == "ResourceExistsException":
                raise ConcurrentRotation(
                    f"Version {token} of secret {secret_id} already holds a different value"
                ) from e
            raise
        return str(response.get("VersionId", token))

    def update_version_stage(
        self,
        secret_id: str,
        stage: str,
        move_to_version_id: Optional[str] = None,
        remove_from_version_id: Optional[str] = None,
    ) -> None:
        """
        Single conditional relabel. Secrets Manager rejects the call when
        `remove_from_version_id` no longer holds `stage`.
        """
        kwargs: dict[str, Any] = {"SecretId": secret_id, "VersionStage": stage}
        if move_to_version_id:
            kwargs["MoveToVersionId"] = move_to_version_id
        if remove_from_version_id:
            kwargs["RemoveFromVersionId"] = remove_from_version_id

        try:
            self.client.update_secret_version_stage(**kwargs)
        except ClientError as e:
            if _error_code(e) == "InvalidParameterException":
                raise ConcurrentRotation(
                    f"Unable to move {stage} of secret {secret_id}: {e.response['Error'].get('Message', '')}"
                ) from e
            raise

    def generate_password(
        self,
        exclude_punctuation: bool = False,
        length: Optional[int] = None,
        exclude_characters: str = '"',
    ) -> str:
        kwargs: dict[str, Any] = {"ExcludePunctuation": exclude_punctuation}
        if exclude_characters:
            kwargs["ExcludeCharacters"] = exclude_characters
        if length:
            kwargs["PasswordLength"] = length
        password = self.client.get_random_password(**kwargs).get("RandomPassword")
        if not password:
            raise ValueError("Generated password is empty")
        return password
