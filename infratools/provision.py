# Copyright 2026, Pulumi Corporation.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Probing and creating the AWS resources an S3 backend relies on: the state bucket,
the DynamoDB lock table and the KMS key used by the ``awskms`` secrets provider.
"""

import json
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from . import _aws_args, log
from ._cmd import AwsCommand
from .errors import ProvisionError
from .secrets import normalize_kms_alias

POLICY_SID = "AllowPulumiStateAccess"


class S3Bucket:
    kind = "S3 bucket"

    def __init__(self, name: str, region: str) -> None:
        self.name = name
        self.region = region

    def exists(self, aws: AwsCommand) -> bool:
        return aws.run(_aws_args.head_bucket(self.name, self.region), suppress_logging=True).success

    def create(self, aws: AwsCommand) -> str:
        result = aws.run(_aws_args.create_bucket(self.name, self.region))
        if not result.success:
            raise ProvisionError(self.kind, self.name, result.output)

        # The bucket is usable without these; failures only warn.
        for step, args in (
            ("versioning", _aws_args.put_bucket_versioning(self.name, self.region)),
            ("encryption", _aws_args.put_bucket_encryption(self.name, self.region)),
            ("lifecycle policy", _aws_args.put_bucket_lifecycle(self.name, self.region)),
        ):
            step_result = aws.run(args)
            if not step_result.success:
                log.warn(f"Could not enable {step} on bucket {self.name}: {step_result.output}")
        return self.name


class LockTable:
    kind = "DynamoDB table"

    def __init__(self, name: str, region: str) -> None:
        self.name = name
        self.region = region

    def exists(self, aws: AwsCommand) -> bool:
        return aws.run(_aws_args.describe_table(self.name, self.region), suppress_logging=True).success

    def create(self, aws: AwsCommand) -> str:
        result = aws.run(_aws_args.create_table(self.name, self.region))
        if not result.success:
            raise ProvisionError(self.kind, self.name, result.output)
        recovery = aws.run(_aws_args.enable_point_in_time_recovery(self.name, self.region))
        if not recovery.success:
            log.warn(f"Could not enable point-in-time recovery on table {self.name}: {recovery.output}")
        return self.name


class KmsKeyAlias:
    kind = "KMS key"

    def __init__(self, alias: str, region: str) -> None:
        self.name = normalize_kms_alias(alias)
        self.region = region
        self.key_id: Optional[str] = None

    def exists(self, aws: AwsCommand) -> bool:
        return aws.run(_aws_args.describe_key(self.name, self.region), suppress_logging=True).success

    def create(self, aws: AwsCommand) -> str:
        """
        Creates the key, then the alias. Returns the alias, or the bare key id when
        only the key could be created.
        """
        result = aws.run(_aws_args.create_key(self.region))
        if not result.success or not result.output:
            raise ProvisionError(self.kind, self.name, result.output)
        self.key_id = result.output

        alias = aws.run(_aws_args.create_alias(self.name, self.key_id, self.region))
        if not alias.success:
            log.warn(f"Created KMS key {self.key_id} but could not create alias {self.name}: {alias.output}")
            return self.key_id
        return self.name


class ProvisionStatus(str, Enum):
    EXISTS = "exists"
    CREATED = "created"
    PARTIAL = "partial"
    MISSING = "missing"
    FAILED = "failed"


@dataclass
class ProvisionOutcome:
    status: ProvisionStatus
    identifier: Optional[str] = None
    error: Optional[ProvisionError] = None

    @property
    def usable(self) -> bool:
        return self.status in (
            ProvisionStatus.EXISTS,
            ProvisionStatus.CREATED,
            ProvisionStatus.PARTIAL,
        )


class Provisioner:
    def __init__(self, aws: AwsCommand) -> None:
        self.aws = aws

    def ensure(self, resource, create_if_missing: bool) -> ProvisionOutcome:
        """
        Probes *resource* and creates it when missing and *create_if_missing* is set.

        :param resource: An S3Bucket, LockTable or KmsKeyAlias.
        """
        if resource.exists(self.aws):
            log.info(f"{resource.kind} {resource.name} already exists")
            return ProvisionOutcome(ProvisionStatus.EXISTS, resource.name)

        if not create_if_missing:
            log.warn(f"{resource.kind} {resource.name} does not exist and creation is disabled")
            return ProvisionOutcome(ProvisionStatus.MISSING, resource.name)

        log.info(f"Creating {resource.kind} {resource.name} in {resource.region}")
        try:
            identifier = resource.create(self.aws)
        except ProvisionError as exception:
            log.error(str(exception))
            return ProvisionOutcome(ProvisionStatus.FAILED, resource.name, exception)

        if identifier != resource.name:
            return ProvisionOutcome(ProvisionStatus.PARTIAL, identifier)
        log.success(f"Created {resource.kind} {resource.name}")
        return ProvisionOutcome(ProvisionStatus.CREATED, identifier)


def access_statement(bucket: str, principal: str) -> Dict[str, Any]:
    return {
        "Sid": POLICY_SID,
        "Effect": "Allow",
        "Principal": {"AWS": principal},
        "Action": ["s3:GetObject", "s3:PutObject", "s3:DeleteObject", "s3:ListBucket"],
        "Resource": [f"arn:aws:s3:::{bucket}", f"arn:aws:s3:::{bucket}/*"],
    }


def merge_access_statement(policy: Optional[Dict[str, Any]], statement: Dict[str, Any]) -> Dict[str, Any]:
    """
    Returns *policy* with *statement* added, replacing any statement with the same Sid.
    """
    policy = dict(policy or {"Version": "2012-10-17"})
    statements: List[Dict[str, Any]] = [
        s for s in policy.get("Statement", []) if s.get("Sid") != statement["Sid"]
    ]
    statements.append(statement)
    policy["Statement"] = statements
    return policy


def _mentions(value: Any, principal: str) -> bool:
    if isinstance(value, str):
        return value in ("*", principal)
    if isinstance(value, list):
        return any(_mentions(v, principal) for v in value)
    if isinstance(value, dict):
        return any(_mentions(v, principal) for v in value.values())
    return False


def denies(policy: Optional[Dict[str, Any]], principal: str) -> bool:
    if not policy:
        return False
    return any(
        s.get("Effect") == "Deny" and _mentions(s.get("Principal"), principal)
        for s in policy.get("Statement", [])
    )


def ensure_bucket_access(
    aws: AwsCommand,
    bucket: str,
    region: str,
    propagation_delay: float = 5.0,
    sleep: Callable[[float], Any] = time.sleep,
) -> bool:
    """
    Grants the current AWS identity read/write access to the state objects of *bucket*.
    Best-effort: failures are logged and reported as False.
    """
    principal = aws.caller_identity()
    if not principal:
        log.warn("Could not determine the current AWS identity; skipping bucket policy update")
        return False

    existing: Optional[Dict[str, Any]] = None
    current = aws.run(_aws_args.get_bucket_policy(bucket, region), suppress_logging=True)
    if current.success and current.output:
        try:
            # The policy document is itself a JSON string inside the response.
            existing = json.loads(json.loads(current.output)["Policy"])
        except (ValueError, KeyError, TypeError):
            log.warn(f"Ignoring unreadable bucket policy on {bucket}")

    had_deny = denies(existing, principal)
    policy = merge_access_statement(existing, access_statement(bucket, principal))
    result = aws.run(_aws_args.put_bucket_policy(bucket, region, policy))
    if not result.success:
        log.warn(f"Could not update the policy of bucket {bucket}: {result.output}")
        return False

    if had_deny:
        log.info(f"Waiting {propagation_delay:g}s for the bucket policy to propagate")
        sleep(propagation_delay)
    log.success(f"Granted {principal} access to bucket {bucket}")
    return True
