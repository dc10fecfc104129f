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
Argument lists for the AWS CLI sub-commands used by infratools.
"""

import json
from typing import Any, Dict, List, Sequence

US_EAST_1 = "us-east-1"

BUCKET_ENCRYPTION: Dict[str, Any] = {
    "Rules": [
        {
            "ApplyServerSideEncryptionByDefault": {"SSEAlgorithm": "AES256"},
            "BucketKeyEnabled": True,
        }
    ]
}

BUCKET_LIFECYCLE: Dict[str, Any] = {
    "Rules": [
        {
            "ID": "ExpireOldVersions",
            "Status": "Enabled",
            "NoncurrentVersionExpiration": {"NoncurrentDays": 90},
        }
    ]
}

KMS_KEY_DESCRIPTION = "Pulumi State Encryption Key"


def _compact(document: Dict[str, Any]) -> str:
    return json.dumps(document, separators=(",", ":"))


def caller_identity_arn() -> List[str]:
    return ["sts", "get-caller-identity", "--query", "Arn", "--output", "text"]


def head_bucket(bucket: str, region: str) -> List[str]:
    return ["s3api", "head-bucket", "--bucket", bucket, "--region", region]


def create_bucket(bucket: str, region: str) -> List[str]:
    args = ["s3api", "create-bucket", "--bucket", bucket, "--region", region]
    # us-east-1 rejects an explicit LocationConstraint.
    if region != US_EAST_1:
        args.extend(
            ["--create-bucket-configuration", f"LocationConstraint={region}"]
        )
    return args


def put_bucket_versioning(bucket: str, region: str) -> List[str]:
    return [
        "s3api",
        "put-bucket-versioning",
        "--bucket",
        bucket,
        "--versioning-configuration",
        "Status=Enabled",
        "--region",
        region,
    ]


def put_bucket_encryption(bucket: str, region: str) -> List[str]:
    return [
        "s3api",
        "put-bucket-encryption",
        "--bucket",
        bucket,
        "--server-side-encryption-configuration",
        _compact(BUCKET_ENCRYPTION),
        "--region",
        region,
    ]


def put_bucket_lifecycle(bucket: str, region: str) -> List[str]:
    return [
        "s3api",
        "put-bucket-lifecycle-configuration",
        "--bucket",
        bucket,
        "--lifecycle-configuration",
        _compact(BUCKET_LIFECYCLE),
        "--region",
        region,
    ]


def get_bucket_policy(bucket: str, region: str) -> List[str]:
    return [
        "s3api",
        "get-bucket-policy",
        "--bucket",
        bucket,
        "--region",
        region,
        "--output",
        "json",
    ]


def put_bucket_policy(bucket: str, region: str, policy: Dict[str, Any]) -> List[str]:
    return [
        "s3api",
        "put-bucket-policy",
        "--bucket",
        bucket,
        "--policy",
        _compact(policy),
        "--region",
        region,
    ]


def describe_table(table: str, region: str) -> List[str]:
    return ["dynamodb", "describe-table", "--table-name", table, "--region", region]


def create_table(table: str, region: str) -> List[str]:
    return [
        "dynamodb",
        "create-table",
        "--table-name",
        table,
        "--attribute-definitions",
        "AttributeName=LockID,AttributeType=S",
        "--key-schema",
        "AttributeName=LockID,KeyType=HASH",
        "--provisioned-throughput",
        "ReadCapacityUnits=5,WriteCapacityUnits=5",
        "--region",
        region,
    ]


def enable_point_in_time_recovery(table: str, region: str) -> List[str]:
    return [
        "dynamodb",
        "update-continuous-backups",
        "--table-name",
        table,
        "--point-in-time-recovery-specification",
        "PointInTimeRecoveryEnabled=true",
        "--region",
        region,
    ]


def describe_key(alias: str, region: str) -> List[str]:
    return ["kms", "describe-key", "--key-id", alias, "--region", region]


def create_key(region: str) -> List[str]:
    return [
        "kms",
        "create-key",
        "--description",
        KMS_KEY_DESCRIPTION,
        "--tags",
        "TagKey=Purpose,TagValue=PulumiStateEncryption",
        "--region",
        region,
        "--query",
        "KeyMetadata.KeyId",
        "--output",
        "text",
    ]


def create_alias(alias: str, key_id: str, region: str) -> List[str]:
    return [
        "kms",
        "create-alias",
        "--alias-name",
        alias,
        "--target-key-id",
        key_id,
        "--region",
        region,
    ]


def put_parameter(name: str, value: str, secure: bool = True) -> List[str]:
    return [
        "ssm",
        "put-parameter",
        "--name",
        name,
        "--value",
        value,
        "--type",
        "SecureString" if secure else "String",
        "--overwrite",
    ]


def describe_cluster(cluster: str, region: str) -> List[str]:
    return [
        "eks",
        "describe-cluster",
        "--name",
        cluster,
        "--region",
        region,
        "--output",
        "json",
    ]


def update_cluster_access(
    cluster: str, region: str, cidrs: Sequence[str], public: bool = True
) -> List[str]:
    if public:
        vpc_config = (
            "endpointPublicAccess=true,endpointPrivateAccess=true,"
            f"publicAccessCidrs={','.join(cidrs)}"
        )
    else:
        vpc_config = "endpointPublicAccess=false,endpointPrivateAccess=true"
    return [
        "eks",
        "update-cluster-config",
        "--name",
        cluster,
        "--region",
        region,
        "--resources-vpc-config",
        vpc_config,
    ]


def wait_cluster_active(cluster: str, region: str) -> List[str]:
    return ["eks", "wait", "cluster-active", "--name", cluster, "--region", region]


def list_clusters() -> List[str]:
    return ["ecs", "list-clusters", "--output", "json"]


def list_services(cluster: str) -> List[str]:
    return ["ecs", "list-services", "--cluster", cluster, "--output", "json"]


def describe_services(cluster: str, services: Sequence[str]) -> List[str]:
    return [
        "ecs",
        "describe-services",
        "--cluster",
        cluster,
        "--services",
        *services,
        "--output",
        "json",
    ]


def describe_task_definition(task_definition: str) -> List[str]:
    return [
        "ecs",
        "describe-task-definition",
        "--task-definition",
        task_definition,
        "--output",
        "json",
    ]
