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
Maintaining the public access CIDR allow-list of an EKS cluster API endpoint.
"""

import os
import re
from dataclasses import dataclass, field
from typing import List, Mapping, Optional, Sequence, Tuple

import requests

from . import _aws_args, log
from ._cmd import AwsCommand
from .errors import InvalidArgument, MissingArgument

CHECKIP_URL = "https://checkip.amazonaws.com"

_cidr_regex = re.compile(r"^(\d{1,3}\.){3}\d{1,3}/\d{1,2}$")


def is_valid_cidr(cidr: str) -> bool:
    if not _cidr_regex.match(cidr):
        return False
    address, prefix = cidr.split("/")
    if any(int(octet) > 255 for octet in address.split(".")):
        return False
    return 0 <= int(prefix) <= 32


def parse_cidrs(value: str) -> List[str]:
    """
    Splits a comma-separated list of CIDRs.

    :raises InvalidArgument: on the first entry that is not an IPv4 CIDR.
    """
    cidrs = [cidr.strip() for cidr in value.split(",") if cidr.strip()]
    for cidr in cidrs:
        if not is_valid_cidr(cidr):
            raise InvalidArgument(
                f"invalid CIDR {cidr!r}, expected a form like 203.0.113.0/24"
            )
    return cidrs


def merge_cidrs(existing: Sequence[str], additions: Sequence[str]) -> Tuple[List[str], List[str]]:
    """
    Returns the union of *existing* and *additions* in first-seen order, and the
    additions that were not already present.
    """
    combined = list(dict.fromkeys(existing))
    added = []
    for cidr in additions:
        if cidr not in combined:
            combined.append(cidr)
            added.append(cidr)
    return combined, added


def current_public_ip(timeout: float = 10.0) -> str:
    """
    Returns the public IPv4 address of this machine as a ``/32`` CIDR.
    """
    response = requests.get(CHECKIP_URL, timeout=timeout)
    response.raise_for_status()
    return f"{response.text.strip()}/32"


def resolve_eks_region(flag: Optional[str], environ: Optional[Mapping[str, str]] = None) -> str:
    environ = os.environ if environ is None else environ
    region = flag or environ.get("AWS_REGION") or environ.get("AWS_DEFAULT_REGION")
    if not region:
        raise MissingArgument(
            "AWS region not provided; pass --region or set AWS_REGION"
        )
    return region


@dataclass
class CidrUpdate:
    cluster: str
    region: str
    cidrs: List[str] = field(default_factory=list)
    added: List[str] = field(default_factory=list)
    updated: bool = False
    update_id: Optional[str] = None


def update_public_access(
    aws: AwsCommand,
    cluster: str,
    region: str,
    additions: Sequence[str],
    clean: bool = False,
    clear: bool = False,
    wait: bool = True,
) -> CidrUpdate:
    """
    Adds *additions* to the cluster's public access CIDRs.

    :param clean: Replace the existing list instead of extending it.
    :param clear: Disable public endpoint access altogether.
    :raises ExternalCommandFailure: if the AWS CLI fails.
    """
    log.info(f"Updating public access CIDRs of EKS cluster {cluster} in {region}")
    existing: List[str] = []
    if not (clean or clear):
        details = aws.run_json(_aws_args.describe_cluster(cluster, region))
        existing = details["cluster"]["resourcesVpcConfig"].get("publicAccessCidrs") or []
        log.info(f"Existing public access CIDRs: {', '.join(existing) or '(none)'}")

    combined, added = merge_cidrs(existing, additions)
    update = CidrUpdate(cluster, region, combined, added)
    if not added and not clear:
        log.info("All specified CIDRs are already allowed")
        return update

    if clear:
        log.info("Disabling public endpoint access")
    else:
        log.info(f"Adding {', '.join(added)}")
    response = aws.run_json(
        _aws_args.update_cluster_access(cluster, region, combined, public=not clear)
    )
    update.updated = True
    update.update_id = (response.get("update") or {}).get("id")
    log.success(f"Update {update.update_id} initiated")

    if wait:
        log.info(f"Waiting for EKS cluster {cluster} to become ACTIVE")
        aws.run_checked(_aws_args.wait_cluster_active(cluster, region))
        log.success(f"Cluster {cluster} is now ACTIVE")
    return update

