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
Backend descriptors and the helpers that turn them into Pulumi login URLs.
"""

import os
import re
from dataclasses import dataclass
from typing import Mapping, NamedTuple, Optional, Union
from urllib.parse import parse_qs, urlencode

from .errors import InvalidArgument, InvalidBackendUrl, MissingArgument

DEFAULT_REGION = "eu-west-3"

_S3_SCHEME = "s3://"
_REGION_REGEX = re.compile(r"^[a-z]{2}(-gov|-iso[a-z]?)?-[a-z]+-\d+$")
_CLOUD_ALIASES = ("cloud", "pulumi-cloud", "service")


def is_valid_region(region: Optional[str]) -> bool:
    return bool(region) and _REGION_REGEX.match(region) is not None


@dataclass(frozen=True)
class CloudBackend:
    """
    Pulumi Cloud. `url` is only set for self-hosted service endpoints.
    """

    url: Optional[str] = None

    @property
    def is_cloud(self) -> bool:
        return True

    def __str__(self) -> str:
        return self.url or "Pulumi Cloud"


@dataclass(frozen=True)
class S3Backend:
    bucket: str
    region: str
    lock_table: Optional[str] = None

    def __post_init__(self):
        if not self.bucket:
            raise MissingArgument("an S3 backend requires a bucket name")
        if not is_valid_region(self.region):
            raise InvalidBackendUrl(f"invalid AWS region {self.region!r}")

    @property
    def is_cloud(self) -> bool:
        return False

    @property
    def url(self) -> str:
        return build_s3_url(self.bucket, self.region, self.lock_table)

    def __str__(self) -> str:
        return self.url


Backend = Union[CloudBackend, S3Backend]


def build_s3_url(bucket: str, region: str, lock_table: Optional[str] = None) -> str:
    """
    Builds the login URL of an S3 backend, for example
    ``s3://my-state?region=eu-west-3&dynamodb_table=pulumi-locks``.
    """
    query = {"region": region}
    if lock_table:
        query["dynamodb_table"] = lock_table
    return f"{_S3_SCHEME}{bucket}?{urlencode(query)}"


def parse_s3_url(url: str, default_region: Optional[str] = None) -> S3Backend:
    """
    Parses an S3 backend URL. The region comes from the ``region`` query parameter,
    falling back to *default_region*.

    :raises InvalidBackendUrl: if the URL is not an ``s3://`` URL, has no bucket or no valid region.
    """
    if not url or not url.startswith(_S3_SCHEME):
        raise InvalidBackendUrl(f"not an S3 backend URL: {url!r}")

    rest = url[len(_S3_SCHEME):]
    bucket, _, query_string = rest.partition("?")
    bucket = bucket.rstrip("/")
    if not bucket:
        raise InvalidBackendUrl(f"missing bucket name in {url!r}")

    query = parse_qs(query_string)
    region = query.get("region", [default_region])[0]
    if not region:
        raise InvalidBackendUrl(f"missing region in {url!r}")
    if not is_valid_region(region):
        raise InvalidBackendUrl(f"invalid AWS region {region!r} in {url!r}")

    lock_table = query.get("dynamodb_table", [None])[0]
    return S3Backend(bucket=bucket, region=region, lock_table=lock_table)


def parse_backend(value: str, default_region: Optional[str] = None) -> Backend:
    """
    Parses a backend argument: ``cloud``, an ``https://`` service URL or an ``s3://`` URL.
    """
    if not value:
        raise InvalidBackendUrl("empty backend")
    if value.lower() in _CLOUD_ALIASES:
        return CloudBackend()
    if value.startswith("https://") or value.startswith("http://"):
        return CloudBackend(url=value)
    if value.startswith(_S3_SCHEME):
        return parse_s3_url(value, default_region)
    raise InvalidBackendUrl(f"unsupported backend {value!r}")


class StackId(NamedTuple):
    org: Optional[str]
    name: str

    def __str__(self) -> str:
        return f"{self.org}/{self.name}" if self.org else self.name


def split_stack_id(stack: str) -> StackId:
    """
    Splits ``org/name`` on the first ``/``. A bare name has no organization.
    """
    if not stack or not stack.strip():
        raise MissingArgument("a stack name is required")
    org, sep, name = stack.partition("/")
    if not sep:
        return StackId(None, stack)
    if not org or not name:
        raise InvalidArgument(f"invalid stack name {stack!r}")
    return StackId(org, name)


def resolve_region(
    flag: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
    default: str = DEFAULT_REGION,
) -> str:
    """
    Returns the explicit *flag*, else $AWS_REGION, else *default*.
    """
    if flag:
        return flag
    environ = os.environ if environ is None else environ
    return environ.get("AWS_REGION") or default


def state_file_name(stack: str) -> str:
    return f"{stack.replace('/', '-')}-state.json"
