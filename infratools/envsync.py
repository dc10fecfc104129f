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

from dataclasses import dataclass, field
from typing import List, Optional

from . import _aws_args, _pulumi_args, log
from ._cmd import AwsCommand, PulumiCommand
from .envfile import (
    NOT_SECURED_MARKER,
    SECRET_MARKER,
    read_env_file,
    to_camel_case,
    with_suffix,
)
from .errors import MissingArgument


@dataclass
class SyncReport:
    applied: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.failed


def config_key(name: str, camel_case: bool = True, suffix: str = "") -> str:
    if camel_case:
        return to_camel_case(name, suffix)
    return with_suffix(name, suffix)


def env_to_config(
    path: str,
    pulumi: Optional[PulumiCommand] = None,
    stack: Optional[str] = None,
    camel_case: bool = True,
    suffix: str = "",
    dry_run: bool = False,
    cwd: Optional[str] = None,
) -> SyncReport:
    """
    Sets one Pulumi config value per non-empty entry of the ``.env`` file at *path*.
    Entries preceded by ``#@secret`` are stored as secrets.
    """
    pulumi = pulumi or PulumiCommand()
    env = read_env_file(path, SECRET_MARKER)
    log.info(f"Found {len(env.values)} environment variables ({len(env.marked)} secrets)")

    report = SyncReport()
    for name, value in env.values.items():
        if not value:
            report.skipped.append(name)
            continue
        key = config_key(name, camel_case, suffix)
        secret = name in env.marked
        kind = "secret" if secret else "plain"
        if dry_run:
            log.info(f"[dry run] would set {kind} config {key} (from {name})")
            report.applied.append(key)
            continue

        log.info(f"Setting {kind} config {key} (from {name})")
        result = pulumi.run(
            _pulumi_args.config_set(key, value, secret=secret, stack=stack),
            cwd=cwd,
            suppress_logging=True,
        )
        if result.success:
            report.applied.append(key)
        else:
            log.error(f"Failed to set config {key}: {result.output}")
            report.failed.append(key)
    return report


def parameter_name(stack: str, key: str) -> str:
    return f"/{stack}/{key}"


def env_to_ssm(
    path: str,
    stack: str,
    aws: Optional[AwsCommand] = None,
    dry_run: bool = False,
) -> SyncReport:
    """
    Puts one SSM parameter ``/<stack>/<KEY>`` per non-empty entry of the ``.env`` file
    at *path*. Parameters are SecureStrings unless preceded by ``#@notSecured``.
    """
    if not stack:
        raise MissingArgument("a stack prefix is required, for example myapp/dev")
    aws = aws or AwsCommand()
    env = read_env_file(path, NOT_SECURED_MARKER)
    log.info(
        f"Found {len(env.values)} environment variables "
        f"({len(env.marked)} non-secrets, {len(env.values) - len(env.marked)} secrets)"
    )

    report = SyncReport()
    for key, value in env.values.items():
        if not value:
            report.skipped.append(key)
            continue
        name = parameter_name(stack, key)
        secure = key not in env.marked
        kind = "SecureString" if secure else "String"
        if dry_run:
            log.info(f"[dry run] would set {kind} parameter {name}")
            report.applied.append(name)
            continue

        log.info(f"Setting {kind} parameter {name}")
        result = aws.run(_aws_args.put_parameter(name, value, secure), suppress_logging=True)
        if result.success:
            report.applied.append(name)
        else:
            log.error(f"Failed to set parameter {name}: {result.output}")
            report.failed.append(name)

    log.info(f"Set {len(report.applied)} parameters, {len(report.failed)} failed")
    return report
