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
Creating a Pulumi project whose state lives in an S3 bucket.
"""

import json
import os
import random
import re
from dataclasses import dataclass, field, replace
from typing import Callable, List, Optional

import yaml

from . import _pulumi_args, log
from ._cmd import AwsCommand, PulumiCommand
from .backend import S3Backend
from .errors import (
    InvalidArgument,
    InvalidVersionError,
    MissingArgument,
    StackAlreadyExistsError,
    create_command_error,
)
from .provision import (
    KmsKeyAlias,
    LockTable,
    ProvisionStatus,
    Provisioner,
    S3Bucket,
    ensure_bucket_access,
)
from .secrets import SecretsConfig, SecretsProviderKind
from .session import Session

TEMPLATES = ["typescript", "python", "go", "csharp", "nodejs"]
DEFAULT_TEMPLATE = "typescript"
DEFAULT_STACK = "dev"

_setting_extensions = [".yaml", ".yml", ".json"]
_invalid_name_chars = re.compile(r"[^a-z0-9-]")

PromptFunc = Callable[[str, str], str]
ConfirmFunc = Callable[[str], bool]


def sanitize_name(name: str) -> str:
    """Lowercases *name* and replaces anything but letters, digits and dashes with a dash."""
    return _invalid_name_chars.sub("-", name.lower())


def default_project_name(work_dir: str) -> str:
    return sanitize_name(os.path.basename(os.path.abspath(work_dir)))


def default_bucket_name(project: str, suffix: Optional[int] = None) -> str:
    if suffix is None:
        suffix = random.randint(0, 9999)
    return f"pulumi-state-{sanitize_name(project)}-{suffix}"


def default_lock_table_name(project: str) -> str:
    return f"pulumi-state-lock-{sanitize_name(project)}"


def find_project_file(work_dir: str) -> Optional[str]:
    for ext in _setting_extensions:
        path = os.path.join(work_dir, f"Pulumi{ext}")
        if os.path.exists(path):
            return path
    return None


def load_project_name(work_dir: str) -> Optional[str]:
    """
    Returns the ``name`` of the Pulumi project in *work_dir*, or None when there is
    no project file or it has no name.
    """
    path = find_project_file(work_dir)
    if path is None:
        return None
    with open(path, "r", encoding="utf-8") as file:
        try:
            settings = json.load(file) if path.endswith(".json") else yaml.safe_load(file)
        except (yaml.YAMLError, ValueError) as exception:
            raise InvalidArgument(f"could not read {path!r}: {exception}") from exception
    if not isinstance(settings, dict):
        return None
    name = settings.get("name")
    return str(name) if name else None


@dataclass
class InitRequest:
    work_dir: str = "."
    name: Optional[str] = None
    description: Optional[str] = None
    template: str = DEFAULT_TEMPLATE
    stack: str = DEFAULT_STACK
    bucket: Optional[str] = None
    region: str = "eu-west-3"
    lock_table: Optional[str] = None
    create_bucket: bool = True
    create_lock_table: bool = False
    create_kms_key: bool = True
    fix_bucket_permissions: bool = True
    secrets: SecretsConfig = field(
        default_factory=lambda: SecretsConfig(kind=SecretsProviderKind.AWSKMS)
    )
    assume_yes: bool = False
    interactive: bool = True


@dataclass
class InitResult:
    success: bool = False
    project: Optional[str] = None
    stack: Optional[str] = None
    backend_url: Optional[str] = None
    secrets: Optional[SecretsConfig] = None
    warnings: List[str] = field(default_factory=list)
    error: Optional[str] = None


class _Abort(Exception):
    pass


class ProjectInitializer:
    """
    Sets up the S3 backend resources, creates the project when the directory has none
    and initializes the first stack.
    """

    def __init__(
        self,
        request: InitRequest,
        pulumi: Optional[PulumiCommand] = None,
        aws: Optional[AwsCommand] = None,
        confirm: Optional[ConfirmFunc] = None,
        prompt: Optional[PromptFunc] = None,
    ) -> None:
        self.request = request
        self.pulumi = pulumi or PulumiCommand()
        self.aws = aws or AwsCommand()
        self._confirm = confirm
        self._prompt = prompt
        self.result = InitResult()

    def run(self) -> InitResult:
        try:
            self._run()
            self.result.success = True
        except (_Abort, MissingArgument, InvalidArgument, InvalidVersionError) as exception:
            log.error(str(exception))
            self.result.error = str(exception)
        return self.result

    def _warn(self, msg: str) -> None:
        log.warn(msg)
        self.result.warnings.append(msg)

    def _ask(self, question: str, default: str) -> str:
        if self.request.interactive and not self.request.assume_yes and self._prompt:
            return self._prompt(question, default) or default
        return default

    def _confirm_continue(self, question: str) -> bool:
        if self.request.assume_yes:
            return True
        if not self.request.interactive or self._confirm is None:
            return False
        return self._confirm(question)

    def _run(self) -> None:
        request = self.request
        self.pulumi.check_version()
        if not self.aws.caller_identity():
            self._warn("AWS credentials are not configured or are invalid")
            if not self._confirm_continue("Do you want to continue anyway?"):
                raise _Abort("initialization aborted")

        existing_name = load_project_name(request.work_dir)
        if existing_name:
            log.info(f"Using existing project {existing_name}")
            project = existing_name
        else:
            project = request.name or self._ask(
                "Project name", default_project_name(request.work_dir)
            )
        if request.template not in TEMPLATES:
            raise InvalidArgument(
                f"unknown template {request.template!r}, expected one of {', '.join(TEMPLATES)}"
            )
        stack = self._ask("Stack name", request.stack)
        bucket = request.bucket or self._ask(
            "S3 bucket name for state storage", default_bucket_name(project)
        )

        secrets = request.secrets
        if not secrets.region:
            secrets = replace(secrets, region=request.region)
        secrets.validate_for(target_is_cloud=False)

        backend = S3Backend(bucket, request.region, request.lock_table)
        backend, secrets = self._provision(backend, secrets)

        session = Session(self.pulumi, secrets.env())
        login = session.switch(backend)
        if not login.success:
            raise _Abort(f"could not log into {backend}: {login.output}")

        if not existing_name:
            created = session.run(
                _pulumi_args.new_project(request.template, project, request.description),
                cwd=request.work_dir,
            )
            if not created.success:
                raise _Abort(f"could not create project {project}: {created.output}")

        self._init_stack(session, stack, secrets)

        self.result.project = project
        self.result.stack = stack
        self.result.backend_url = backend.url
        self.result.secrets = secrets
        log.success(f"Project {project} initialized with S3 backend {backend.url}")

    def _provision(self, backend: S3Backend, secrets: SecretsConfig):
        request = self.request
        provisioner = Provisioner(self.aws)

        bucket = provisioner.ensure(S3Bucket(backend.bucket, backend.region), request.create_bucket)
        if not bucket.usable:
            raise _Abort(f"S3 bucket {backend.bucket} is not available")
        if request.fix_bucket_permissions:
            ensure_bucket_access(self.aws, backend.bucket, backend.region)

        if backend.lock_table:
            table = provisioner.ensure(
                LockTable(backend.lock_table, backend.region), request.create_lock_table
            )
            if not table.usable:
                self._warn("Continuing without state locking")
                backend = replace(backend, lock_table=None)

        if secrets.kind == SecretsProviderKind.AWSKMS:
            key = provisioner.ensure(
                KmsKeyAlias(secrets.kms_alias, backend.region), request.create_kms_key
            )
            if key.status == ProvisionStatus.PARTIAL:
                secrets = replace(
                    secrets,
                    kind=SecretsProviderKind.CUSTOM,
                    custom_url=f"awskms://{key.identifier}?region={backend.region}",
                )
            elif not key.usable:
                secrets = secrets.fallback()
                self._warn(f"Falling back to the {secrets.describe()} secrets provider")
        return backend, secrets

    def _init_stack(self, session: Session, stack: str, secrets: SecretsConfig) -> None:
        provider = secrets.provider_url()
        work_dir = self.request.work_dir
        result = session.run(_pulumi_args.stack_init(stack, provider), cwd=work_dir)
        if result.success:
            log.success(f"Created stack {stack}")
            return

        # `pulumi new --yes` may already have created the stack with the default provider.
        if not isinstance(create_command_error(result), StackAlreadyExistsError):
            raise _Abort(f"could not create stack {stack}: {result.output}")
        log.info(f"Stack {stack} already exists")
        if provider:
            changed = session.run(
                _pulumi_args.change_secrets_provider(stack, provider), cwd=work_dir
            )
            if not changed.success:
                self._warn(f"Could not set the secrets provider of stack {stack}: {changed.output}")
