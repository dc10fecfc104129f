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
Moving a Pulumi stack between Pulumi Cloud and an S3 backend.

A migration is a fixed sequence of states. Each state runs one or two CLI commands
and decides whether the run continues, continues with a degraded configuration or
aborts. `Migrator.run` never raises; it returns a MigrationResult describing the
states that were visited and how the run ended.
"""

import os
import shutil
import tempfile
import traceback
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Callable, List, Optional

from . import _pulumi_args, log
from ._cmd import AwsCommand, PulumiCommand
from .backend import Backend, CloudBackend, S3Backend, split_stack_id, state_file_name
from .errors import (
    InvalidArgument,
    InvalidVersionError,
    MissingArgument,
    StackAlreadyExistsError,
    VerificationMismatch,
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
from .verify import Verdict, classify_result

ConfirmFunc = Callable[[str], bool]

TEMP_DIR_PREFIX = "pulumi-migrate-"


class MigrationState(str, Enum):
    INIT = "init"
    PROVISION_RESOURCES = "provision-resources"
    CHANGE_SECRETS_PROVIDER = "change-secrets-provider"
    EXPORT_STATE = "export-state"
    SWITCH_BACKEND = "switch-backend"
    CREATE_STACK = "create-stack"
    IMPORT_STATE = "import-state"
    CHANGE_TARGET_SECRETS_PROVIDER = "change-target-secrets-provider"
    VERIFY = "verify"
    CONFIRM_ON_MISMATCH = "confirm-on-mismatch"
    DELETE_SOURCE = "delete-source"
    CLEANUP = "cleanup"
    DONE = "done"
    ABORTED = "aborted"


class SecretsChange(str, Enum):
    """Where to run ``stack change-secrets-provider``: on the source before export, or on the imported stack."""

    SOURCE = "source"
    TARGET = "target"


class Direction(str, Enum):
    CLOUD_TO_S3 = "cloud-to-s3"
    S3_TO_CLOUD = "s3-to-cloud"


@dataclass(frozen=True)
class MigrationRequest:
    stack: str
    source: Backend
    target: Backend
    secrets: SecretsConfig = field(default_factory=SecretsConfig)
    workspace: str = "."
    organization: Optional[str] = None
    access_token: Optional[str] = None
    create_bucket: bool = True
    create_lock_table: bool = False
    create_kms_key: bool = True
    fix_bucket_permissions: bool = False
    change_secrets: Optional[SecretsChange] = None
    skip_verify: bool = False
    delete_source: bool = False
    assume_yes: bool = False
    interactive: bool = True

    @property
    def direction(self) -> Direction:
        if self.source.is_cloud:
            return Direction.CLOUD_TO_S3
        return Direction.S3_TO_CLOUD

    @property
    def s3(self) -> Optional[S3Backend]:
        for backend in (self.target, self.source):
            if isinstance(backend, S3Backend):
                return backend
        return None

    def validate(self) -> None:
        """
        :raises MissingArgument: if no stack was given.
        :raises InvalidArgument: if both or neither of the backends are Pulumi Cloud, or
            the workspace is not a directory.
        """
        if not self.stack or not self.stack.strip():
            raise MissingArgument("a stack name is required")
        split_stack_id(self.stack)
        if self.source.is_cloud == self.target.is_cloud:
            raise InvalidArgument(
                "exactly one of the source and target backends must be Pulumi Cloud"
            )
        if not os.path.isdir(self.workspace):
            raise InvalidArgument(f"workspace {self.workspace!r} is not a directory")


@dataclass
class MigrationResult:
    success: bool = False
    state: MigrationState = MigrationState.INIT
    history: List[MigrationState] = field(default_factory=list)
    target_stack: Optional[str] = None
    backend_url: Optional[str] = None
    verdict: Optional[Verdict] = None
    warnings: List[str] = field(default_factory=list)
    error: Optional[str] = None

    def visited(self, state: MigrationState) -> bool:
        return state in self.history


class _Abort(Exception):
    pass


class Migrator:
    """
    Runs one migration described by a MigrationRequest.

    :param pulumi: The Pulumi CLI. Defaults to ``pulumi`` on $PATH.
    :param aws: The AWS CLI. Defaults to ``aws`` on $PATH.
    :param confirm: Asks the user a yes/no question. Without it, and without
        ``assume_yes``, every confirmation is declined.
    """

    def __init__(
        self,
        request: MigrationRequest,
        pulumi: Optional[PulumiCommand] = None,
        aws: Optional[AwsCommand] = None,
        confirm: Optional[ConfirmFunc] = None,
    ) -> None:
        self.request = request
        self.pulumi = pulumi or PulumiCommand()
        self.aws = aws or AwsCommand()
        self._confirm = confirm
        self.result = MigrationResult()

        secrets = request.secrets
        s3 = request.s3
        if secrets.kind == SecretsProviderKind.AWSKMS and not secrets.region and s3:
            secrets = replace(secrets, region=s3.region)
        self.secrets = secrets
        self.target: Backend = request.target

        self.session = Session(self.pulumi, secrets.env(), request.access_token)
        self.temp_dir: Optional[str] = None
        self.state_file: Optional[str] = None
        self.stack_ref: Optional[str] = None
        self._imported = False
        self._cleaned = False

    def run(self) -> MigrationResult:
        request = self.request
        log.info(
            f"Migrating stack {request.stack} from {request.source} to {request.target}"
        )
        try:
            self._init()
            self._provision()
            if request.change_secrets == SecretsChange.SOURCE:
                self._change_source_secrets()
            self._export()
            self._switch_backend()
            self._create_stack()
            self._import()
            if request.change_secrets == SecretsChange.TARGET:
                self._change_target_secrets()
            if not request.skip_verify:
                self._verify()
            if request.delete_source:
                self._delete_source()
            self.result.success = True
        except (_Abort, MissingArgument, InvalidArgument, InvalidVersionError) as exception:
            self._record_failure(str(exception))
        except Exception as exception:  # noqa: BLE001 catch blind exception
            log.debug(traceback.format_exc())
            self._record_failure(f"unexpected error: {exception}")
        finally:
            self._cleanup()

        if self.result.success:
            self._enter(MigrationState.DONE)
            log.success(f"Stack {self.stack_ref} migrated to {self.target}")
        else:
            self._enter(MigrationState.ABORTED)
        return self.result

    def _enter(self, state: MigrationState) -> None:
        log.debug(f"Entering state {state.value}")
        self.result.state = state
        self.result.history.append(state)

    def _warn(self, msg: str) -> None:
        log.warn(msg)
        self.result.warnings.append(msg)

    def _record_failure(self, msg: str) -> None:
        if self._imported:
            msg = f"{msg}; target stack {self.stack_ref} already holds imported state"
        log.error(msg)
        self.result.error = msg

    def _confirm_continue(self, prompt: str) -> bool:
        if self.request.assume_yes:
            return True
        if not self.request.interactive or self._confirm is None:
            log.info(f"{prompt} (declined, not running interactively)")
            return False
        return self._confirm(prompt)

    def _init(self) -> None:
        self._enter(MigrationState.INIT)
        self.request.validate()
        self.secrets.validate_for(self.target.is_cloud)
        version = self.pulumi.check_version()
        log.debug(f"Using Pulumi CLI {version}")

        identity = self.aws.caller_identity()
        if identity:
            log.info(f"Using AWS identity {identity}")
        else:
            self._warn("AWS credentials are not configured or are invalid")
            if not self._confirm_continue("Continue without verified AWS credentials?"):
                raise _Abort("AWS credentials are not configured")

    def _provision(self) -> None:
        self._enter(MigrationState.PROVISION_RESOURCES)
        if not isinstance(self.target, S3Backend):
            log.info("Target is Pulumi Cloud, no AWS resources to provision")
            return

        request = self.request
        target = self.target
        provisioner = Provisioner(self.aws)

        bucket = provisioner.ensure(S3Bucket(target.bucket, target.region), request.create_bucket)
        if not bucket.usable:
            raise _Abort(f"S3 bucket {target.bucket} is not available")

        if request.fix_bucket_permissions:
            if not ensure_bucket_access(self.aws, target.bucket, target.region):
                self._warn(f"Could not update the access policy of bucket {target.bucket}")

        if target.lock_table:
            table = provisioner.ensure(
                LockTable(target.lock_table, target.region), request.create_lock_table
            )
            if not table.usable:
                self._warn(
                    f"DynamoDB table {target.lock_table} is not available, continuing without state locking"
                )
                self.target = replace(target, lock_table=None)

        if self.secrets.kind == SecretsProviderKind.AWSKMS:
            key = provisioner.ensure(
                KmsKeyAlias(self.secrets.kms_alias, target.region), request.create_kms_key
            )
            if key.status == ProvisionStatus.PARTIAL:
                self.secrets = replace(
                    self.secrets,
                    kind=SecretsProviderKind.CUSTOM,
                    custom_url=f"awskms://{key.identifier}?region={target.region}",
                )
            elif not key.usable:
                self.secrets = self.secrets.fallback()
                self._warn(
                    f"KMS key {self.secrets.kms_alias} is not available, "
                    f"falling back to the {self.secrets.describe()} secrets provider"
                )

    def _select_source(self) -> None:
        if self.session.current == self.request.source:
            return
        result = self.session.switch(self.request.source)
        if not result.success:
            raise _Abort(f"could not log into the source backend: {result.output}")

    def _change_source_secrets(self) -> None:
        self._enter(MigrationState.CHANGE_SECRETS_PROVIDER)
        self._select_source()
        result = self.session.run(
            _pulumi_args.change_secrets_provider(
                self.request.stack, self.secrets.change_provider_arg()
            ),
            cwd=self.request.workspace,
        )
        if not result.success:
            self._warn(f"Could not change the secrets provider of the source stack: {result.output}")

    def _export(self) -> None:
        self._enter(MigrationState.EXPORT_STATE)
        self._select_source()

        self.temp_dir = tempfile.mkdtemp(prefix=TEMP_DIR_PREFIX)
        self.state_file = os.path.join(self.temp_dir, state_file_name(self.request.stack))
        result = self.session.run(
            _pulumi_args.stack_export(self.request.stack, self.state_file),
            cwd=self.request.workspace,
        )
        if not result.success:
            raise _Abort(f"could not export stack {self.request.stack}: {result.output}")
        log.success(f"Exported stack {self.request.stack} to {self.state_file}")

    def _switch_backend(self) -> None:
        self._enter(MigrationState.SWITCH_BACKEND)
        result = self.session.switch(self.target)
        if not result.success:
            raise _Abort(f"could not log into the target backend: {result.output}")
        self.result.backend_url = self.target.url

    def _create_stack(self) -> None:
        self._enter(MigrationState.CREATE_STACK)
        stack_id = split_stack_id(self.request.stack)
        org = self.request.organization or stack_id.org
        provider = self.secrets.provider_url()

        if isinstance(self.target, CloudBackend) and org:
            ref = f"{org}/{stack_id.name}"
            args = _pulumi_args.stack_init(ref, provider)
        else:
            ref = stack_id.name
            args = _pulumi_args.stack_init(ref, provider, organization=org)

        result = self.session.run(args, cwd=self.request.workspace)
        if not result.success and isinstance(create_command_error(result), StackAlreadyExistsError):
            raise _Abort(f"stack {ref} already exists on the target backend")
        if not result.success and org:
            log.warn(f"Could not create stack {ref} with organization {org}, retrying as {stack_id.name}")
            ref = stack_id.name
            result = self.session.run(
                _pulumi_args.stack_init(ref, provider), cwd=self.request.workspace
            )
        if not result.success:
            raise _Abort(f"could not create stack {ref}: {result.output}")

        self.stack_ref = ref
        self.result.target_stack = ref
        log.success(f"Created stack {ref} with the {self.secrets.describe()} secrets provider")

    def _import(self) -> None:
        self._enter(MigrationState.IMPORT_STATE)
        assert self.stack_ref is not None and self.state_file is not None
        result = self.session.run(
            _pulumi_args.stack_import(self.stack_ref, self.state_file),
            cwd=self.request.workspace,
        )
        if not result.success:
            raise _Abort(f"could not import state into stack {self.stack_ref}: {result.output}")
        self._imported = True
        log.success(f"Imported state into stack {self.stack_ref}")

    def _change_target_secrets(self) -> None:
        self._enter(MigrationState.CHANGE_TARGET_SECRETS_PROVIDER)
        assert self.stack_ref is not None
        provider = self.secrets.change_provider_arg()
        result = self.session.run(
            _pulumi_args.change_secrets_provider(self.stack_ref, provider),
            cwd=self.request.workspace,
        )
        if not result.success:
            self._warn(f"Could not change the secrets provider of stack {self.stack_ref}: {result.output}")
            if not self._confirm_continue("Continue with the migration?"):
                raise _Abort("secrets provider change failed")

    def _verify(self) -> None:
        self._enter(MigrationState.VERIFY)
        assert self.stack_ref is not None
        result = self.session.run(
            _pulumi_args.preview(self.stack_ref), cwd=self.request.workspace
        )
        verdict = classify_result(result)
        self.result.verdict = verdict
        if verdict == Verdict.CLEAN:
            log.success(f"Preview of stack {self.stack_ref} shows no changes")
            return

        self._warn(f"Preview of stack {self.stack_ref} reported {verdict.value}:\n{result.output}")
        self._enter(MigrationState.CONFIRM_ON_MISMATCH)
        if not self._confirm_continue("The migrated stack differs from the program. Continue?"):
            raise _Abort(str(VerificationMismatch(verdict, result.output, self.stack_ref)))

    def _delete_source(self) -> None:
        self._enter(MigrationState.DELETE_SOURCE)
        stack = self.request.stack
        if not self._confirm_continue(
            f"Delete stack {stack} from {self.request.source}? This cannot be undone."
        ):
            log.info(f"Keeping source stack {stack}")
            return

        login = self.session.switch(self.request.source)
        if not login.success:
            self._warn(f"Could not log back into the source backend, stack {stack} was not removed")
            return
        result = self.session.run(_pulumi_args.stack_rm(stack), cwd=self.request.workspace)
        if not result.success:
            self._warn(f"Could not remove source stack {stack}: {result.output}")
            return
        log.success(f"Removed stack {stack} from {self.request.source}")

    def _cleanup(self) -> None:
        if self._cleaned:
            return
        self._cleaned = True
        self._enter(MigrationState.CLEANUP)
        if self.temp_dir is None:
            return
        try:
            shutil.rmtree(self.temp_dir)
            log.debug(f"Removed {self.temp_dir}")
        except OSError as exception:
            self._warn(f"Could not remove temporary directory {self.temp_dir}: {exception}")
