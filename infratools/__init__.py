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
Tools for moving Pulumi stacks between Pulumi Cloud and S3 backends, and for the
AWS chores that go with them.
"""

# Make all module members inside of this package available as package members.
from ._cmd import (
    AwsCommand,
    Command,
    CommandResult,
    PulumiCommand,
    StepResult,
)

from .backend import (
    CloudBackend,
    S3Backend,
    StackId,
    build_s3_url,
    parse_backend,
    parse_s3_url,
    split_stack_id,
)

from .errors import (
    ConcurrentUpdateError,
    ExternalCommandFailure,
    InvalidArgument,
    InvalidBackendUrl,
    InvalidVersionError,
    MissingArgument,
    ProvisionError,
    StackAlreadyExistsError,
    StackNotFoundError,
    VerificationMismatch,
)

from .migrate import (
    MigrationRequest,
    MigrationResult,
    MigrationState,
    Migrator,
    SecretsChange,
)

from .provision import (
    KmsKeyAlias,
    LockTable,
    ProvisionOutcome,
    ProvisionStatus,
    Provisioner,
    S3Bucket,
)

from .secrets import (
    SecretsConfig,
    SecretsProviderKind,
)

from .verify import (
    Verdict,
    classify,
)
