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

import re
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from ._cmd import CommandResult
    from .verify import Verdict


class ExternalCommandFailure(Exception):
    def __init__(self, command_result: "CommandResult"):
        self.name = "ExternalCommandFailure"
        self.result = command_result
        super().__init__(str(command_result))


class StackNotFoundError(ExternalCommandFailure):
    def __init__(self, command_result: "CommandResult"):
        super().__init__(command_result)
        self.name = "StackNotFoundError"


class StackAlreadyExistsError(ExternalCommandFailure):
    def __init__(self, command_result: "CommandResult"):
        super().__init__(command_result)
        self.name = "StackAlreadyExistsError"


class ConcurrentUpdateError(ExternalCommandFailure):
    def __init__(self, command_result: "CommandResult"):
        super().__init__(command_result)
        self.name = "ConcurrentUpdateError"


class MissingArgument(Exception):
    """A required input was not supplied."""


class InvalidArgument(Exception):
    """An input was supplied but cannot be used."""


class InvalidBackendUrl(InvalidArgument):
    pass


class InvalidVersionError(Exception):
    pass


class ProvisionError(Exception):
    """
    A supporting AWS resource could not be created.

    :param kind: The resource kind, for example ``"S3 bucket"``.
    :param name: The bucket name, table name or key alias.
    """

    def __init__(self, kind: str, name: str, detail: str = ""):
        self.kind = kind
        self.resource_name = name
        self.detail = detail
        message = f"failed to create {kind} {name!r}"
        if detail:
            message += f": {detail}"
        super().__init__(message)


class VerificationMismatch(Exception):
    """The preview against the new backend did not come back clean."""

    def __init__(self, verdict: "Verdict", output: str, stack: Optional[str] = None):
        self.verdict = verdict
        self.output = output
        self.stack = stack
        target = f" for stack {stack!r}" if stack else ""
        super().__init__(f"verification reported {verdict.value}{target}")


not_found_regex = re.compile("no stack named.*found")
already_exists_regex = re.compile("stack.*already exists")
conflict_text = "[409] Conflict: Another update is currently in progress."
diy_backend_conflict_text = "the stack is currently locked by"


def create_command_error(command_result: "CommandResult") -> ExternalCommandFailure:
    stderr = command_result.stderr
    if not_found_regex.search(stderr):
        return StackNotFoundError(command_result)
    if already_exists_regex.search(stderr):
        return StackAlreadyExistsError(command_result)
    if conflict_text in stderr:
        return ConcurrentUpdateError(command_result)
    if diy_backend_conflict_text in stderr:
        return ConcurrentUpdateError(command_result)
    return ExternalCommandFailure(command_result)
