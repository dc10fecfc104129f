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
Argument lists for the Pulumi CLI sub-commands used by infratools.

Every function returns the argv without the leading program name, ready to be
passed to `PulumiCommand.run`.
"""

from typing import List, Optional


def version() -> List[str]:
    return ["version"]


def whoami() -> List[str]:
    return ["whoami"]


def logout() -> List[str]:
    return ["logout"]


def login(url: Optional[str] = None) -> List[str]:
    """
    :param url: The backend URL. None logs into Pulumi Cloud.
    """
    args = ["login"]
    if url:
        args.append(url)
    return args


def stack_init(
    stack: str,
    secrets_provider: Optional[str] = None,
    organization: Optional[str] = None,
) -> List[str]:
    args = ["stack", "init", stack, "--non-interactive"]
    if secrets_provider:
        args.extend(["--secrets-provider", secrets_provider])
    if organization:
        args.extend(["--organization", organization])
    return args


def stack_export(stack: str, path: str, show_secrets: bool = True) -> List[str]:
    args = ["stack", "export"]
    if show_secrets:
        args.append("--show-secrets")
    args.extend(["--stack", stack, "--file", path])
    return args


def stack_import(stack: str, path: str) -> List[str]:
    return ["stack", "import", "--stack", stack, "--file", path]


def stack_rm(stack: str) -> List[str]:
    return ["stack", "rm", "--stack", stack, "--yes"]


def change_secrets_provider(stack: str, provider: str) -> List[str]:
    return ["stack", "change-secrets-provider", provider, "--stack", stack]


def preview(stack: str, diff: bool = True) -> List[str]:
    args = ["preview", "--stack", stack]
    if diff:
        args.append("--diff")
    return args


def new_project(
    template: str, name: str, description: Optional[str] = None
) -> List[str]:
    args = ["new", template, "--force", "--yes", "--name", name]
    if description:
        args.extend(["--description", description])
    return args


def config_set(
    key: str, value: str, secret: bool = False, stack: Optional[str] = None
) -> List[str]:
    args = ["config", "set", key, value]
    if secret:
        args.append("--secret")
    if stack:
        args.extend(["--stack", stack])
    return args
