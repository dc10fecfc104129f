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

from typing import Mapping, Optional

from . import _pulumi_args, log
from ._cmd import CommandResult, PulumiCommand, StepResult
from .backend import Backend


class Session:
    """
    Session tracks which backend the Pulumi CLI is logged into.

    The CLI keeps a single, process-wide login; every switch therefore logs out
    before logging in, and `current` is None whenever the login state is unknown.
    """

    def __init__(
        self,
        pulumi: PulumiCommand,
        env: Optional[Mapping[str, str]] = None,
        access_token: Optional[str] = None,
    ) -> None:
        self.pulumi = pulumi
        self.env = dict(env or {})
        if access_token:
            self.env["PULUMI_ACCESS_TOKEN"] = access_token
        self.current: Optional[Backend] = None
        self.identity: Optional[str] = None

    def run(self, args, cwd: Optional[str] = None) -> CommandResult:
        return self.pulumi.run(args, cwd=cwd, additional_env=self.env)

    def switch(self, backend: Backend) -> StepResult:
        """
        Logs out and logs into *backend*. Cloud logins are confirmed with ``whoami``.
        """
        self.current = None
        self.identity = None
        self.pulumi.run(_pulumi_args.logout(), additional_env=self.env)

        result = self.run(_pulumi_args.login(backend.url))
        if not result.success:
            return result

        if backend.is_cloud:
            whoami = self.pulumi.run(
                _pulumi_args.whoami(), additional_env=self.env, suppress_logging=True
            )
            if not whoami.success:
                return whoami
            self.identity = whoami.output
            log.info(f"Logged into {backend} as {self.identity}")
        else:
            log.info(f"Logged into {backend}")

        self.current = backend
        return result
