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

from __future__ import annotations
import json
import os
import shlex
import subprocess
import threading
from typing import Any, Callable, List, Mapping, Optional, Sequence

from semver import VersionInfo

from . import _aws_args, _pulumi_args, log
from .errors import InvalidVersionError, create_command_error

OnOutput = Callable[[str], Any]

# `stack export --show-secrets` and `stack change-secrets-provider` both need a v3 CLI.
_MINIMUM_PULUMI_VERSION = VersionInfo(3, 0, 0)


class StepResult:
    """The outcome of one external command or one orchestration step."""

    def __init__(self, success: bool, output: str = "") -> None:
        self.success = success
        self.output = output

    def __repr__(self):
        return f"StepResult(success={self.success!r}, output={self.output!r})"

    def __bool__(self) -> bool:
        return self.success


class CommandResult(StepResult):
    def __init__(self, stdout: str, stderr: str, code: int) -> None:
        self.stdout = stdout
        self.stderr = stderr
        self.code = code
        if code == 0:
            output = stdout.strip()
        else:
            output = (stderr or stdout).strip()
        super().__init__(code == 0, output)

    def __repr__(self):
        return f"CommandResult(stdout={self.stdout!r}, stderr={self.stderr!r}, code={self.code!r})"

    def __str__(self) -> str:
        return f"\n code: {self.code}\n stdout: {self.stdout}\n stderr: {self.stderr}"


class Command:
    """
    Command runs one external CLI, `pulumi` or `aws`, and captures its output.

    Failures never raise from `run`; the returned CommandResult carries the exit code
    and the best available diagnostic. Use `run_checked` where a failure should raise.
    """

    program: str

    def __init__(self, program: str, root: Optional[str] = None) -> None:
        """
        :param program: The executable name, looked up on $PATH.
        :param root: Optional installation directory; the executable is then `<root>/bin/<program>`.
        """
        self.program = os.path.join(root, "bin", program) if root else program

    def run(
        self,
        args: Sequence[str],
        cwd: Optional[str] = None,
        additional_env: Optional[Mapping[str, str]] = None,
        suppress_logging: bool = False,
        on_output: Optional[OnOutput] = None,
    ) -> CommandResult:
        """
        Runs the program, returning a CommandResult.

        :param args: The arguments to pass to the program, for example `["stack", "ls"]`.
        :param cwd: The working directory to run the command in. Defaults to the current directory.
        :param additional_env: Environment variables overriding the inherited environment.
        :param suppress_logging: Log the command line at debug level instead of info.
        :param on_output: A callback to invoke for each line of stdout.
        """
        cmd = [self.program, *args]
        line = " ".join(shlex.quote(part) for part in cmd)
        if suppress_logging:
            log.debug(f"Executing: {line}")
        else:
            log.info(f"Executing: {line}")

        env = {**os.environ, **(additional_env or {})}

        stdout_chunks: List[str] = []
        stderr_chunks: List[str] = []

        def consumer(stream, callback, chunks):
            for output_line in iter(stream.readline, ""):
                stripped = output_line.rstrip()
                if callback:
                    callback(stripped)
                chunks.append(stripped)
            stream.close()

        try:
            with subprocess.Popen(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                cwd=cwd,
                env=env,
                encoding="utf-8",
                errors="replace",
            ) as process:
                assert process.stdout is not None
                assert process.stderr is not None

                stdout = threading.Thread(
                    target=consumer, args=(process.stdout, on_output, stdout_chunks)
                )
                stderr = threading.Thread(
                    target=consumer, args=(process.stderr, None, stderr_chunks)
                )

                stdout.start()
                stderr.start()

                stdout.join()
                stderr.join()

                process.wait()
                code = process.returncode
        except OSError as exception:
            log.debug(f"Failed to start {self.program}: {exception}")
            return CommandResult(stdout="", stderr=str(exception), code=-1)

        result = CommandResult(
            stderr="\n".join(stderr_chunks), stdout="\n".join(stdout_chunks), code=code
        )
        if result.stderr:
            log.debug(f"Command stderr: {result.stderr}")
        return result

    def run_checked(
        self,
        args: Sequence[str],
        cwd: Optional[str] = None,
        additional_env: Optional[Mapping[str, str]] = None,
        suppress_logging: bool = False,
    ) -> CommandResult:
        """
        Like `run`, but raises an ExternalCommandFailure if the command exits non-zero.
        """
        result = self.run(
            args, cwd=cwd, additional_env=additional_env, suppress_logging=suppress_logging
        )
        if not result.success:
            raise create_command_error(result)
        return result

    def run_json(
        self,
        args: Sequence[str],
        cwd: Optional[str] = None,
        additional_env: Optional[Mapping[str, str]] = None,
    ) -> Any:
        result = self.run_checked(
            args, cwd=cwd, additional_env=additional_env, suppress_logging=True
        )
        if not result.stdout.strip():
            return {}
        return json.loads(result.stdout)


class PulumiCommand(Command):
    """PulumiCommand runs the Pulumi CLI."""

    def __init__(self, root: Optional[str] = None) -> None:
        super().__init__("pulumi", root)

    def check_version(self, min_version: VersionInfo = _MINIMUM_PULUMI_VERSION) -> VersionInfo:
        """
        Checks that the Pulumi CLI is installed and recent enough.

        :raises InvalidVersionError: if the CLI is missing, unparseable or too old.
        """
        result = self.run(_pulumi_args.version(), suppress_logging=True)
        if not result.success:
            raise InvalidVersionError(
                f"Pulumi CLI is not installed or not in PATH: {result.output}"
            )
        return _parse_and_validate_pulumi_version(min_version, result.stdout.strip())


class AwsCommand(Command):
    """AwsCommand runs the AWS CLI."""

    def __init__(self, root: Optional[str] = None) -> None:
        super().__init__("aws", root)

    def caller_identity(self) -> Optional[str]:
        """
        Returns the ARN of the configured AWS identity, or None if credentials are not usable.
        """
        result = self.run(
            _aws_args.caller_identity_arn(),
            suppress_logging=True,
        )
        if not result.success or not result.output:
            return None
        return result.output


def _parse_and_validate_pulumi_version(
    min_version: VersionInfo, current_version: str
) -> VersionInfo:
    """
    Parse and return a version. An error is raised if the version is not
    valid or older than *min_version*.
    """
    if current_version.startswith("v"):
        current_version = current_version[1:]
    try:
        version = VersionInfo.parse(current_version)
    except ValueError as exception:
        raise InvalidVersionError(
            f"Could not parse the Pulumi CLI version {current_version!r}."
        ) from exception
    if min_version.compare(version) == 1:
        raise InvalidVersionError(
            f"Minimum version requirement failed. The minimum CLI version requirement is "
            f"{min_version}, your current CLI version is {version}. "
            f"Please update the Pulumi CLI."
        )
    return version
