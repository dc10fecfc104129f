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

from typing import Callable, Dict, List, NamedTuple, Optional

from infratools._cmd import AwsCommand, CommandResult, PulumiCommand


class Call(NamedTuple):
    program: str
    args: List[str]
    cwd: Optional[str]
    env: Dict[str, str]


def ok(stdout: str = "") -> CommandResult:
    return CommandResult(stdout=stdout, stderr="", code=0)


def fail(stderr: str = "error", code: int = 1) -> CommandResult:
    return CommandResult(stdout="", stderr=stderr, code=code)


class _Rule:
    def __init__(self, prefix, results, action):
        self.prefix = prefix
        self.results = list(results)
        self.action = action

    def next_result(self) -> CommandResult:
        if len(self.results) > 1:
            return self.results.pop(0)
        return self.results[0]


class _Scripted:
    """
    Replaces a CLI: records every invocation and answers with the result of the most
    recently added rule whose prefix matches the arguments. Unmatched calls succeed.
    """

    def __init__(self, calls: Optional[List[Call]] = None):
        super().__init__()
        self.calls = calls if calls is not None else []
        self.rules: List[_Rule] = []

    def on(self, *prefix: str, results=None, action: Optional[Callable[[List[str]], None]] = None, **kwargs):
        """
        :param prefix: The leading arguments to match.
        :param results: CommandResults returned in order; the last one repeats.
        :param action: Called with the arguments before returning.
        """
        if results is None:
            results = [CommandResult(
                stdout=kwargs.get("stdout", ""),
                stderr=kwargs.get("stderr", ""),
                code=kwargs.get("code", 0),
            )]
        self.rules.append(_Rule(list(prefix), results, action))
        return self

    def run(self, args, cwd=None, additional_env=None, suppress_logging=False, on_output=None):
        args = list(args)
        self.calls.append(Call(self.program, args, cwd, dict(additional_env or {})))
        for rule in reversed(self.rules):
            if args[: len(rule.prefix)] == rule.prefix:
                if rule.action:
                    rule.action(args)
                return rule.next_result()
        return ok()

    def invocations(self, *prefix: str) -> List[List[str]]:
        return [
            call.args
            for call in self.calls
            if call.program == self.program and call.args[: len(prefix)] == list(prefix)
        ]


def write_export_file(args: List[str]) -> None:
    path = args[args.index("--file") + 1]
    with open(path, "w", encoding="utf-8") as f:
        f.write('{"version": 3, "deployment": {}}')


class FakePulumi(_Scripted, PulumiCommand):
    def __init__(self, calls: Optional[List[Call]] = None):
        super().__init__(calls)
        self.on("version", stdout="v3.120.0")
        self.on("whoami", stdout="octocat")
        self.on("stack", "export", action=write_export_file)


class FakeAws(_Scripted, AwsCommand):
    def __init__(self, calls: Optional[List[Call]] = None):
        super().__init__(calls)
        self.on("sts", "get-caller-identity", stdout="arn:aws:iam::123456789012:user/ci")


def programs(calls: List[Call]) -> List[List[str]]:
    """The full command lines of *calls*, program first."""
    return [[call.program, *call.args] for call in calls]
