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
from enum import Enum

from ._cmd import CommandResult


class Verdict(str, Enum):
    CLEAN = "clean"
    CHANGES_DETECTED = "changes detected"


_OPERATIONS = "create|update|delete|replace"

# "2 resources to create", "1 resource to update"
_COUNT_REGEX = re.compile(rf"(\d+)\s+resources?\s+to\s+({_OPERATIONS})\b")
# "+ 2 to create", "~ 1 to update", "- 3 to delete", "+-1 to replace"
_SUMMARY_REGEX = re.compile(rf"(?:\+-|[+~-])\s*(\d+)\s+to\s+({_OPERATIONS})\b")


def classify(output: str) -> Verdict:
    """
    Classifies the output of ``pulumi preview``. Any non-zero count of resources to
    create, update, delete or replace means the imported state differs from the program.
    """
    for regex in (_COUNT_REGEX, _SUMMARY_REGEX):
        for match in regex.finditer(output):
            if int(match.group(1)) > 0:
                return Verdict.CHANGES_DETECTED
    return Verdict.CLEAN


def classify_result(result: CommandResult) -> Verdict:
    if not result.success:
        return Verdict.CHANGES_DETECTED
    return classify(result.stdout)
