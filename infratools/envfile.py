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
Reading ``.env`` files whose entries may be annotated by a marker comment on the
line before them, for example::

    #@secret
    DB_PASSWORD=hunter2
"""

import re
from typing import Dict, NamedTuple, Set

from dotenv.parser import parse_stream

from .errors import InvalidArgument, MissingArgument

SECRET_MARKER = "#@secret"
NOT_SECURED_MARKER = "#@notSecured"

_snake_regex = re.compile(r"_([a-z])")


class EnvFile(NamedTuple):
    values: Dict[str, str]
    marked: Set[str]


def read_env_file(path: str, marker: str) -> EnvFile:
    """
    Reads *path* and returns its values in file order, together with the keys whose
    entry follows a *marker* comment.

    :raises MissingArgument: if the file does not exist.
    :raises InvalidArgument: if the file defines no variables.
    """
    try:
        with open(path, "r", encoding="utf-8") as stream:
            bindings = list(parse_stream(stream))
    except FileNotFoundError as exception:
        raise MissingArgument(f"env file {path!r} not found") from exception

    values: Dict[str, str] = {}
    marked: Set[str] = set()
    pending = False
    for binding in bindings:
        if binding.key is None:
            if binding.original.string.strip() == marker:
                pending = True
            continue
        values[binding.key] = binding.value or ""
        if pending:
            marked.add(binding.key)
            pending = False

    if not values:
        raise InvalidArgument(f"no environment variables found in {path!r}")
    return EnvFile(values, marked)


def to_camel_case(name: str, suffix: str = "") -> str:
    """
    Converts ``UPPER_SNAKE_CASE`` to ``camelCase`` and appends *suffix* with its first
    letter capitalized: ``to_camel_case("DB_HOST", "prod") == "dbHostProd"``.
    """
    camel = _snake_regex.sub(lambda m: m.group(1).upper(), name.lower())
    return camel + _capitalize(suffix)


def with_suffix(name: str, suffix: str = "") -> str:
    return name + _capitalize(suffix)


def _capitalize(value: str) -> str:
    return value[:1].upper() + value[1:]
