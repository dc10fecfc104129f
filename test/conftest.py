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

import logging

import pytest

from helpers import FakeAws, FakePulumi


@pytest.fixture
def calls():
    return []


@pytest.fixture
def pulumi(calls):
    return FakePulumi(calls)


@pytest.fixture
def aws(calls):
    return FakeAws(calls)


@pytest.fixture
def workspace(tmp_path):
    return str(tmp_path)


@pytest.fixture(autouse=True)
def infratools_logging(caplog):
    caplog.set_level(logging.DEBUG, logger="infratools")
