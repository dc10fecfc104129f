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

import pytest

from infratools.envsync import config_key, env_to_config, env_to_ssm, parameter_name
from infratools.errors import MissingArgument

ENV = """DB_HOST=localhost
#@secret
DB_PASSWORD=hunter2
EMPTY=
"""

SSM_ENV = """#@notSecured
LOG_LEVEL=debug
API_TOKEN=abc123
UNSET=
"""


@pytest.fixture
def env_path(tmp_path):
    path = tmp_path / ".env"
    path.write_text(ENV)
    return str(path)


@pytest.fixture
def ssm_env_path(tmp_path):
    path = tmp_path / ".env.ssm"
    path.write_text(SSM_ENV)
    return str(path)


def test_config_key():
    assert config_key("DB_HOST") == "dbHost"
    assert config_key("DB_HOST", camel_case=False) == "DB_HOST"
    assert config_key("DB_HOST", suffix="staging") == "dbHostStaging"


def test_env_to_config(env_path, pulumi, workspace):
    report = env_to_config(env_path, pulumi, stack="dev", cwd=workspace)

    assert report.success
    assert report.applied == ["dbHost", "dbPassword"]
    assert report.skipped == ["EMPTY"]
    assert pulumi.invocations("config", "set") == [
        ["config", "set", "dbHost", "localhost", "--stack", "dev"],
        ["config", "set", "dbPassword", "hunter2", "--secret", "--stack", "dev"],
    ]
    assert all(c.cwd == workspace for c in pulumi.calls)


def test_env_to_config_keeps_names(env_path, pulumi):
    env_to_config(env_path, pulumi, camel_case=False, suffix="prod")
    assert [args[2] for args in pulumi.invocations("config", "set")] == [
        "DB_HOSTProd",
        "DB_PASSWORDProd",
    ]


def test_env_to_config_dry_run(env_path, pulumi):
    report = env_to_config(env_path, pulumi, dry_run=True)
    assert report.applied == ["dbHost", "dbPassword"]
    assert pulumi.calls == []


def test_env_to_config_failure(env_path, pulumi):
    pulumi.on("config", "set", "dbPassword", code=255, stderr="error: no stack selected")
    report = env_to_config(env_path, pulumi)
    assert not report.success
    assert report.applied == ["dbHost"]
    assert report.failed == ["dbPassword"]


def test_secret_values_are_not_logged(env_path, pulumi, caplog):
    env_to_config(env_path, pulumi)
    assert "hunter2" not in caplog.text


def test_parameter_name():
    assert parameter_name("myapp/dev", "DB_HOST") == "/myapp/dev/DB_HOST"


def test_env_to_ssm(ssm_env_path, aws):
    report = env_to_ssm(ssm_env_path, "myapp/dev", aws)

    assert report.success
    assert report.applied == ["/myapp/dev/LOG_LEVEL", "/myapp/dev/API_TOKEN"]
    assert report.skipped == ["UNSET"]
    assert aws.invocations("ssm", "put-parameter") == [
        ["ssm", "put-parameter", "--name", "/myapp/dev/LOG_LEVEL", "--value", "debug",
         "--type", "String", "--overwrite"],
        ["ssm", "put-parameter", "--name", "/myapp/dev/API_TOKEN", "--value", "abc123",
         "--type", "SecureString", "--overwrite"],
    ]


def test_env_to_ssm_requires_stack(ssm_env_path, aws):
    with pytest.raises(MissingArgument):
        env_to_ssm(ssm_env_path, "", aws)
    assert aws.calls == []


def test_env_to_ssm_dry_run(ssm_env_path, aws):
    report = env_to_ssm(ssm_env_path, "myapp/dev", aws, dry_run=True)
    assert len(report.applied) == 2
    assert aws.invocations("ssm") == []


def test_env_to_ssm_failure(ssm_env_path, aws):
    aws.on("ssm", "put-parameter", code=254, stderr="AccessDeniedException")
    report = env_to_ssm(ssm_env_path, "myapp/dev", aws)
    assert not report.success
    assert report.failed == ["/myapp/dev/LOG_LEVEL", "/myapp/dev/API_TOKEN"]
