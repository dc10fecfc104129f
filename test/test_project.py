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

import json

import pytest

from infratools.errors import InvalidArgument
from infratools.project import (
    InitRequest,
    ProjectInitializer,
    default_bucket_name,
    default_lock_table_name,
    default_project_name,
    find_project_file,
    load_project_name,
    sanitize_name,
)
from infratools.secrets import SecretsConfig, SecretsProviderKind

KMS_URL = "awskms://alias/pulumi-secrets?region=eu-west-3"


@pytest.mark.parametrize(
    "name,expected",
    [
        ("demo", "demo"),
        ("My Project", "my-project"),
        ("api_v2", "api-v2"),
        ("Already-Fine-1", "already-fine-1"),
    ],
)
def test_sanitize_name(name, expected):
    assert sanitize_name(name) == expected


def test_default_names(tmp_path):
    work_dir = tmp_path / "Web_App"
    work_dir.mkdir()
    assert default_project_name(str(work_dir)) == "web-app"
    assert default_bucket_name("Web App", 42) == "pulumi-state-web-app-42"
    assert default_bucket_name("web").startswith("pulumi-state-web-")
    assert default_lock_table_name("web") == "pulumi-state-lock-web"


def test_load_project_name(tmp_path):
    assert find_project_file(str(tmp_path)) is None
    assert load_project_name(str(tmp_path)) is None

    (tmp_path / "Pulumi.yaml").write_text("name: billing\nruntime: python\n")
    assert find_project_file(str(tmp_path)).endswith("Pulumi.yaml")
    assert load_project_name(str(tmp_path)) == "billing"


def test_load_project_name_json(tmp_path):
    (tmp_path / "Pulumi.json").write_text(json.dumps({"name": "billing", "runtime": "go"}))
    assert load_project_name(str(tmp_path)) == "billing"


def test_load_project_name_without_name(tmp_path):
    (tmp_path / "Pulumi.yml").write_text("runtime: nodejs\n")
    assert load_project_name(str(tmp_path)) is None


def test_load_project_name_malformed(tmp_path):
    (tmp_path / "Pulumi.yaml").write_text("name: [unclosed\n")
    with pytest.raises(InvalidArgument, match="Pulumi.yaml"):
        load_project_name(str(tmp_path))


def test_load_project_name_malformed_json(tmp_path):
    (tmp_path / "Pulumi.json").write_text("{\"name\": ")
    with pytest.raises(InvalidArgument, match="Pulumi.json"):
        load_project_name(str(tmp_path))


def request(workspace, **kwargs):
    kwargs.setdefault("name", "demo")
    kwargs.setdefault("bucket", "my-state")
    return InitRequest(work_dir=workspace, interactive=False, **kwargs)


def test_init_new_project(workspace, pulumi, aws):
    result = ProjectInitializer(request(workspace), pulumi, aws).run()

    assert result.success, result.error
    assert result.project == "demo"
    assert result.stack == "dev"
    assert result.backend_url == "s3://my-state?region=eu-west-3"
    assert result.secrets.provider_url() == KMS_URL

    assert aws.invocations("s3api", "put-bucket-policy")
    assert pulumi.invocations("login") == [["login", "s3://my-state?region=eu-west-3"]]
    (new,) = pulumi.invocations("new")
    assert new == ["new", "typescript", "--force", "--yes", "--name", "demo"]
    assert pulumi.invocations("stack", "init") == [
        ["stack", "init", "dev", "--non-interactive", "--secrets-provider", KMS_URL]
    ]
    assert all(c.cwd == workspace for c in pulumi.calls if c.args[0] in ("new", "stack"))


def test_init_existing_project(tmp_path, pulumi, aws):
    (tmp_path / "Pulumi.yaml").write_text("name: billing\nruntime: python\n")
    result = ProjectInitializer(request(str(tmp_path), name=None), pulumi, aws).run()
    assert result.success
    assert result.project == "billing"
    assert pulumi.invocations("new") == []


def test_init_stack_created_by_new(workspace, pulumi, aws):
    pulumi.on("stack", "init", code=255, stderr="error: stack 'dev' already exists")
    result = ProjectInitializer(request(workspace), pulumi, aws).run()
    assert result.success
    assert pulumi.invocations("stack", "change-secrets-provider") == [
        ["stack", "change-secrets-provider", KMS_URL, "--stack", "dev"]
    ]


def test_init_stack_failure(workspace, pulumi, aws):
    pulumi.on("stack", "init", code=255, stderr="error: permission denied")
    result = ProjectInitializer(request(workspace), pulumi, aws).run()
    assert not result.success
    assert "permission denied" in result.error


def test_init_prompts(workspace, pulumi, aws):
    answers = {"Project name": "shop", "Stack name": "prod", "S3 bucket name for state storage": ""}
    asked = []

    def prompt(question, default):
        asked.append(question)
        return answers[question]

    req = InitRequest(work_dir=workspace, secrets=SecretsConfig(kind=SecretsProviderKind.DEFAULT))
    result = ProjectInitializer(req, pulumi, aws, prompt=prompt).run()

    assert result.success, result.error
    assert asked == list(answers)
    assert result.project == "shop"
    assert result.stack == "prod"
    # An empty answer keeps the suggested default.
    assert result.backend_url.startswith("s3://pulumi-state-shop-")
    assert pulumi.invocations("stack", "init") == [["stack", "init", "prod", "--non-interactive"]]


def test_init_unknown_template(workspace, pulumi, aws):
    result = ProjectInitializer(request(workspace, template="cobol"), pulumi, aws).run()
    assert not result.success
    assert "cobol" in result.error
    assert pulumi.invocations("login") == []


def test_init_missing_bucket(workspace, pulumi, aws):
    aws.on("s3api", "head-bucket", code=254)
    result = ProjectInitializer(request(workspace, create_bucket=False), pulumi, aws).run()
    assert not result.success
    assert "my-state" in result.error
    assert aws.invocations("s3api", "create-bucket") == []


def test_init_kms_fallback_to_passphrase(workspace, pulumi, aws):
    aws.on("kms", "describe-key", code=254)
    secrets = SecretsConfig(kind=SecretsProviderKind.AWSKMS, passphrase="hunter2")
    result = ProjectInitializer(
        request(workspace, secrets=secrets, create_kms_key=False), pulumi, aws
    ).run()
    assert result.success
    assert result.secrets.kind == SecretsProviderKind.PASSPHRASE
    init = next(c for c in pulumi.calls if c.args[:2] == ["stack", "init"])
    assert init.args[-1] == "passphrase"
    assert init.env == {"PULUMI_CONFIG_PASSPHRASE": "hunter2"}
    assert result.warnings


def test_init_kms_alias_failure_uses_key_id(workspace, pulumi, aws):
    aws.on("kms", "describe-key", code=254)
    aws.on("kms", "create-key", stdout="1234abcd-12ab-34cd-56ef-1234567890ab")
    aws.on("kms", "create-alias", code=255, stderr="AccessDenied")
    result = ProjectInitializer(request(workspace), pulumi, aws).run()
    assert result.success
    assert result.secrets.provider_url() == (
        "awskms://1234abcd-12ab-34cd-56ef-1234567890ab?region=eu-west-3"
    )


def test_init_lock_table(workspace, pulumi, aws):
    aws.on("dynamodb", "describe-table", code=254)
    result = ProjectInitializer(
        request(workspace, lock_table="locks", create_lock_table=True), pulumi, aws
    ).run()
    assert result.success
    assert aws.invocations("dynamodb", "create-table")
    assert aws.invocations("dynamodb", "update-continuous-backups")
    assert result.backend_url == "s3://my-state?region=eu-west-3&dynamodb_table=locks"


def test_init_without_credentials_declined(workspace, pulumi, aws):
    aws.on("sts", "get-caller-identity", code=255, stderr="Unable to locate credentials")
    result = ProjectInitializer(request(workspace), pulumi, aws).run()
    assert not result.success
    assert aws.invocations("s3api") == []


def test_init_malformed_project_file(tmp_path, pulumi, aws):
    (tmp_path / "Pulumi.yaml").write_text("name: [unclosed\n")
    result = ProjectInitializer(request(str(tmp_path), name=None), pulumi, aws).run()
    assert not result.success
    assert "could not read" in result.error
    assert pulumi.invocations("login") == []
