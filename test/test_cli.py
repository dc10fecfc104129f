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
import requests

from infratools import cli, eks


@pytest.fixture
def fakes(monkeypatch, pulumi, aws):
    monkeypatch.setattr(cli, "PulumiCommand", lambda: pulumi)
    monkeypatch.setattr(cli, "AwsCommand", lambda: aws)
    monkeypatch.delenv("AWS_REGION", raising=False)
    monkeypatch.delenv("AWS_DEFAULT_REGION", raising=False)
    return pulumi, aws


def test_parser_defaults():
    args = cli.build_parser().parse_args(["cloud-to-s3", "-s", "dev", "-b", "my-state"])
    assert args.create_bucket is True
    assert args.create_dynamodb is False
    assert args.create_kms is True
    assert args.secrets_provider == "awskms"
    assert args.change_secrets == "none"
    assert args.interactive is True

    args = cli.build_parser().parse_args(
        ["cloud-to-s3", "-s", "dev", "-b", "my-state", "--no-create-bucket", "--non-interactive"]
    )
    assert args.create_bucket is False
    assert args.interactive is False

    args = cli.build_parser().parse_args(["s3-to-cloud", "-s", "dev", "-b", "s3://my-state"])
    assert args.change_secrets == "target"
    assert args.secrets_provider == "service"


def test_missing_required_argument():
    with pytest.raises(SystemExit) as exc_info:
        cli.main(["cloud-to-s3", "-s", "dev"])
    assert exc_info.value.code == 2


def test_cloud_to_s3(fakes, workspace, capsys):
    pulumi, aws = fakes
    code = cli.main([
        "cloud-to-s3", "-s", "acme/dev", "-b", "my-state", "-r", "eu-west-3",
        "-w", workspace, "--non-interactive",
    ])
    assert code == 0
    assert pulumi.invocations("stack", "init") == [[
        "stack", "init", "dev", "--non-interactive",
        "--secrets-provider", "awskms://alias/pulumi-secrets?region=eu-west-3",
        "--organization", "acme",
    ]]
    out = capsys.readouterr().out
    assert "pulumi login 's3://my-state?region=eu-west-3'" in out
    assert "pulumi stack select dev" in out
    assert "pulumi stack rm acme/dev" in out


def test_cloud_to_s3_failure(fakes, workspace):
    pulumi, _ = fakes
    pulumi.on("stack", "export", code=255, stderr="error: no stack named 'acme/dev' found")
    code = cli.main(["cloud-to-s3", "-s", "acme/dev", "-b", "my-state", "-w", workspace, "--non-interactive"])
    assert code == 1


def test_cloud_to_s3_passphrase_required(fakes, workspace):
    pulumi, _ = fakes
    code = cli.main([
        "cloud-to-s3", "-s", "dev", "-b", "my-state", "-w", workspace,
        "--secrets-provider", "passphrase",
    ])
    assert code == 1
    assert pulumi.calls == []


def test_s3_to_cloud_default_region(fakes, workspace):
    pulumi, aws = fakes
    code = cli.main([
        "s3-to-cloud", "-s", "dev", "-b", "s3://my-state", "-w", workspace,
        "--access-token", "pul-123", "-y",
    ])
    assert code == 0
    assert pulumi.invocations("login", "s3://my-state?region=us-west-2")
    assert pulumi.invocations("stack", "change-secrets-provider") == [
        ["stack", "change-secrets-provider", "default", "--stack", "dev"]
    ]


def test_s3_to_cloud_rejects_cloud_source(fakes, workspace):
    pulumi, _ = fakes
    code = cli.main(["s3-to-cloud", "-s", "dev", "-b", "cloud", "-w", workspace])
    assert code == 1
    assert pulumi.calls == []


def test_init(fakes, workspace, capsys):
    pulumi, _ = fakes
    code = cli.main([
        "init", "-n", "demo", "-b", "my-state", "-w", workspace,
        "--secrets-provider", "passphrase", "-p", "hunter2", "-y",
    ])
    assert code == 0
    assert pulumi.invocations("new") == [["new", "typescript", "--force", "--yes", "--name", "demo"]]
    out = capsys.readouterr().out
    assert "pulumi login 's3://my-state?region=eu-west-3'" in out
    assert "PULUMI_CONFIG_PASSPHRASE" in out


def test_env_to_config(fakes, tmp_path):
    pulumi, _ = fakes
    env_file = tmp_path / ".env"
    env_file.write_text("#@secret\nDB_PASSWORD=hunter2\n")
    code = cli.main(["env-to-config", "--env-file", str(env_file), "--stack", "dev"])
    assert code == 0
    assert pulumi.invocations("config", "set") == [
        ["config", "set", "dbPassword", "hunter2", "--secret", "--stack", "dev"]
    ]


def test_env_to_config_missing_file(fakes, tmp_path):
    assert cli.main(["env-to-config", "--env-file", str(tmp_path / "missing.env")]) == 1


def test_env_to_ssm_dry_run(fakes, tmp_path):
    _, aws = fakes
    env_file = tmp_path / ".env"
    env_file.write_text("TOKEN=abc\n")
    code = cli.main(["env-to-ssm", "--env-file", str(env_file), "--stack", "app/dev", "--dry-run"])
    assert code == 0
    assert aws.invocations("ssm") == []


def test_eks_cidrs(fakes, monkeypatch):
    _, aws = fakes
    monkeypatch.setattr(eks, "current_public_ip", lambda: "198.51.100.23/32")
    aws.on("eks", "describe-cluster", stdout=json.dumps(
        {"cluster": {"resourcesVpcConfig": {"publicAccessCidrs": []}}}
    ))
    aws.on("eks", "update-cluster-config", stdout=json.dumps({"update": {"id": "u-1"}}))
    code = cli.main(["eks-cidrs", "-n", "prod", "-r", "eu-west-1", "--no-wait"])
    assert code == 0
    (update,) = aws.invocations("eks", "update-cluster-config")
    assert update[-1].endswith("publicAccessCidrs=198.51.100.23/32")


def test_eks_cidrs_requires_region(fakes):
    assert cli.main(["eks-cidrs", "-n", "prod", "-i", "10.0.0.0/8"]) == 1


def test_eks_cidrs_invalid_cidr(fakes):
    _, aws = fakes
    assert cli.main(["eks-cidrs", "-n", "prod", "-r", "eu-west-1", "-i", "10.0.0.1"]) == 1
    assert aws.calls == []


def test_eks_cidrs_public_ip_unavailable(fakes, monkeypatch):
    def unreachable():
        raise requests.ConnectionError("no route to host")

    monkeypatch.setattr(eks, "current_public_ip", unreachable)
    assert cli.main(["eks-cidrs", "-n", "prod", "-r", "eu-west-1"]) == 1


def test_eks_cidrs_aws_failure(fakes):
    _, aws = fakes
    aws.on("eks", "describe-cluster", code=254, stderr="ResourceNotFoundException")
    assert cli.main(["eks-cidrs", "-n", "prod", "-r", "eu-west-1", "-i", "10.0.0.0/8"]) == 1


def test_ecs_images(fakes, capsys):
    _, aws = fakes
    aws.on("ecs", "list-clusters", stdout=json.dumps({"clusterArns": []}))
    assert cli.main(["ecs-images"]) == 0
    assert "No ECS services found." in capsys.readouterr().out
