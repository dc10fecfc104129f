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
The ``infratools`` command line.
"""

import argparse
import sys
from typing import List, Optional

import requests

from . import ecs, eks, envsync, log
from ._cmd import AwsCommand, PulumiCommand
from .backend import CloudBackend, S3Backend, parse_backend, resolve_region
from .errors import (
    ExternalCommandFailure,
    InvalidArgument,
    InvalidVersionError,
    MissingArgument,
)
from .migrate import MigrationRequest, MigrationResult, Migrator, SecretsChange
from .project import DEFAULT_STACK, DEFAULT_TEMPLATE, TEMPLATES, InitRequest, ProjectInitializer
from .secrets import DEFAULT_KMS_ALIAS, SecretsConfig, SecretsProviderKind

# Default region of `s3-to-cloud` when neither the backend URL nor the environment names one.
S3_TO_CLOUD_DEFAULT_REGION = "us-west-2"


def confirm(question: str) -> bool:
    try:
        answer = input(f"{question} [y/N] ")
    except EOFError:
        return False
    return answer.strip().lower() in ("y", "yes")


def prompt(question: str, default: str) -> str:
    suffix = f" [{default}]" if default else ""
    try:
        answer = input(f"{question}{suffix}: ")
    except EOFError:
        return default
    return answer.strip() or default


def _change_secrets(value: Optional[str]) -> Optional[SecretsChange]:
    if not value or value == "none":
        return None
    return SecretsChange(value)


def _print_next_steps(result: MigrationResult, request: MigrationRequest) -> None:
    login = f"pulumi login '{result.backend_url}'" if result.backend_url else "pulumi login"
    print("\nNext steps:")
    print(f"  {login}")
    print(f"  pulumi stack select {result.target_stack}")
    print("  pulumi preview")
    if request.secrets.passphrase:
        print("  export PULUMI_CONFIG_PASSPHRASE=<your passphrase> before running Pulumi")
    if not request.delete_source:
        print(f"  remove the source stack once satisfied: pulumi stack rm {request.stack}")


def _run_migration(request: MigrationRequest) -> int:
    migrator = Migrator(request, PulumiCommand(), AwsCommand(), confirm=confirm)
    result = migrator.run()
    if not result.success:
        return 1
    _print_next_steps(result, request)
    return 0


def cloud_to_s3(args: argparse.Namespace) -> int:
    region = resolve_region(args.region)
    target = S3Backend(args.bucket, region, args.dynamodb_table)
    secrets = SecretsConfig.from_flags(
        args.secrets_provider,
        SecretsProviderKind.AWSKMS,
        passphrase=args.passphrase,
        kms_alias=args.kms_alias,
        region=region,
    )
    request = MigrationRequest(
        stack=args.stack,
        source=CloudBackend(),
        target=target,
        secrets=secrets,
        workspace=args.workspace,
        organization=args.organization,
        access_token=args.access_token,
        create_bucket=args.create_bucket,
        create_lock_table=args.create_dynamodb,
        create_kms_key=args.create_kms,
        fix_bucket_permissions=args.fix_permissions,
        change_secrets=_change_secrets(args.change_secrets),
        skip_verify=args.skip_verify,
        delete_source=args.delete_source,
        assume_yes=args.yes,
        interactive=args.interactive,
    )
    return _run_migration(request)


def s3_to_cloud(args: argparse.Namespace) -> int:
    region = resolve_region(args.region, default=S3_TO_CLOUD_DEFAULT_REGION)
    source = parse_backend(args.backend, default_region=region)
    if not isinstance(source, S3Backend):
        raise InvalidArgument(f"--backend must be an s3:// URL, got {args.backend!r}")
    secrets = SecretsConfig.from_flags(
        args.secrets_provider,
        SecretsProviderKind.SERVICE,
        passphrase=args.passphrase,
        kms_alias=args.kms_key,
        region=source.region,
    )
    request = MigrationRequest(
        stack=args.stack,
        source=source,
        target=CloudBackend(),
        secrets=secrets,
        workspace=args.workspace,
        organization=args.organization,
        access_token=args.access_token,
        change_secrets=_change_secrets(args.change_secrets),
        skip_verify=args.skip_verify,
        delete_source=args.delete_source,
        assume_yes=args.yes,
        interactive=args.interactive,
    )
    return _run_migration(request)


def init(args: argparse.Namespace) -> int:
    region = resolve_region(args.region)
    secrets = SecretsConfig.from_flags(
        args.secrets_provider,
        SecretsProviderKind.AWSKMS,
        passphrase=args.passphrase,
        kms_alias=args.kms_alias,
        region=region,
    )
    request = InitRequest(
        work_dir=args.work_dir,
        name=args.name,
        description=args.description,
        template=args.template,
        stack=args.stack,
        bucket=args.bucket,
        region=region,
        lock_table=args.dynamodb_table,
        create_bucket=args.create_bucket,
        create_lock_table=args.create_dynamodb,
        create_kms_key=args.create_kms,
        secrets=secrets,
        assume_yes=args.yes,
        interactive=args.interactive,
    )
    result = ProjectInitializer(
        request, PulumiCommand(), AwsCommand(), confirm=confirm, prompt=prompt
    ).run()
    if not result.success:
        return 1

    print("\nNext steps:")
    print("  edit your Pulumi program, then run `pulumi preview` and `pulumi up`")
    print(f"  in CI, log in with: pulumi login '{result.backend_url}'")
    if result.secrets and result.secrets.kind == SecretsProviderKind.PASSPHRASE:
        print("  set PULUMI_CONFIG_PASSPHRASE in your environment")
    return 0


def env_to_config(args: argparse.Namespace) -> int:
    if args.dry_run:
        log.info("Dry run, no configuration will be changed")
    report = envsync.env_to_config(
        args.env_file,
        PulumiCommand(),
        stack=args.stack,
        camel_case=not args.no_camel_case,
        suffix=args.suffix,
        dry_run=args.dry_run,
    )
    if report.success and not args.dry_run:
        log.success(f"Set {len(report.applied)} configuration values")
    return 0 if report.success else 1


def env_to_ssm(args: argparse.Namespace) -> int:
    if args.dry_run:
        log.info("Dry run, no parameters will be changed")
    report = envsync.env_to_ssm(args.env_file, args.stack, AwsCommand(), dry_run=args.dry_run)
    return 0 if report.success else 1


def eks_cidrs(args: argparse.Namespace) -> int:
    region = eks.resolve_eks_region(args.region)
    additions: List[str] = []
    if not args.clear:
        if args.ips:
            additions = eks.parse_cidrs(args.ips)
        else:
            log.info("No CIDRs given, using the current public IP")
            additions = [eks.current_public_ip()]
            log.info(f"Current public IP: {additions[0]}")
    eks.update_public_access(
        AwsCommand(),
        args.cluster_name,
        region,
        additions,
        clean=args.clean,
        clear=args.clear,
        wait=not args.no_wait,
    )
    return 0


def ecs_images(args: argparse.Namespace) -> int:
    images = ecs.list_images(AwsCommand())
    if not images:
        print("No ECS services found.")
        return 0
    print(ecs.format_table(images))
    return 0


def _common_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("-v", "--verbose", action="store_true", help="show debug output")
    common.add_argument("-q", "--quiet", action="store_true", help="only show warnings and errors")
    return common


def _interactive_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(add_help=False)
    parser.add_argument("-y", "--yes", action="store_true", help="answer yes to all prompts")
    parser.add_argument(
        "--non-interactive",
        dest="interactive",
        action="store_false",
        help="never prompt; confirmations are declined unless --yes is given",
    )
    return parser


def _add_migration_arguments(parser: argparse.ArgumentParser, change_secrets_default: str) -> None:
    parser.add_argument("-s", "--stack", required=True, help="stack to migrate, optionally org/name")
    parser.add_argument("-r", "--region", help="AWS region (default: $AWS_REGION)")
    parser.add_argument("-w", "--workspace", default=".", help="directory of the Pulumi project")
    parser.add_argument("-p", "--passphrase", help="passphrase for the passphrase secrets provider")
    parser.add_argument("-g", "--organization", help="Pulumi Cloud organization")
    parser.add_argument("--access-token", help="Pulumi Cloud access token")
    parser.add_argument(
        "--change-secrets",
        choices=["none", "source", "target"],
        default=change_secrets_default,
        help="where to run `stack change-secrets-provider`",
    )
    parser.add_argument("--skip-verify", action="store_true", help="skip the preview after import")
    parser.add_argument(
        "-d", "--delete-source", action="store_true", help="remove the source stack after migrating"
    )


def _add_resource_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--dynamodb-table", help="DynamoDB table for state locking")
    parser.add_argument(
        "--create-bucket", action=argparse.BooleanOptionalAction, default=True,
        help="create the S3 bucket if it does not exist",
    )
    parser.add_argument(
        "--create-dynamodb", action=argparse.BooleanOptionalAction, default=False,
        help="create the DynamoDB table if it does not exist",
    )
    parser.add_argument(
        "--create-kms", action=argparse.BooleanOptionalAction, default=True,
        help="create the KMS key if it does not exist",
    )
    parser.add_argument(
        "--secrets-provider", default="awskms",
        help="awskms, passphrase, default or a provider URL",
    )
    parser.add_argument("-a", "--kms-alias", default=DEFAULT_KMS_ALIAS, help="KMS key alias")


def build_parser() -> argparse.ArgumentParser:
    common = _common_parser()
    interactive = _interactive_parser()

    parser = argparse.ArgumentParser(
        prog="infratools", description="Pulumi backend migration and AWS helper tools."
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser(
        "cloud-to-s3", parents=[common, interactive], help="migrate a stack from Pulumi Cloud to S3"
    )
    _add_migration_arguments(p, "none")
    p.add_argument("-b", "--bucket", required=True, help="S3 bucket for the state")
    _add_resource_arguments(p)
    p.add_argument(
        "--fix-permissions", action="store_true",
        help="grant the current AWS identity access in the bucket policy",
    )
    p.set_defaults(func=cloud_to_s3)

    p = sub.add_parser(
        "s3-to-cloud", parents=[common, interactive], help="migrate a stack from S3 to Pulumi Cloud"
    )
    _add_migration_arguments(p, "target")
    p.add_argument("-b", "--backend", required=True, help="source backend, s3://bucket?region=...")
    p.add_argument("--secrets-provider", default="service", help="secrets provider on Pulumi Cloud")
    p.add_argument("-k", "--kms-key", help="KMS key alias when --secrets-provider=awskms")
    p.set_defaults(func=s3_to_cloud)

    p = sub.add_parser(
        "init", parents=[common, interactive], help="create a Pulumi project on an S3 backend"
    )
    p.add_argument("-n", "--name", help="project name (default: directory name)")
    p.add_argument("-d", "--description", help="project description")
    p.add_argument(
        "-t", "--template", "--runtime", choices=TEMPLATES, default=DEFAULT_TEMPLATE,
        help="Pulumi template",
    )
    p.add_argument("-s", "--stack", default=DEFAULT_STACK, help="initial stack name")
    p.add_argument("-b", "--bucket", help="S3 bucket (default: derived from the project name)")
    p.add_argument("-r", "--region", help="AWS region (default: $AWS_REGION)")
    p.add_argument("-p", "--passphrase", help="passphrase for the passphrase secrets provider")
    p.add_argument("-w", "--work-dir", default=".", help="project directory")
    _add_resource_arguments(p)
    p.set_defaults(func=init)

    p = sub.add_parser(
        "env-to-config", parents=[common], help="set Pulumi config values from a .env file"
    )
    p.add_argument("--env-file", default=".env", help="path of the .env file")
    p.add_argument("--stack", help="stack to configure (default: the selected stack)")
    p.add_argument("--dry-run", action="store_true", help="only print what would be set")
    p.add_argument("--no-camel-case", action="store_true", help="keep the variable names")
    p.add_argument("--suffix", default="", help="suffix appended to every key")
    p.set_defaults(func=env_to_config)

    p = sub.add_parser(
        "env-to-ssm", parents=[common], help="put AWS Parameter Store values from a .env file"
    )
    p.add_argument("--env-file", default=".env", help="path of the .env file")
    p.add_argument("--stack", required=True, help="parameter prefix, for example myapp/dev")
    p.add_argument("--dry-run", action="store_true", help="only print what would be set")
    p.set_defaults(func=env_to_ssm)

    p = sub.add_parser(
        "eks-cidrs", parents=[common], help="update the public access CIDRs of an EKS cluster"
    )
    p.add_argument("-n", "--cluster-name", "--cluster", required=True, help="EKS cluster name")
    p.add_argument("-r", "--region", help="AWS region (default: $AWS_REGION or $AWS_DEFAULT_REGION)")
    p.add_argument(
        "-i", "--ips", "--ip",
        help="comma-separated CIDRs (default: the current public IP)",
    )
    p.add_argument("--clean", action="store_true", help="replace the existing CIDRs")
    p.add_argument("--clear", action="store_true", help="disable public endpoint access")
    p.add_argument("--no-wait", action="store_true", help="do not wait for the cluster to be ACTIVE")
    p.set_defaults(func=eks_cidrs)

    p = sub.add_parser("ecs-images", parents=[common], help="list the images used by ECS services")
    p.set_defaults(func=ecs_images)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    log.configure(verbose=args.verbose, quiet=args.quiet)
    try:
        return args.func(args)
    except (MissingArgument, InvalidArgument, InvalidVersionError) as exception:
        log.error(str(exception))
    except ExternalCommandFailure as exception:
        log.error(exception.result.output or str(exception))
    except requests.RequestException as exception:
        log.error(f"could not determine the public IP: {exception}")
    except KeyboardInterrupt:
        log.error("interrupted")
    return 1


if __name__ == "__main__":
    sys.exit(main())
