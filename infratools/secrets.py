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

from dataclasses import dataclass, replace
from enum import Enum
from typing import Dict, Optional

from .errors import InvalidArgument, MissingArgument

DEFAULT_KMS_ALIAS = "alias/pulumi-secrets"

_ALIAS_PREFIX = "alias/"


class SecretsProviderKind(str, Enum):
    SERVICE = "service"
    PASSPHRASE = "passphrase"
    AWSKMS = "awskms"
    DEFAULT = "default"
    CUSTOM = "custom"


def normalize_kms_alias(alias: str) -> str:
    """
    Returns *alias* with the ``alias/`` prefix the KMS API expects.
    """
    if alias.startswith(_ALIAS_PREFIX):
        return alias
    return _ALIAS_PREFIX + alias


def kms_provider_url(alias: str, region: str) -> str:
    return f"awskms://{normalize_kms_alias(alias)}?region={region}"


@dataclass(frozen=True)
class SecretsConfig:
    """
    The secrets provider of the stack on the target backend.

    The passphrase never leaves this object except through `env`, which is passed
    to each Pulumi command as additional environment.
    """

    kind: SecretsProviderKind = SecretsProviderKind.DEFAULT
    passphrase: Optional[str] = None
    kms_alias: str = DEFAULT_KMS_ALIAS
    region: Optional[str] = None
    custom_url: Optional[str] = None

    @staticmethod
    def from_flags(
        provider: Optional[str],
        default: SecretsProviderKind,
        passphrase: Optional[str] = None,
        kms_alias: Optional[str] = None,
        region: Optional[str] = None,
    ) -> "SecretsConfig":
        """
        Builds a SecretsConfig from command-line flags.

        :param provider: ``service``, ``passphrase``, ``awskms``, ``default`` or a provider URL.
        :param default: The kind used when *provider* is not given.
        """
        custom_url = None
        if not provider:
            kind = default
        elif "://" in provider:
            kind = SecretsProviderKind.CUSTOM
            custom_url = provider
        else:
            try:
                kind = SecretsProviderKind(provider.lower())
            except ValueError as exception:
                raise InvalidArgument(
                    f"unknown secrets provider {provider!r}"
                ) from exception

        if kind == SecretsProviderKind.PASSPHRASE and not passphrase:
            raise MissingArgument("the passphrase secrets provider requires a passphrase")

        return SecretsConfig(
            kind=kind,
            passphrase=passphrase,
            kms_alias=normalize_kms_alias(kms_alias or DEFAULT_KMS_ALIAS),
            region=region,
            custom_url=custom_url,
        )

    def validate_for(self, target_is_cloud: bool) -> None:
        if self.kind == SecretsProviderKind.SERVICE and not target_is_cloud:
            raise InvalidArgument(
                "the service secrets provider is only available on Pulumi Cloud"
            )
        if self.kind == SecretsProviderKind.AWSKMS and not self.region:
            raise MissingArgument("the awskms secrets provider requires a region")

    def provider_url(self) -> Optional[str]:
        """
        The value of ``--secrets-provider`` for ``stack init``, or None for the backend's default.
        """
        if self.kind == SecretsProviderKind.PASSPHRASE:
            return "passphrase"
        if self.kind == SecretsProviderKind.AWSKMS:
            assert self.region is not None
            return kms_provider_url(self.kms_alias, self.region)
        if self.kind == SecretsProviderKind.CUSTOM:
            return self.custom_url
        return None

    def change_provider_arg(self) -> str:
        """
        The positional argument of ``stack change-secrets-provider``.
        """
        return self.provider_url() or "default"

    def env(self) -> Dict[str, str]:
        if self.passphrase:
            return {"PULUMI_CONFIG_PASSPHRASE": self.passphrase}
        return {}

    def fallback(self) -> "SecretsConfig":
        """
        The provider to use when the KMS key could not be provisioned: the passphrase
        provider when a passphrase is known, the backend default otherwise.
        """
        if self.passphrase:
            return replace(self, kind=SecretsProviderKind.PASSPHRASE)
        return replace(self, kind=SecretsProviderKind.DEFAULT)

    def describe(self) -> str:
        if self.kind == SecretsProviderKind.AWSKMS:
            return f"awskms ({self.kms_alias})"
        if self.kind == SecretsProviderKind.CUSTOM:
            return f"custom ({self.custom_url})"
        return self.kind.value
