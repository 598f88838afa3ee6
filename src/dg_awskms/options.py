"""Set-once options used to build an :class:`~dg_awskms.client.AwsKmsClient`.

Every option is a named step applied, in caller order, to a mutable
:class:`ClientDescriptor`. A step raises :class:`ConfigurationError` when it
conflicts with something already set; the builder stops at the first failure.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Callable

from .credentials import resolve_credentials
from .exceptions import AwsKmsError, ConfigurationError
from .handles import ModernHandleStrategy, new_legacy_kms


class EncryptionContextName(str, Enum):
    """Name of the ``EncryptionContext`` entry carrying hex encoded associated data"""

    ASSOCIATED_DATA = "associatedData"
    # Hardcoded by older releases; kept to decrypt their ciphertexts.
    LEGACY_ADDITIONAL_DATA = "additionalData"


@dataclass(slots=True)
class ClientDescriptor:
    key_uri_prefix: str
    kms: Any = None
    encryption_context_name: EncryptionContextName | None = None
    v2: ModernHandleStrategy | None = None


class ClientOption:
    __slots__ = ("name", "_step")

    def __init__(self, name: str, step: Callable[[ClientDescriptor], None]) -> None:
        self.name = name
        self._step = step

    def apply(self, descriptor: ClientDescriptor) -> None:
        self._step(descriptor)

    def __repr__(self) -> str:
        return f"ClientOption({self.name})"


class V2ClientOption:
    __slots__ = ("name", "_step")

    def __init__(self, name: str, step: Callable[[ModernHandleStrategy], None]) -> None:
        self.name = name
        self._step = step

    def apply(self, strategy: ModernHandleStrategy) -> None:
        self._step(strategy)

    def __repr__(self) -> str:
        return f"V2ClientOption({self.name})"


def _ensure_no_handle(descriptor: ClientDescriptor, option_name: str) -> None:
    if descriptor.kms is not None:
        raise ConfigurationError(f"{option_name} option cannot be used, KMS client already set")
    if descriptor.v2 is not None:
        raise ConfigurationError(f"{option_name} option cannot be used, V2 KMS strategy already selected")


def with_credential_path(credential_path: Path | str) -> ClientOption:
    """Build the legacy KMS client from the credentials in ``credential_path``.

    The file may be the CSV offered by the IAM console or an INI-style shared
    credentials file.
    """

    def step(descriptor: ClientDescriptor) -> None:
        _ensure_no_handle(descriptor, "with_credential_path")
        credentials = resolve_credentials(credential_path)
        descriptor.kms = new_legacy_kms(descriptor.key_uri_prefix, credentials)

    return ClientOption("with_credential_path", step)


def with_kms(kms: Any) -> ClientOption:
    """Use an existing boto3 KMS client.

    Its configured region must match the region of the key URIs passed to the
    client, otherwise requests fail.
    """

    def step(descriptor: ClientDescriptor) -> None:
        if kms is None:
            raise ConfigurationError("with_kms requires a KMS client")
        _ensure_no_handle(descriptor, "with_kms")
        descriptor.kms = kms

    return ClientOption("with_kms", step)


def with_encryption_context_name(name: EncryptionContextName | str) -> ClientOption:
    def step(descriptor: ClientDescriptor) -> None:
        try:
            value = EncryptionContextName(name)
        except ValueError:
            raise ConfigurationError(f"invalid EncryptionContextName: {name!r}") from None
        if descriptor.encryption_context_name is not None:
            raise ConfigurationError("encryption context name already set")
        descriptor.encryption_context_name = value

    return ClientOption("with_encryption_context_name", step)


def _select_v2(descriptor: ClientDescriptor, option_name: str) -> ModernHandleStrategy:
    if descriptor.v2 is not None:
        raise ConfigurationError(f"{option_name} option cannot be used, V2 KMS strategy already selected")
    if descriptor.kms is not None:
        raise ConfigurationError(f"{option_name} option cannot be used, legacy KMS client already set")
    descriptor.v2 = ModernHandleStrategy(descriptor.key_uri_prefix)
    return descriptor.v2


def use_v2() -> ClientOption:
    """Select the v2 strategy with default settings"""

    def step(descriptor: ClientDescriptor) -> None:
        _select_v2(descriptor, "use_v2")

    return ClientOption("use_v2", step)


def with_v2_kms_options(*options: V2ClientOption) -> ClientOption:
    """Select the v2 strategy and configure it with ``options``"""

    def step(descriptor: ClientDescriptor) -> None:
        strategy = _select_v2(descriptor, "with_v2_kms_options")
        for option in options:
            try:
                option.apply(strategy)
            except AwsKmsError as exc:
                raise ConfigurationError(f"failed setting V2 option {option.name}: {exc}") from exc

    return ClientOption("with_v2_kms_options", step)


def _ensure_no_v2_handle(strategy: ModernHandleStrategy, option_name: str) -> None:
    if strategy.kms is not None:
        raise ConfigurationError(f"{option_name} cannot be combined with an explicit V2 KMS client")


def with_v2_kms(kms: Any) -> V2ClientOption:
    def step(strategy: ModernHandleStrategy) -> None:
        if kms is None:
            raise ConfigurationError("with_v2_kms requires a KMS client")
        if strategy.kms is not None:
            raise ConfigurationError("V2 KMS client already set")
        if any(value is not None for value in (strategy.load_options, strategy.kms_options, strategy.credentials)):
            raise ConfigurationError("an explicit V2 KMS client cannot be combined with load, KMS or credential options")
        strategy.set_kms(kms)

    return V2ClientOption("with_v2_kms", step)


def with_api_timeout(seconds: float) -> V2ClientOption:
    """Bound config loading and every KMS request; ``0`` keeps the default"""

    def step(strategy: ModernHandleStrategy) -> None:
        if seconds < 0:
            raise ConfigurationError(f"timeout must not be negative, got {seconds}")
        if strategy.timeout is not None:
            raise ConfigurationError("timeout already set")
        strategy.timeout = float(seconds)

    return V2ClientOption("with_api_timeout", step)


def with_load_options(**kwargs: Any) -> V2ClientOption:
    """Keyword arguments for ``boto3.session.Session`` (``profile_name``, ``region_name``, ...)"""

    def step(strategy: ModernHandleStrategy) -> None:
        _ensure_no_v2_handle(strategy, "with_load_options")
        if strategy.load_options is not None:
            raise ConfigurationError("load options already set")
        strategy.load_options = dict(kwargs)

    return V2ClientOption("with_load_options", step)


def with_kms_options(**kwargs: Any) -> V2ClientOption:
    """Keyword arguments for ``Session.client("kms")`` (``endpoint_url``, ``config``, ...)"""

    def step(strategy: ModernHandleStrategy) -> None:
        _ensure_no_v2_handle(strategy, "with_kms_options")
        if strategy.kms_options is not None:
            raise ConfigurationError("KMS options already set")
        strategy.kms_options = dict(kwargs)

    return V2ClientOption("with_kms_options", step)


def with_shared_credentials_file(path: Path | str) -> V2ClientOption:
    """Read credentials from a CSV or INI file now, for use when the config is loaded"""

    def step(strategy: ModernHandleStrategy) -> None:
        if not path:
            raise ConfigurationError("credential path must not be empty")
        _ensure_no_v2_handle(strategy, "with_shared_credentials_file")
        if strategy.credentials is not None:
            raise ConfigurationError("credential file already set")
        strategy.credentials = resolve_credentials(path)

    return V2ClientOption("with_shared_credentials_file", step)


__all__ = [
    "ClientDescriptor",
    "ClientOption",
    "EncryptionContextName",
    "V2ClientOption",
    "use_v2",
    "with_api_timeout",
    "with_credential_path",
    "with_encryption_context_name",
    "with_kms",
    "with_kms_options",
    "with_load_options",
    "with_shared_credentials_file",
    "with_v2_kms",
    "with_v2_kms_options",
]
