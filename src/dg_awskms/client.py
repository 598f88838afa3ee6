"""AWS KMS key client."""
from __future__ import annotations

import warnings
from pathlib import Path
from typing import Any

import structlog

from .aead import AwsKmsAead
from .exceptions import AwsKmsError, ConfigurationError, UnsupportedKeyURI
from .handles import HandleStrategy, LegacyHandleStrategy
from .options import (
    ClientDescriptor,
    ClientOption,
    EncryptionContextName,
    with_credential_path,
    with_encryption_context_name,
    with_kms,
)
from .primitives import KmsClient
from .uri import AWS_PREFIX, has_aws_prefix, key_arn

log = structlog.get_logger(__name__)


class AwsKmsClient(KmsClient):
    """Hands out :class:`AwsKmsAead` primitives for key URIs under one prefix.

    Instances are built by :func:`new_client` and are immutable afterwards,
    apart from the KMS handle which is constructed on first use and then
    shared by every primitive.
    """

    def __init__(
        self,
        key_uri_prefix: str,
        strategy: HandleStrategy,
        encryption_context_name: EncryptionContextName,
    ) -> None:
        self._key_uri_prefix = key_uri_prefix
        self._strategy = strategy
        self._encryption_context_name = encryption_context_name

    @property
    def key_uri_prefix(self) -> str:
        return self._key_uri_prefix

    @property
    def encryption_context_name(self) -> EncryptionContextName:
        return self._encryption_context_name

    @property
    def generation(self) -> str:
        return self._strategy.generation

    def supported(self, key_uri: str) -> bool:
        return key_uri.startswith(self._key_uri_prefix)

    def get_aead(self, key_uri: str) -> AwsKmsAead:
        """Return an AEAD which encrypts and decrypts remotely with ``key_uri``.

        ``key_uri`` must start with this client's prefix and have the form
        ``aws-kms://arn:<partition>:kms:<region>:<path>``.
        """
        if not self.supported(key_uri):
            raise UnsupportedKeyURI(
                f"key_uri must start with prefix {self._key_uri_prefix}, but got {key_uri}"
            )
        return self._strategy.build_aead(key_arn(key_uri), self._encryption_context_name)

    def __repr__(self) -> str:
        return (
            f"AwsKmsClient(prefix={self._key_uri_prefix!r}, generation={self.generation!r}, "
            f"context_name={self._encryption_context_name.value!r})"
        )


def new_client(uri_prefix: str, *options: ClientOption) -> AwsKmsClient:
    """Build a client serving key URIs that start with ``uri_prefix``.

    Without options the client uses the legacy strategy with default AWS
    credential discovery, and binds associated data under
    :attr:`EncryptionContextName.ASSOCIATED_DATA`.
    """
    if not has_aws_prefix(uri_prefix):
        raise ConfigurationError(f"uri_prefix must start with {AWS_PREFIX!r}, but got {uri_prefix!r}")

    descriptor = ClientDescriptor(key_uri_prefix=uri_prefix)
    for option in options:
        if not isinstance(option, ClientOption):
            raise ConfigurationError(f"expected a ClientOption, got {type(option).__name__}")
        try:
            option.apply(descriptor)
        except AwsKmsError as exc:
            raise ConfigurationError(f"failed setting option {option.name}: {exc}", option=option.name) from exc

    if descriptor.encryption_context_name is None:
        descriptor.encryption_context_name = EncryptionContextName.ASSOCIATED_DATA

    strategy: HandleStrategy
    if descriptor.v2 is not None:
        strategy = descriptor.v2
    else:
        strategy = LegacyHandleStrategy(uri_prefix, descriptor.kms)

    client = AwsKmsClient(uri_prefix, strategy, descriptor.encryption_context_name)
    log.info(
        "kms.client.built",
        uri_prefix=uri_prefix,
        generation=strategy.generation,
        context_name=descriptor.encryption_context_name.value,
    )
    return client


def _deprecated(name: str, replacement: str) -> None:
    warnings.warn(f"{name} is deprecated, use {replacement} instead", DeprecationWarning, stacklevel=3)


def new_legacy_client(uri_prefix: str) -> AwsKmsClient:
    """Client with default credentials and the ``additionalData`` context name"""
    _deprecated("new_legacy_client", "new_client(uri_prefix)")
    return new_client(uri_prefix, with_encryption_context_name(EncryptionContextName.LEGACY_ADDITIONAL_DATA))


def new_client_with_credentials(uri_prefix: str, credential_path: Path | str) -> AwsKmsClient:
    _deprecated("new_client_with_credentials", "new_client(uri_prefix, with_credential_path(path))")
    return new_client(
        uri_prefix,
        with_credential_path(credential_path),
        with_encryption_context_name(EncryptionContextName.LEGACY_ADDITIONAL_DATA),
    )


def new_client_with_kms(uri_prefix: str, kms: Any) -> AwsKmsClient:
    _deprecated("new_client_with_kms", "new_client(uri_prefix, with_kms(kms))")
    return new_client(
        uri_prefix,
        with_kms(kms),
        with_encryption_context_name(EncryptionContextName.LEGACY_ADDITIONAL_DATA),
    )


__all__ = [
    "AwsKmsClient",
    "new_client",
    "new_client_with_credentials",
    "new_client_with_kms",
    "new_legacy_client",
]
