"""AEAD primitives backed by a remote AWS KMS key."""
from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any, Mapping

import structlog

from .exceptions import DecryptionError, EncryptionError
from .primitives import Aead

if TYPE_CHECKING:  # pragma: no cover - typing aid
    from .handles import DeadlineRunner
    from .options import EncryptionContextName

log = structlog.get_logger(__name__)


class AwsKmsAead(Aead):
    """Forwards encrypt/decrypt to KMS for a single key ARN.

    Associated data never enters the ciphertext. It is hex encoded into the
    request's ``EncryptionContext`` under the configured context name, which
    KMS authenticates on both calls. Empty and missing associated data both
    send no context at all, so they decrypt interchangeably.
    """

    generation = "v1"

    def __init__(self, key_arn: str, kms: Any, encryption_context_name: EncryptionContextName) -> None:
        self._key_arn = key_arn
        self._kms = kms
        self._context_name = encryption_context_name

    @property
    def key_arn(self) -> str:
        return self._key_arn

    def encrypt(self, plaintext: bytes, associated_data: bytes | None = None) -> bytes:
        request: dict[str, Any] = {"KeyId": self._key_arn, "Plaintext": plaintext}
        context = self._encryption_context(associated_data)
        if context:
            request["EncryptionContext"] = context

        started = time.perf_counter()
        try:
            response = self._call("encrypt", request)
        except Exception as exc:
            log.warning("kms.encrypt.failed", key_arn=self._key_arn, error=type(exc).__name__)
            raise EncryptionError(f"encryption failed: {exc}") from exc
        log.debug("kms.encrypt", key_arn=self._key_arn, generation=self.generation, duration_ms=_elapsed_ms(started))
        return response["CiphertextBlob"]

    def decrypt(self, ciphertext: bytes, associated_data: bytes | None = None) -> bytes:
        request: dict[str, Any] = {"KeyId": self._key_arn, "CiphertextBlob": ciphertext}
        context = self._encryption_context(associated_data)
        if context:
            request["EncryptionContext"] = context

        started = time.perf_counter()
        try:
            response = self._call("decrypt", request)
        except Exception as exc:
            log.warning("kms.decrypt.failed", key_arn=self._key_arn, error=type(exc).__name__)
            raise DecryptionError(f"decryption failed: {exc}") from exc

        if response.get("KeyId") != self._key_arn:
            log.warning("kms.decrypt.failed", key_arn=self._key_arn, error="KeyIdMismatch")
            raise DecryptionError("decryption failed: wrong key id")
        log.debug("kms.decrypt", key_arn=self._key_arn, generation=self.generation, duration_ms=_elapsed_ms(started))
        return response["Plaintext"]

    def _encryption_context(self, associated_data: bytes | None) -> Mapping[str, str]:
        if not associated_data:
            return {}
        return {self._context_name.value: associated_data.hex()}

    def _call(self, operation: str, request: Mapping[str, Any]) -> Mapping[str, Any]:
        return getattr(self._kms, operation)(**request)


class AwsKmsV2Aead(AwsKmsAead):
    """Same contract as :class:`AwsKmsAead`, with every round trip bounded by ``timeout``"""

    generation = "v2"

    def __init__(
        self,
        key_arn: str,
        kms: Any,
        encryption_context_name: EncryptionContextName,
        *,
        timeout: float,
        runner: DeadlineRunner,
    ) -> None:
        super().__init__(key_arn, kms, encryption_context_name)
        self._timeout = timeout
        self._runner = runner

    @property
    def timeout(self) -> float:
        return self._timeout

    def _call(self, operation: str, request: Mapping[str, Any]) -> Mapping[str, Any]:
        return self._runner.run(getattr(self._kms, operation), self._timeout, **request)


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


__all__ = ["AwsKmsAead", "AwsKmsV2Aead"]
