"""In-memory stand-in for the KMS ``encrypt``/``decrypt`` API.

Ciphertexts are AES-256-GCM under a random per-key secret and carry the key
ARN, so decrypting works without ``KeyId`` just like the real service. The
encryption context is authenticated as associated data. Failures are raised
as botocore ``ClientError``s with the error codes KMS uses.
"""
from __future__ import annotations

import json
import os
import struct
import threading
from collections import Counter
from typing import Any, Iterable, Mapping

from botocore.exceptions import ClientError
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

NONCE_SIZE = 12
_ARN_LENGTH = struct.Struct(">H")


def _client_error(code: str, message: str, operation: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": message}}, operation)


def _context_aad(key_arn: str, context: Mapping[str, str] | None) -> bytes:
    canonical = json.dumps(dict(context or {}), sort_keys=True, separators=(",", ":"))
    return key_arn.encode("utf-8") + b"\x00" + canonical.encode("utf-8")


class FakeKms:
    """Serves the key ARNs it was created with; every other ARN is unknown"""

    def __init__(self, key_arns: Iterable[str]) -> None:
        self._keys = {arn: AESGCM(AESGCM.generate_key(bit_length=256)) for arn in key_arns}
        if not self._keys:
            raise ValueError("FakeKms needs at least one key ARN")
        self._lock = threading.Lock()
        self.calls: Counter[str] = Counter()

    def encrypt(
        self,
        *,
        KeyId: str,
        Plaintext: bytes,
        EncryptionContext: Mapping[str, str] | None = None,
        **_: Any,
    ) -> dict[str, Any]:
        self._count("Encrypt")
        cipher = self._keys.get(KeyId)
        if cipher is None:
            raise _client_error("NotFoundException", f"Key '{KeyId}' does not exist", "Encrypt")
        nonce = os.urandom(NONCE_SIZE)
        arn = KeyId.encode("utf-8")
        sealed = cipher.encrypt(nonce, Plaintext, _context_aad(KeyId, EncryptionContext))
        return {
            "CiphertextBlob": _ARN_LENGTH.pack(len(arn)) + arn + nonce + sealed,
            "KeyId": KeyId,
            "EncryptionAlgorithm": "SYMMETRIC_DEFAULT",
        }

    def decrypt(
        self,
        *,
        CiphertextBlob: bytes,
        KeyId: str | None = None,
        EncryptionContext: Mapping[str, str] | None = None,
        **_: Any,
    ) -> dict[str, Any]:
        self._count("Decrypt")
        key_arn, nonce, sealed = self._split(CiphertextBlob)
        if KeyId is not None and KeyId != key_arn:
            raise _client_error("IncorrectKeyException", "The key ID in the request does not identify the key used to encrypt", "Decrypt")
        cipher = self._keys.get(key_arn)
        if cipher is None:
            raise _client_error("InvalidCiphertextException", "Unknown key in ciphertext", "Decrypt")
        try:
            plaintext = cipher.decrypt(nonce, sealed, _context_aad(key_arn, EncryptionContext))
        except InvalidTag:
            raise _client_error("InvalidCiphertextException", "Ciphertext or encryption context is invalid", "Decrypt") from None
        return {"Plaintext": plaintext, "KeyId": key_arn, "EncryptionAlgorithm": "SYMMETRIC_DEFAULT"}

    def _split(self, blob: bytes) -> tuple[str, bytes, bytes]:
        if len(blob) < _ARN_LENGTH.size:
            raise _client_error("InvalidCiphertextException", "Ciphertext is truncated", "Decrypt")
        (arn_length,) = _ARN_LENGTH.unpack_from(blob)
        start = _ARN_LENGTH.size
        nonce_start = start + arn_length
        sealed_start = nonce_start + NONCE_SIZE
        if len(blob) <= sealed_start:
            raise _client_error("InvalidCiphertextException", "Ciphertext is truncated", "Decrypt")
        try:
            key_arn = blob[start:nonce_start].decode("utf-8")
        except UnicodeDecodeError:
            raise _client_error("InvalidCiphertextException", "Ciphertext is malformed", "Decrypt") from None
        return key_arn, blob[nonce_start:sealed_start], blob[sealed_start:]

    def _count(self, operation: str) -> None:
        with self._lock:
            self.calls[operation] += 1


__all__ = ["FakeKms"]
