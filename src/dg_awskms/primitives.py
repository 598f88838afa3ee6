"""Capability contracts shared with the surrounding cryptography toolkit."""
from __future__ import annotations

from abc import ABC, abstractmethod


class Aead(ABC):
    """Authenticated encryption with associated data.

    ``associated_data`` is authenticated but not encrypted; decrypting with
    different associated data than was used to encrypt must fail.
    """

    @abstractmethod
    def encrypt(self, plaintext: bytes, associated_data: bytes | None = None) -> bytes:
        raise NotImplementedError

    @abstractmethod
    def decrypt(self, ciphertext: bytes, associated_data: bytes | None = None) -> bytes:
        raise NotImplementedError


class KmsClient(ABC):
    """A key manager able to hand out :class:`Aead` primitives for key URIs"""

    @abstractmethod
    def supported(self, key_uri: str) -> bool:
        """Return True if this client can serve ``key_uri``"""
        raise NotImplementedError

    @abstractmethod
    def get_aead(self, key_uri: str) -> Aead:
        """Return an :class:`Aead` bound to the remote key at ``key_uri``"""
        raise NotImplementedError


__all__ = ["Aead", "KmsClient"]
