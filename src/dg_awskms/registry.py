"""Process-wide registry of KMS clients, looked up by key URI."""
from __future__ import annotations

import threading
from typing import List

from .exceptions import UnsupportedKeyURI
from .primitives import KmsClient

_CLIENTS: List[KmsClient] = []
_LOCK = threading.Lock()


def register_kms_client(client: KmsClient) -> None:
    if not isinstance(client, KmsClient):
        raise TypeError(f"expected a KmsClient, got {type(client).__name__}")
    with _LOCK:
        _CLIENTS.append(client)


def get_kms_client(key_uri: str) -> KmsClient:
    """Return the first registered client supporting ``key_uri``"""
    with _LOCK:
        clients = list(_CLIENTS)
    for client in clients:
        if client.supported(key_uri):
            return client
    raise UnsupportedKeyURI(f"no KMS client supports key URI {key_uri}")


def clear_kms_clients() -> None:
    with _LOCK:
        _CLIENTS.clear()


__all__ = ["clear_kms_clients", "get_kms_client", "register_kms_client"]
