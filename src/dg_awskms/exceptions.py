"""Central exception hierarchy"""
from __future__ import annotations


class AwsKmsError(Exception):
    """Base exception for all failures"""


class ConfigurationError(AwsKmsError):
    """Raised when a client cannot be built from the supplied options"""

    def __init__(self, message: str, *, option: str | None = None) -> None:
        super().__init__(message)
        self.option = option


class CredentialError(AwsKmsError):
    """Raised when credential material cannot be resolved"""


class CredentialPathError(CredentialError):
    """Raised when no credential path was supplied"""


class CredentialFileError(CredentialError):
    """Raised when the credential file cannot be opened"""


class MalformedCredentialCSV(CredentialError):
    """Raised when a CSV credential file is missing rows or columns"""


class NotCredentialCSV(CredentialError):
    """Raised when the file does not look like a CSV credential file at all"""


class KeyURIError(AwsKmsError):
    """Raised for key URIs this client cannot serve"""


class UnsupportedKeyURI(KeyURIError):
    """Raised when a key URI does not start with the client prefix"""


class RegionError(KeyURIError):
    """Raised when no region can be extracted from a key URI"""


class KmsHandleError(AwsKmsError):
    """Raised when the KMS client handle cannot be constructed"""


class KmsOperationError(AwsKmsError):
    """Raised when a remote KMS round trip fails"""


class EncryptionError(KmsOperationError):
    """Raised when KMS refuses or fails to encrypt"""


class DecryptionError(KmsOperationError):
    """Raised when KMS refuses or fails to decrypt"""


__all__ = [
    "AwsKmsError",
    "ConfigurationError",
    "CredentialError",
    "CredentialPathError",
    "CredentialFileError",
    "MalformedCredentialCSV",
    "NotCredentialCSV",
    "KeyURIError",
    "UnsupportedKeyURI",
    "RegionError",
    "KmsHandleError",
    "KmsOperationError",
    "EncryptionError",
    "DecryptionError",
]
