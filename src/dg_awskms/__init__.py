"""AWS KMS backed AEAD primitives."""
from .aead import AwsKmsAead, AwsKmsV2Aead
from .client import (
    AwsKmsClient,
    new_client,
    new_client_with_credentials,
    new_client_with_kms,
    new_legacy_client,
)
from .credentials import AccessKeyCredentials, resolve_credentials
from .handles import DEFAULT_TIMEOUT
from .options import (
    ClientOption,
    EncryptionContextName,
    V2ClientOption,
    use_v2,
    with_api_timeout,
    with_credential_path,
    with_encryption_context_name,
    with_kms,
    with_kms_options,
    with_load_options,
    with_shared_credentials_file,
    with_v2_kms,
    with_v2_kms_options,
)
from .primitives import Aead, KmsClient
from .registry import clear_kms_clients, get_kms_client, register_kms_client
from .uri import AWS_PREFIX, get_region

__version__ = "0.1.0"

__all__ = [
    "AWS_PREFIX",
    "AccessKeyCredentials",
    "Aead",
    "AwsKmsAead",
    "AwsKmsClient",
    "AwsKmsV2Aead",
    "ClientOption",
    "DEFAULT_TIMEOUT",
    "EncryptionContextName",
    "KmsClient",
    "V2ClientOption",
    "clear_kms_clients",
    "get_kms_client",
    "get_region",
    "new_client",
    "new_client_with_credentials",
    "new_client_with_kms",
    "new_legacy_client",
    "register_kms_client",
    "resolve_credentials",
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
