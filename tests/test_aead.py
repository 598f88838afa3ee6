import pytest

from conftest import KEY_ARN, KEY_ARN_2, KEY_PREFIX, KEY_URI, KEY_URI_2
from dg_awskms import EncryptionContextName, new_client, with_encryption_context_name, with_kms
from dg_awskms.aead import AwsKmsAead
from dg_awskms.exceptions import DecryptionError, EncryptionError
from dg_awskms.fakekms import FakeKms


class _RecordingKms:
    """Echoes requests back and remembers them"""

    def __init__(self, key_id: str) -> None:
        self.key_id = key_id
        self.requests = []

    def encrypt(self, **request):
        self.requests.append(("encrypt", request))
        return {"CiphertextBlob": b"ct", "KeyId": self.key_id}

    def decrypt(self, **request):
        self.requests.append(("decrypt", request))
        return {"Plaintext": b"pt", "KeyId": self.key_id}


class _FailingKms:
    def encrypt(self, **request):
        raise RuntimeError("service unavailable")

    def decrypt(self, **request):
        raise RuntimeError("service unavailable")


def test_encrypt_decrypt_round_trip(fake_kms: FakeKms) -> None:
    aead = new_client(KEY_PREFIX, with_kms(fake_kms)).get_aead(KEY_URI)
    plaintext = b"plaintext"
    associated_data = b"associatedData"

    ciphertext = aead.encrypt(plaintext, associated_data)
    assert aead.decrypt(ciphertext, associated_data) == plaintext

    with pytest.raises(DecryptionError):
        aead.decrypt(ciphertext, b"invalidAssociatedData")
    with pytest.raises(DecryptionError):
        aead.decrypt(b"invalidCiphertext", associated_data)


@pytest.mark.parametrize(("encrypt_ad", "decrypt_ad"), [(None, b""), (b"", None), (b"", b""), (None, None)])
def test_empty_and_missing_associated_data_are_interchangeable(fake_kms: FakeKms, encrypt_ad, decrypt_ad) -> None:
    aead = new_client(KEY_PREFIX, with_kms(fake_kms)).get_aead(KEY_URI)
    assert aead.decrypt(aead.encrypt(b"plaintext", encrypt_ad), decrypt_ad) == b"plaintext"


def test_missing_associated_data_does_not_match_non_empty(fake_kms: FakeKms) -> None:
    aead = new_client(KEY_PREFIX, with_kms(fake_kms)).get_aead(KEY_URI)
    with pytest.raises(DecryptionError):
        aead.decrypt(aead.encrypt(b"plaintext", b"ad"), None)
    with pytest.raises(DecryptionError):
        aead.decrypt(aead.encrypt(b"plaintext", None), b"ad")


def test_ciphertext_is_bound_to_its_key(fake_kms: FakeKms) -> None:
    client = new_client(KEY_PREFIX, with_kms(fake_kms))
    first, second = client.get_aead(KEY_URI), client.get_aead(KEY_URI_2)
    ciphertext = first.encrypt(b"plaintext", b"associated data")
    assert first.decrypt(ciphertext, b"associated data") == b"plaintext"
    with pytest.raises(DecryptionError):
        second.decrypt(ciphertext, b"associated data")


def test_decrypt_rejects_response_from_other_key() -> None:
    kms = _RecordingKms(key_id=KEY_ARN_2)
    aead = new_client(KEY_PREFIX, with_kms(kms)).get_aead(KEY_URI)
    with pytest.raises(DecryptionError, match="wrong key id"):
        aead.decrypt(b"ciphertext", b"ad")


def test_associated_data_is_sent_hex_encoded_under_context_name() -> None:
    kms = _RecordingKms(key_id=KEY_ARN)
    aead = new_client(KEY_PREFIX, with_kms(kms)).get_aead(KEY_URI)
    aead.encrypt(b"plaintext", b"\x00\xffad")
    aead.decrypt(b"ct", b"\x00\xffad")
    assert kms.requests == [
        ("encrypt", {"KeyId": KEY_ARN, "Plaintext": b"plaintext", "EncryptionContext": {"associatedData": "00ff6164"}}),
        ("decrypt", {"KeyId": KEY_ARN, "CiphertextBlob": b"ct", "EncryptionContext": {"associatedData": "00ff6164"}}),
    ]


def test_empty_associated_data_sends_no_context() -> None:
    kms = _RecordingKms(key_id=KEY_ARN)
    aead = new_client(KEY_PREFIX, with_kms(kms)).get_aead(KEY_URI)
    aead.encrypt(b"plaintext", b"")
    aead.decrypt(b"ct")
    assert all("EncryptionContext" not in request for _op, request in kms.requests)


def test_legacy_context_name_is_used_on_the_wire(fake_kms: FakeKms) -> None:
    client = new_client(
        KEY_PREFIX,
        with_kms(fake_kms),
        with_encryption_context_name(EncryptionContextName.LEGACY_ADDITIONAL_DATA),
    )
    associated_data = b"associatedData"
    ciphertext = client.get_aead(KEY_URI).encrypt(b"plaintext", associated_data)

    response = fake_kms.decrypt(
        KeyId=KEY_ARN,
        CiphertextBlob=ciphertext,
        EncryptionContext={"additionalData": associated_data.hex()},
    )
    assert response["Plaintext"] == b"plaintext"
    assert response["KeyId"] == KEY_ARN


def test_context_names_do_not_cross_decrypt(fake_kms: FakeKms) -> None:
    current = new_client(KEY_PREFIX, with_kms(fake_kms)).get_aead(KEY_URI)
    legacy = new_client(
        KEY_PREFIX, with_kms(fake_kms), with_encryption_context_name("additionalData")
    ).get_aead(KEY_URI)
    with pytest.raises(DecryptionError):
        legacy.decrypt(current.encrypt(b"plaintext", b"ad"), b"ad")


def test_each_call_is_one_round_trip(fake_kms: FakeKms) -> None:
    aead = new_client(KEY_PREFIX, with_kms(fake_kms)).get_aead(KEY_URI)
    ciphertext = aead.encrypt(b"plaintext", b"ad")
    aead.decrypt(ciphertext, b"ad")
    with pytest.raises(DecryptionError):
        aead.decrypt(ciphertext, b"other")
    assert fake_kms.calls == {"Encrypt": 1, "Decrypt": 2}


def test_remote_failures_are_wrapped() -> None:
    aead = AwsKmsAead(KEY_ARN, _FailingKms(), EncryptionContextName.ASSOCIATED_DATA)
    with pytest.raises(EncryptionError, match="service unavailable") as excinfo:
        aead.encrypt(b"plaintext", b"ad")
    assert isinstance(excinfo.value.__cause__, RuntimeError)
    with pytest.raises(DecryptionError, match="service unavailable"):
        aead.decrypt(b"ciphertext", b"ad")


def test_unknown_key_fails_encrypt() -> None:
    aead = new_client(KEY_PREFIX, with_kms(FakeKms([KEY_ARN]))).get_aead(KEY_URI_2)
    with pytest.raises(EncryptionError, match="NotFoundException"):
        aead.encrypt(b"plaintext", b"ad")
