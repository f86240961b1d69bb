"""Tests for AES-256-GCM field encryption"""

import secrets

import pytest

from famsaveapi import field_cipher
from famsaveapi.config import SETTINGS
from famsaveapi.errors import EncryptionError, TamperedOrCorrupt
from famsaveapi.utils.field_cipher import FieldCipher, FieldType

PHONE = "+254712345678"


@pytest.fixture
def cipher():
    return FieldCipher(secrets.token_bytes(32))


class TestFieldCipher:
    @pytest.mark.parametrize(
        "plaintext,field_type",
        [
            (PHONE, FieldType.PHONE),
            ("Amina Wanjiru", FieldType.NAME),
            ("parent@test.com", FieldType.EMAIL),
            ("12 Ngong Road, Nairobi", FieldType.ADDRESS),
            ("Zoë Ærøskøbing", "NAME"),
        ],
    )
    def test_round_trip(self, cipher, plaintext, field_type):
        envelope = cipher.encrypt_field(plaintext, field_type)
        assert cipher.decrypt_field(envelope, field_type) == plaintext

    def test_envelope_shape(self, cipher):
        envelope = cipher.encrypt_field(PHONE, FieldType.PHONE)
        nonce, tag, ciphertext = envelope.split(":")
        assert len(nonce) == 24
        assert len(tag) == 32
        assert len(ciphertext) == 2 * len(PHONE.encode("utf-8"))
        assert PHONE not in envelope

    def test_fresh_nonce_per_call(self, cipher):
        first = cipher.encrypt_field(PHONE, FieldType.PHONE)
        second = cipher.encrypt_field(PHONE, FieldType.PHONE)
        assert first != second
        assert first.split(":")[0] != second.split(":")[0]

    @pytest.mark.parametrize("value", [None, ""])
    def test_empty_values_pass_through(self, cipher, value):
        assert cipher.encrypt_field(value, FieldType.PHONE) is None
        assert cipher.decrypt_field(value, FieldType.PHONE) is None

    def test_every_character_is_tamper_evident(self, cipher):
        envelope = cipher.encrypt_field(PHONE, FieldType.PHONE)
        for index, char in enumerate(envelope):
            if char == ":":
                continue
            replacement = "0" if char != "0" else "1"
            tampered = envelope[:index] + replacement + envelope[index + 1 :]
            with pytest.raises(TamperedOrCorrupt):
                cipher.decrypt_field(tampered, FieldType.PHONE)

    def test_wrong_key_fails_like_tampering(self, cipher):
        envelope = cipher.encrypt_field(PHONE, FieldType.PHONE)
        other = FieldCipher(secrets.token_bytes(32))
        with pytest.raises(TamperedOrCorrupt):
            other.decrypt_field(envelope, FieldType.PHONE)

    @pytest.mark.parametrize(
        "envelope",
        [
            "garbage",
            "aa:bb:cc",
            "a" * 24 + ":" + "b" * 32,
            "A" * 24 + ":" + "B" * 32 + ":" + "CC",
            "a" * 24 + ":" + "b" * 32 + ":" + "ccc",
            "a" * 24 + ":" + "b" * 32 + ":" + "cc\n",
        ],
    )
    def test_malformed_envelopes(self, cipher, envelope):
        with pytest.raises(TamperedOrCorrupt):
            cipher.decrypt_field(envelope, FieldType.PHONE)

    def test_truncated_ciphertext(self, cipher):
        envelope = cipher.encrypt_field(PHONE, FieldType.PHONE)
        with pytest.raises(TamperedOrCorrupt):
            cipher.decrypt_field(envelope[:-2], FieldType.PHONE)

    def test_unknown_field_type(self, cipher):
        with pytest.raises(ValueError):
            cipher.encrypt_field(PHONE, "SSN")
        with pytest.raises(ValueError):
            cipher.decrypt_field("aa", "SSN")

    @pytest.mark.parametrize("value", ["call me maybe", "12", "+", "0712@345678"])
    def test_phone_shape_enforced(self, cipher, value):
        with pytest.raises(EncryptionError):
            cipher.encrypt_field(value, FieldType.PHONE)

    def test_email_shape_enforced(self, cipher):
        with pytest.raises(EncryptionError):
            cipher.encrypt_field("no-at-sign", FieldType.EMAIL)

    @pytest.mark.parametrize("key", [b"", b"short", secrets.token_bytes(16), "k" * 32])
    def test_key_must_be_32_bytes(self, key):
        with pytest.raises(ValueError):
            FieldCipher(key)

    def test_repr_hides_key(self):
        key = secrets.token_bytes(32)
        assert key.hex() not in repr(FieldCipher(key))

    def test_process_cipher_uses_configured_key(self, app):
        envelope = field_cipher.encrypt_field(PHONE, FieldType.PHONE)
        configured = FieldCipher.from_hex(SETTINGS["FIELD_ENCRYPTION_KEY"])
        assert configured.decrypt_field(envelope, FieldType.PHONE) == PHONE
