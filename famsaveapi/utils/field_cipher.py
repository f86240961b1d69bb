"""
Field cipher for PII columns
============================

AES-256-GCM with a fresh 96-bit nonce per call and a 128-bit tag.

Envelope wire format (one string, stored in place of the plaintext)::

    hex(nonce):hex(tag):hex(ciphertext)

A failed tag check never yields plaintext; it raises ``TamperedOrCorrupt``.
A wrong key and a modified envelope are indistinguishable at this layer.
"""

from enum import Enum
import logging
import re
import secrets
from typing import Final, Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from famsaveapi.errors import EncryptionError, TamperedOrCorrupt

logger = logging.getLogger(__name__)

KEY_SIZE: Final[int] = 32
NONCE_SIZE: Final[int] = 12
TAG_SIZE: Final[int] = 16
ENVELOPE_SEPARATOR: Final[str] = ":"

ENVELOPE_PATTERN = re.compile(
    rf"([0-9a-f]{{{NONCE_SIZE * 2}}})"
    rf":([0-9a-f]{{{TAG_SIZE * 2}}})"
    r":((?:[0-9a-f]{2})+)"
)
PHONE_PATTERN = re.compile(r"^\+?[0-9][0-9 \-]{5,19}$")


class FieldType(str, Enum):
    """Kinds of PII the cipher is used for."""

    PHONE = "PHONE"
    NAME = "NAME"
    EMAIL = "EMAIL"
    ADDRESS = "ADDRESS"


def _check_shape(plaintext: str, field_type: FieldType) -> None:
    if field_type is FieldType.PHONE and not PHONE_PATTERN.match(plaintext):
        raise EncryptionError(f"Value is not a valid {field_type.value}")
    if field_type is FieldType.EMAIL and plaintext.count("@") != 1:
        raise EncryptionError(f"Value is not a valid {field_type.value}")


class FieldCipher:
    """Authenticated encryption for individual string fields.

    Usage:
        cipher = FieldCipher(bytes.fromhex(key_hex))
        envelope = cipher.encrypt_field("+254712345678", FieldType.PHONE)
        phone = cipher.decrypt_field(envelope, FieldType.PHONE)

    The instance holds only the key; it is safe to share across threads.
    """

    __slots__ = ("_aesgcm",)

    def __init__(self, key: bytes) -> None:
        if not isinstance(key, bytes) or len(key) != KEY_SIZE:
            raise ValueError(f"Key must be exactly {KEY_SIZE} bytes")
        self._aesgcm = AESGCM(key)

    def __repr__(self) -> str:
        return "FieldCipher(algorithm='AES-256-GCM')"

    @classmethod
    def from_hex(cls, key_hex: str) -> "FieldCipher":
        return cls(bytes.fromhex(key_hex))

    def encrypt_field(self, plaintext, field_type) -> Optional[str]:
        """Encrypt one field value into an envelope.

        Args:
            plaintext: Value to protect; ``None`` or ``""`` returns ``None``
            field_type: ``FieldType`` member or its name

        Returns:
            Envelope string or ``None``

        Raises:
            ValueError: If ``field_type`` is not a known field type
            EncryptionError: If the value does not fit the field type or the
                cipher fails
        """
        field_type = FieldType(field_type)
        if plaintext is None:
            return None
        plaintext = str(plaintext)
        if not plaintext:
            return None
        _check_shape(plaintext, field_type)

        nonce = secrets.token_bytes(NONCE_SIZE)
        try:
            sealed = self._aesgcm.encrypt(nonce, plaintext.encode("utf-8"), None)
        except Exception as e:
            logger.error(
                f"[ENCRYPTION]: Encryption failed for {field_type.value}: "
                f"{type(e).__name__}"
            )
            raise EncryptionError(
                f"Failed to encrypt {field_type.value}"
            ) from e

        # AESGCM appends the tag to the ciphertext
        ciphertext, tag = sealed[:-TAG_SIZE], sealed[-TAG_SIZE:]
        return ENVELOPE_SEPARATOR.join((nonce.hex(), tag.hex(), ciphertext.hex()))

    def decrypt_field(self, envelope, field_type) -> Optional[str]:
        """Open an envelope produced by ``encrypt_field``.

        Returns:
            The plaintext, or ``None`` for a ``None``/empty envelope

        Raises:
            ValueError: If ``field_type`` is not a known field type
            TamperedOrCorrupt: If the envelope is malformed or the
                authentication tag does not verify
        """
        field_type = FieldType(field_type)
        if not envelope:
            return None

        nonce, tag, ciphertext = self._parse_envelope(envelope, field_type)
        try:
            plaintext = self._aesgcm.decrypt(nonce, ciphertext + tag, None)
        except InvalidTag as e:
            logger.error(
                f"[ENCRYPTION]: TAMPER ALERT - authentication tag verification "
                f"failed for {field_type.value}"
            )
            raise TamperedOrCorrupt(
                f"Decryption failed for {field_type.value}: data may be "
                "corrupted or tampered"
            ) from e

        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError as e:
            raise TamperedOrCorrupt(
                f"Decrypted {field_type.value} is not valid text"
            ) from e

    @staticmethod
    def _parse_envelope(envelope, field_type):
        # Lowercase hex only, so every byte of the envelope is significant
        match = ENVELOPE_PATTERN.fullmatch(str(envelope))
        if not match:
            raise TamperedOrCorrupt(f"Malformed {field_type.value} envelope")
        return tuple(bytes.fromhex(part) for part in match.groups())
