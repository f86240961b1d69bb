"""ACCOUNT MODEL"""

import logging

from famsaveapi import db, field_cipher
from famsaveapi.config import SETTINGS
from famsaveapi.errors import EncryptionError, TamperedOrCorrupt
from famsaveapi.utils import clock
from famsaveapi.utils.field_cipher import FieldType
from famsaveapi.utils.passwords import hash_password, verify_password
from famsaveapi.utils.security_events import (
    log_decryption_tampered,
    log_encryption_failure,
)

logger = logging.getLogger(__name__)


def normalize_email(email):
    return email.strip().lower() if email else email


class Account(db.Model):
    """Guardian account: credentials, encrypted PII and lockout state"""

    __tablename__ = "account"

    id = db.Column(db.Integer(), primary_key=True, autoincrement=True)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(60), nullable=False)
    # Field cipher envelope, never the plaintext number
    encrypted_phone = db.Column(db.Text(), nullable=True)
    role = db.Column(db.String(10), nullable=False)
    failed_attempt_count = db.Column(db.Integer(), default=0, nullable=False)
    last_failed_attempt_at = db.Column(db.DateTime(), nullable=True)
    locked_until = db.Column(db.DateTime(), nullable=True)
    current_refresh_token = db.Column(db.Text(), nullable=True)
    created_at = db.Column(db.DateTime(), default=lambda: clock.utcnow())
    updated_at = db.Column(
        db.DateTime(), default=lambda: clock.utcnow(), onupdate=lambda: clock.utcnow()
    )

    def __init__(self, email, password, phone_number=None, role=None):
        roles = SETTINGS.get("ROLES")
        default_role = SETTINGS.get("DEFAULT_ROLE", "PARENT")
        self.email = normalize_email(email)
        self.password_hash = hash_password(password)
        self.phone_number = phone_number
        self.role = role if role in roles else default_role
        self.failed_attempt_count = 0
        self.last_failed_attempt_at = None
        self.locked_until = None
        self.current_refresh_token = None

    def __repr__(self):
        return f"<Account {self.id!r}>"

    @property
    def phone_number(self):
        """Decrypted phone number, ``None`` when none is stored.

        A failed authentication tag is audited before ``TamperedOrCorrupt``
        reaches the caller.
        """
        try:
            return field_cipher.decrypt_field(self.encrypted_phone, FieldType.PHONE)
        except TamperedOrCorrupt:
            logger.error(f"[DB]: Phone envelope for account {self.id} failed to open")
            log_decryption_tampered(
                FieldType.PHONE.value, resource_type="ACCOUNT", resource_id=self.id
            )
            raise

    @phone_number.setter
    def phone_number(self, value):
        try:
            self.encrypted_phone = field_cipher.encrypt_field(value, FieldType.PHONE)
        except EncryptionError:
            log_encryption_failure(
                FieldType.PHONE.value, resource_type="ACCOUNT", resource_id=self.id
            )
            raise

    def check_password(self, password):
        return verify_password(password, self.password_hash)

    def serialize(self, include=None, exclude=None):
        """Return object data in easily serializeable format

        Args:
            include (list, optional): Extra fields; ``phone_number`` decrypts
                the stored phone envelope
            exclude (list, optional): Fields to drop from the output

        Credentials, the phone envelope, the refresh token and lockout
        counters are never part of the output.
        """
        include = include if include else []
        exclude = exclude if exclude else []
        account = {
            "id": self.id,
            "email": self.email,
            "role": self.role,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
        if "phone_number" in include:
            account["phone_number"] = self.phone_number
        for field in exclude:
            account.pop(field, None)
        return account
