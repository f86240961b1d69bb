"""FAMSAVE API ERRORS"""


class Error(Exception):
    error_code = "error"

    def __init__(self, message):
        self.message = message
        super().__init__(message)

    @property
    def serialize(self):
        return {"message": self.message, "error_code": self.error_code}


class ConfigurationError(Error):
    """Missing or malformed secret. Fatal at startup."""

    error_code = "configuration_error"


class AccountNotFound(Error):
    error_code = "account_not_found"


class AccountDuplicated(Error):
    error_code = "account_duplicated"


class PasswordValidationError(Error):
    error_code = "invalid_password"


class AuthError(Error):
    error_code = "auth_error"


class InvalidCredentials(AuthError):
    """Wrong email or wrong password. The two are never told apart."""

    error_code = "invalid_credentials"

    def __init__(self, message="Invalid credentials"):
        super().__init__(message)


class AccountLocked(AuthError):
    """Raised when an account is locked due to too many failed login attempts."""

    error_code = "account_locked"

    def __init__(self, locked_until, message=None, retry_after_seconds=None):
        super().__init__(
            message
            or (
                "Account temporarily locked due to too many failed login "
                "attempts. Please try again later."
            )
        )
        self.locked_until = locked_until
        self.retry_after_seconds = retry_after_seconds

    @property
    def serialize(self):
        return {
            "message": self.message,
            "error_code": self.error_code,
            "locked_until": self.locked_until.isoformat()
            if self.locked_until
            else None,
            "retry_after_seconds": self.retry_after_seconds,
        }


class TokenError(AuthError):
    error_code = "invalid_token"


class ExpiredToken(TokenError):
    error_code = "token_expired"

    def __init__(self, message="Token expired"):
        super().__init__(message)


class InvalidSignature(TokenError):
    error_code = "invalid_token"

    def __init__(self, message="Invalid token"):
        super().__init__(message)


class RevokedToken(TokenError):
    """Refresh token is no longer the account's current one."""

    error_code = "token_revoked"

    def __init__(self, message="Token has been revoked"):
        super().__init__(message)


class Unauthenticated(AuthError):
    error_code = "unauthenticated"

    def __init__(self, message="Authentication required"):
        super().__init__(message)


class Forbidden(Error):
    error_code = "forbidden"

    def __init__(self, message="Forbidden"):
        super().__init__(message)


class ResourceNotFound(Error):
    """Missing resource or resource owned by another account."""

    error_code = "not_found"

    def __init__(self, message="Not found"):
        super().__init__(message)


class CipherError(Error):
    error_code = "cipher_error"


class EncryptionError(CipherError):
    error_code = "encryption_failed"


class TamperedOrCorrupt(CipherError):
    """AEAD tag check failed: ciphertext modified, truncated, or wrong key."""

    error_code = "tampered_or_corrupt"
