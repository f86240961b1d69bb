"""ACCOUNT SERVICE"""

import hmac
import logging

import rollbar
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from famsaveapi import db
from famsaveapi.errors import (
    AccountDuplicated,
    AccountLocked,
    AccountNotFound,
    ExpiredToken,
    InvalidCredentials,
    InvalidSignature,
    RevokedToken,
)
from famsaveapi.models import Account
from famsaveapi.models.account import normalize_email
from famsaveapi.services.lockout_service import LockoutService
from famsaveapi.services.session_service import REFRESH, SessionService
from famsaveapi.utils import clock
from famsaveapi.utils.passwords import burn_verification
from famsaveapi.utils.security_events import (
    BLOCKED,
    log_account_lockout,
    log_account_registered,
    log_login_failure,
    log_login_success,
    log_logout,
    log_session_refresh_failed,
    log_session_refreshed,
)

logger = logging.getLogger()


class AccountService:
    """Account Class"""

    @staticmethod
    def get_account(account_id):
        logger.info(f"[SERVICE]: Getting account {account_id}")
        try:
            account = db.session.get(Account, int(account_id))
        except (TypeError, ValueError):
            account = None
        if not account:
            raise AccountNotFound(f"Account with id {account_id} does not exist")
        return account

    @staticmethod
    def register(email, password, phone_number=None, role=None):
        """Create an account and open its first session.

        Returns:
            tuple: ``(account, tokens)``

        Raises:
            AccountDuplicated: If the email is already registered
            PasswordValidationError: If the password cannot be hashed
            EncryptionError: If the phone number cannot be encrypted
        """
        logger.info("[SERVICE]: Creating account")
        email = normalize_email(email)
        if Account.query.filter_by(email=email).first():
            raise AccountDuplicated("Account with this email already exists")

        account = Account(
            email=email, password=password, phone_number=phone_number, role=role
        )
        try:
            logger.info("[DB]: ADD")
            db.session.add(account)
            db.session.flush()
            tokens = SessionService.issue_session(
                account.id, account.email, account.role
            )
            account.current_refresh_token = tokens["refresh_token"]
            db.session.commit()
        except IntegrityError as error:
            db.session.rollback()
            raise AccountDuplicated(
                "Account with this email already exists"
            ) from error
        except Exception as error:
            db.session.rollback()
            rollbar.report_exc_info()
            raise error

        log_account_registered(account.id)
        return account, tokens

    @staticmethod
    def login(email, password):
        """Authenticate with email and password.

        A locked account is rejected before the password is checked. Unknown
        emails and wrong passwords raise the same ``InvalidCredentials``.

        Returns:
            tuple: ``(account, tokens)``

        Raises:
            InvalidCredentials: Unknown email or wrong password
            AccountLocked: Too many recent failures
        """
        logger.info("[SERVICE]: Login attempt")
        email = normalize_email(email)
        account = Account.query.filter_by(email=email).first() if email else None
        if account is None:
            burn_verification(password)
            log_login_failure("unknown_account", email=email)
            raise InvalidCredentials()

        now = clock.utcnow()
        try:
            LockoutService.ensure_not_locked(account, now)
        except AccountLocked:
            log_login_failure(
                "account_locked",
                account_id=account.id,
                failure_count=account.failed_attempt_count,
                result=BLOCKED,
            )
            raise

        if not account.check_password(password):
            failed_attempt_count, locked_until = LockoutService.record_failure(
                account, now
            )
            log_login_failure(
                "invalid_password",
                account_id=account.id,
                failure_count=failed_attempt_count,
            )
            if locked_until is not None:
                log_account_lockout(account.id, failed_attempt_count, locked_until)
            raise InvalidCredentials()

        tokens = SessionService.issue_session(account.id, account.email, account.role)
        try:
            LockoutService.record_success(account, tokens["refresh_token"], now)
        except AccountLocked:
            log_login_failure(
                "account_locked",
                account_id=account.id,
                failure_count=account.failed_attempt_count,
                result=BLOCKED,
            )
            raise

        log_login_success(account.id)
        return account, tokens

    @staticmethod
    def refresh(refresh_token):
        """Exchange the current refresh token for a new pair.

        Refresh tokens rotate: the presented token must be the account's
        current one and is replaced by the new one in a single conditional
        update. Replaying a rotated or logged-out token fails.

        Raises:
            ExpiredToken, InvalidSignature: The token itself is not valid
            RevokedToken: The token is no longer the current one
            InvalidCredentials: The account no longer exists
        """
        logger.info("[SERVICE]: Refreshing session")
        try:
            claims = SessionService.verify_session(refresh_token, expected_type=REFRESH)
        except ExpiredToken:
            log_session_refresh_failed("token_expired")
            raise
        except InvalidSignature:
            log_session_refresh_failed("invalid_token")
            raise

        try:
            account = AccountService.get_account(claims["account_id"])
        except AccountNotFound as error:
            logger.warning(f"[SERVICE]: {error.message}")
            log_session_refresh_failed("account_not_found")
            raise InvalidCredentials() from error

        current = account.current_refresh_token
        if not current or not hmac.compare_digest(current, refresh_token):
            log_session_refresh_failed("refresh_token_not_current", account.id)
            raise RevokedToken()

        tokens = SessionService.issue_session(account.id, account.email, account.role)
        stmt = (
            update(Account)
            .where(
                Account.id == account.id,
                Account.current_refresh_token == refresh_token,
            )
            .values(current_refresh_token=tokens["refresh_token"])
            .execution_options(synchronize_session=False)
        )
        try:
            logger.info("[DB]: UPDATE")
            result = db.session.execute(stmt)
            if result.rowcount == 0:
                db.session.rollback()
            else:
                db.session.commit()
        except Exception as error:
            db.session.rollback()
            rollbar.report_exc_info()
            raise error

        if result.rowcount == 0:
            # Lost a race with another refresh or a logout
            log_session_refresh_failed("refresh_token_not_current", account.id)
            raise RevokedToken()

        log_session_refreshed(account.id)
        return tokens

    @staticmethod
    def logout(account_id):
        """Revoke the stored refresh token and clear lockout state.

        Access tokens already issued stay valid until they expire.
        """
        logger.info(f"[SERVICE]: Logging out account {account_id}")
        account = AccountService.get_account(account_id)
        LockoutService.reset(account, revoke_session=True)
        log_logout(account.id)

    @staticmethod
    def verify_session(token):
        return SessionService.verify_session(token)
