"""LOCKOUT SERVICE"""

import datetime
import logging
import math

import rollbar
from sqlalchemy import case, or_, select, update

from famsaveapi import db
from famsaveapi.config import SETTINGS
from famsaveapi.errors import AccountLocked, AccountNotFound
from famsaveapi.models import Account
from famsaveapi.utils import clock

logger = logging.getLogger()

ACTIVE = "ACTIVE"
LOCKED = "LOCKED"


def _max_failed_attempts():
    return SETTINGS.get("LOCKOUT", {}).get("MAX_FAILED_ATTEMPTS", 5)


def _lock_duration():
    return datetime.timedelta(
        minutes=SETTINGS.get("LOCKOUT", {}).get("DURATION_MINUTES", 15)
    )


class LockoutService:
    """Per-account lockout after repeated failed logins.

    States are ACTIVE and LOCKED. A lock ends lazily: once ``locked_until``
    has passed the account reads as ACTIVE again without any write. Counter
    changes are single UPDATE statements so concurrent attempts cannot lose a
    lockout transition.
    """

    @staticmethod
    def get_state(account, now=None):
        now = now or clock.utcnow()
        if account.locked_until is not None and account.locked_until > now:
            return LOCKED
        return ACTIVE

    @staticmethod
    def remaining_lock_seconds(account, now=None):
        """Seconds until the lock ends, rounded up; 0 when not locked."""
        now = now or clock.utcnow()
        if LockoutService.get_state(account, now) != LOCKED:
            return 0
        return math.ceil((account.locked_until - now).total_seconds())

    @staticmethod
    def ensure_not_locked(account, now=None):
        now = now or clock.utcnow()
        if LockoutService.get_state(account, now) == LOCKED:
            logger.warning(f"[AUTH]: Attempt on locked account {account.id}")
            raise AccountLocked(
                account.locked_until,
                retry_after_seconds=LockoutService.remaining_lock_seconds(
                    account, now
                ),
            )

    @staticmethod
    def record_failure(account, now=None):
        """Count one failed attempt and lock when the threshold is reached.

        SET expressions see the pre-update row, so ``failed_attempt_count + 1``
        in the CASE is the new count.

        Returns:
            tuple: ``(failed_attempt_count, locked_until)`` after the update;
            ``locked_until`` is only set when this failure locked the account
        """
        now = now or clock.utcnow()
        new_count = Account.failed_attempt_count + 1
        stmt = (
            update(Account)
            .where(Account.id == account.id)
            .values(
                failed_attempt_count=new_count,
                last_failed_attempt_at=now,
                locked_until=case(
                    (new_count >= _max_failed_attempts(), now + _lock_duration()),
                    else_=None,
                ),
            )
            .execution_options(synchronize_session=False)
        )
        try:
            logger.info("[DB]: UPDATE")
            db.session.execute(stmt)
            failed_attempt_count, locked_until = db.session.execute(
                select(Account.failed_attempt_count, Account.locked_until).where(
                    Account.id == account.id
                )
            ).one()
            db.session.commit()
        except Exception as error:
            db.session.rollback()
            rollbar.report_exc_info()
            raise error

        if locked_until is not None:
            logger.warning(
                f"[AUTH]: Account {account.id} locked until {locked_until.isoformat()}"
            )
        return failed_attempt_count, locked_until

    @staticmethod
    def record_success(account, refresh_token, now=None):
        """Reset the lockout fields and store the new refresh token.

        The reset only applies while the account is not locked, so a lock
        set by a concurrent failure wins over this success.

        Raises:
            AccountLocked: If the account became locked in the meantime
        """
        now = now or clock.utcnow()
        stmt = (
            update(Account)
            .where(
                Account.id == account.id,
                or_(Account.locked_until.is_(None), Account.locked_until <= now),
            )
            .values(
                failed_attempt_count=0,
                last_failed_attempt_at=None,
                locked_until=None,
                current_refresh_token=refresh_token,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        try:
            logger.info("[DB]: UPDATE")
            result = db.session.execute(stmt)
            if result.rowcount == 0:
                db.session.rollback()
                LockoutService.ensure_not_locked(account, now)
                raise AccountNotFound(f"Account with id {account.id} does not exist")
            db.session.commit()
        except (AccountLocked, AccountNotFound):
            raise
        except Exception as error:
            db.session.rollback()
            rollbar.report_exc_info()
            raise error

    @staticmethod
    def reset(account, revoke_session=False):
        """Clear the lockout fields; with ``revoke_session`` also drop the
        stored refresh token."""
        values = {
            "failed_attempt_count": 0,
            "last_failed_attempt_at": None,
            "locked_until": None,
            "updated_at": clock.utcnow(),
        }
        if revoke_session:
            values["current_refresh_token"] = None
        stmt = (
            update(Account)
            .where(Account.id == account.id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        try:
            logger.info("[DB]: UPDATE")
            db.session.execute(stmt)
            db.session.commit()
        except Exception as error:
            db.session.rollback()
            rollbar.report_exc_info()
            raise error
