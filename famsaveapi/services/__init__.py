"""FAMSAVEAPI SERVICES MODULE"""

import logging
import sys

logger = logging.getLogger()


def handle_exception(exc_type, exc_value, exc_traceback):
    if issubclass(exc_type, KeyboardInterrupt):
        sys.__excepthook__(exc_type, exc_value, exc_traceback)
        return
    logger.critical("Uncaught exception", exc_info=(exc_type, exc_value, exc_traceback))


sys.excepthook = handle_exception

from famsaveapi.services.session_service import SessionService  # noqa: E402
from famsaveapi.services.lockout_service import LockoutService  # noqa: E402
from famsaveapi.services.account_service import AccountService  # noqa: E402

__all__ = [
    "SessionService",
    "LockoutService",
    "AccountService",
]
