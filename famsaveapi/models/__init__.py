"""FAMSAVEAPI MODELS MODULE"""

from famsaveapi.models.account import Account  # noqa: E402
from famsaveapi.models.security_event import SecurityEvent  # noqa: E402

__all__ = [
    "Account",
    "SecurityEvent",
]
