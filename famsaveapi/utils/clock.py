"""Time source for lockout and audit timestamps"""

import datetime


def utcnow():
    """Naive UTC now, matching what the DateTime columns store."""
    return datetime.datetime.now(datetime.UTC).replace(tzinfo=None)
