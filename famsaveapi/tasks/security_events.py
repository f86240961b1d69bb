"""SECURITY EVENT PERSISTENCE TASKS"""

import logging

import rollbar

logger = logging.getLogger(__name__)

# Import celery after other imports to avoid circular dependency
from famsaveapi import celery, db  # noqa: E402
from famsaveapi.models import SecurityEvent  # noqa: E402


class SecurityEventTask(celery.Task):
    """Base task for security event persistence"""

    def on_failure(self, exc, task_id, args, kwargs, einfo):
        logger.error(f"Security event persistence task failed: {exc}")
        rollbar.report_exc_info()


@celery.task(base=SecurityEventTask, bind=True, ignore_result=True)
def persist_security_event(self, event):
    """Write one event emitted by ``log_security_event`` to the
    ``security_event`` table. Not retried: the event is already in the log
    and in Rollbar."""
    logger.info(f"[TASK]: Persisting security event {event.get('action')}")
    try:
        row = SecurityEvent.from_event(event)
        db.session.add(row)
        db.session.commit()
    except Exception as error:
        db.session.rollback()
        logger.error(f"[TASK]: Error persisting security event: {str(error)}")
        raise error
    return row.id
