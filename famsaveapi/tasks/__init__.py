"""TASKS MODULE"""

# Import tasks to ensure they are registered with Celery
from famsaveapi.tasks import security_events  # noqa: F401
