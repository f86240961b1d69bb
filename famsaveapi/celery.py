from celery import Celery
from celery.signals import task_failure
import rollbar


def celery_base_data_hook(request, data):
    data["framework"] = "celery"


rollbar.BASE_DATA_HOOK = celery_base_data_hook


@task_failure.connect
def handle_task_failure(**kw):
    rollbar.report_exc_info(extra_data=kw)


def make_celery(app):
    celery = Celery(
        app.import_name,
        backend=app.config["result_backend"],
        broker=app.config["broker_url"],
    )
    celery.conf.broker_url = app.config["broker_url"]
    celery.conf.result_backend = app.config["result_backend"]
    celery.conf.task_always_eager = app.config.get("task_always_eager", False)
    celery.conf.task_serializer = "json"
    celery.conf.accept_content = ["json"]

    celery.conf.task_routes = {
        "famsaveapi.tasks.security_events.persist_security_event": {
            "queue": "default"
        },
    }
    celery.conf.timezone = "UTC"

    task_base = celery.Task

    class ContextTask(task_base):
        abstract = True

        def __call__(self, *args, **kwargs):
            with app.app_context():
                return task_base.__call__(self, *args, **kwargs)

    celery.Task = ContextTask
    return celery
