"""The FAMSAVE API MODULE"""

import logging
import os
import sys

from flask import Flask, got_request_exception
from flask_jwt_extended import JWTManager
from flask_sqlalchemy import SQLAlchemy
import rollbar
import rollbar.contrib.flask

from famsaveapi.celery import make_celery
from famsaveapi.config import SETTINGS, validate_security_settings
from famsaveapi.errors import ConfigurationError
from famsaveapi.utils.field_cipher import FieldCipher

# Flask App
app = Flask(__name__)

logger = logging.getLogger()
log_level = SETTINGS.get("logging", {}).get("level", "INFO")
logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

logging.getLogger("urllib3.connectionpool").setLevel(logging.WARNING)

# Ensure all unhandled exceptions are logged, and reported to rollbar
formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
handler = logging.StreamHandler(stream=sys.stdout)
handler.setLevel(logging.INFO)
handler.setFormatter(formatter)
logger.addHandler(handler)

rollbar.init(
    os.getenv("ROLLBAR_SERVER_TOKEN"),
    os.getenv("ENVIRONMENT"),
    enabled=bool(os.getenv("ROLLBAR_SERVER_TOKEN")),
)
with app.app_context():
    got_request_exception.connect(rollbar.contrib.flask.report_exception, app)

# Refuse to start without usable secrets, in every environment
try:
    jwt_secret, field_key = validate_security_settings()
except ConfigurationError as e:
    logger.critical(f"Security configuration invalid: {e.message}")
    raise

app.config["SQLALCHEMY_DATABASE_URI"] = SETTINGS.get("SQLALCHEMY_DATABASE_URI")
app.config["SQLALCHEMY_ENGINE_OPTIONS"] = {"pool_pre_ping": True}
app.config["JWT_SECRET_KEY"] = jwt_secret
app.config["JWT_ALGORITHM"] = "HS256"
app.config["JWT_ACCESS_TOKEN_EXPIRES"] = SETTINGS.get("JWT_ACCESS_TOKEN_EXPIRES")
app.config["JWT_REFRESH_TOKEN_EXPIRES"] = SETTINGS.get("JWT_REFRESH_TOKEN_EXPIRES")
app.config["JWT_TOKEN_LOCATION"] = SETTINGS.get("JWT_TOKEN_LOCATION")
app.config["broker_url"] = SETTINGS.get("broker_url")
app.config["result_backend"] = SETTINGS.get("result_backend")
app.config["task_always_eager"] = SETTINGS.get("task_always_eager", False)
app.config["TESTING"] = SETTINGS.get("TESTING", False)

# Database
db = SQLAlchemy(app)

jwt = JWTManager(app)

# One cipher per process, built from the validated key
field_cipher = FieldCipher(field_key)

# Celery
celery = make_celery(app)

from famsaveapi import models, tasks  # noqa: E402,F401
