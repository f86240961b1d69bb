from datetime import timedelta
import logging
import os

logger = logging.getLogger(__name__)

SETTINGS = {
    "logging": {"level": os.getenv("LOG_LEVEL", "INFO")},
    "environment": {
        "ROLLBAR_SERVER_TOKEN": os.getenv("ROLLBAR_SERVER_TOKEN"),
        "ENVIRONMENT": os.getenv("ENVIRONMENT"),
    },
    "ROLES": ["PARENT", "GUARDIAN", "CHILD", "ADMIN"],
    "DEFAULT_ROLE": "PARENT",
    "SQLALCHEMY_DATABASE_URI": os.getenv("DATABASE_URL")
    or (
        "postgresql://"
        + (os.getenv("DATABASE_ENV_POSTGRES_USER") or "postgres")
        + ":"
        + (os.getenv("DATABASE_ENV_POSTGRES_PASSWORD") or "postgres")
        + "@"
        + (os.getenv("DATABASE_PORT_5432_TCP_ADDR") or "localhost")
        + ":"
        + (os.getenv("DATABASE_PORT_5432_TCP_PORT") or "5432")
        + "/"
        + (os.getenv("DATABASE_ENV_POSTGRES_DB") or "postgres")
    ),
    # Session signing secret (HMAC-SHA-256), at least 16 bytes
    "JWT_SECRET_KEY": os.getenv("JWT_SECRET_KEY"),
    # AES-256-GCM key for PII columns, 64 hex characters
    "FIELD_ENCRYPTION_KEY": os.getenv("FIELD_ENCRYPTION_KEY"),
    "JWT_ACCESS_TOKEN_EXPIRES": timedelta(minutes=7),
    "JWT_REFRESH_TOKEN_EXPIRES": timedelta(days=7),
    "JWT_TOKEN_LOCATION": ["headers"],
    "BCRYPT_ROUNDS": int(os.getenv("BCRYPT_ROUNDS", "10")),
    "LOCKOUT": {
        "MAX_FAILED_ATTEMPTS": 5,
        "DURATION_MINUTES": 15,
    },
    "SECURITY_EVENTS": {
        "PERSIST": os.getenv("SECURITY_EVENTS_PERSIST", "true").lower() == "true",
        "REPORT_TO_ROLLBAR": os.getenv(
            "SECURITY_EVENTS_REPORT_TO_ROLLBAR", "true"
        ).lower()
        == "true",
    },
    "broker_url": os.getenv("REDIS_URL")
    or (
        "redis://"
        + (os.getenv("REDIS_PORT_6379_TCP_ADDR") or "localhost")
        + ":"
        + (os.getenv("REDIS_PORT_6379_TCP_PORT") or "6379")
    ),
    "result_backend": os.getenv("REDIS_URL")
    or (
        "redis://"
        + (os.getenv("REDIS_PORT_6379_TCP_ADDR") or "localhost")
        + ":"
        + (os.getenv("REDIS_PORT_6379_TCP_PORT") or "6379")
    ),
    "task_always_eager": False,
}

if not os.getenv("ROLLBAR_SERVER_TOKEN"):
    logger.warning(
        "ROLLBAR_SERVER_TOKEN is not set. Security events will only be "
        "written to the local log and the security_event table."
    )
