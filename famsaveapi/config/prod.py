import os

if os.getenv("ENVIRONMENT") == "prod":
    SETTINGS = {
        "logging": {"level": "INFO"},
        "broker_url": "redis://"
        + os.getenv("REDIS_PORT_6379_TCP_ADDR", "localhost")
        + ":"
        + os.getenv("REDIS_PORT_6379_TCP_PORT", "6379"),
        "result_backend": "redis://"
        + os.getenv("REDIS_PORT_6379_TCP_ADDR", "localhost")
        + ":"
        + os.getenv("REDIS_PORT_6379_TCP_PORT", "6379"),
    }
else:
    SETTINGS = {}
