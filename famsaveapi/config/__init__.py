"""FAMSAVEAPI CONFIG MODULE"""

import collections.abc
import os
import re

from famsaveapi.config import base, prod, staging, test
from famsaveapi.errors import ConfigurationError

MIN_JWT_SECRET_BYTES = 16
FIELD_KEY_HEX_PATTERN = re.compile(r"^[0-9a-fA-F]{64}$")
MIN_PRODUCTION_BCRYPT_ROUNDS = 10


# Below is from https://stackoverflow.com/a/3233356. Needed to handle the "environment"
# key
def _nested_dict_update(d, u):
    for k, v in u.items():
        if isinstance(v, collections.abc.Mapping):
            d[k] = _nested_dict_update(d.get(k, {}), v)
        else:
            d[k] = v
    return d


SETTINGS = base.SETTINGS

if os.getenv("ENVIRONMENT") == "staging":
    _nested_dict_update(SETTINGS, staging.SETTINGS)

if os.getenv("ENVIRONMENT") == "prod":
    _nested_dict_update(SETTINGS, prod.SETTINGS)

if os.getenv("ENVIRONMENT") in ("test", "testing"):
    _nested_dict_update(SETTINGS, test.SETTINGS)


def validate_security_settings(settings=None, environment=None):
    """Check the secrets the security core cannot run without.

    Args:
        settings: Settings mapping to check, defaults to ``SETTINGS``
        environment: Deployment environment name, defaults to ``ENVIRONMENT``

    Returns:
        tuple: ``(jwt_secret, field_key)`` where ``field_key`` is the decoded
        32-byte AES key

    Raises:
        ConfigurationError: If a secret is missing or malformed
    """
    settings = SETTINGS if settings is None else settings
    environment = os.getenv("ENVIRONMENT") if environment is None else environment
    problems = []

    jwt_secret = settings.get("JWT_SECRET_KEY")
    if not jwt_secret:
        problems.append("JWT_SECRET_KEY is not set")
    elif len(jwt_secret.encode("utf-8")) < MIN_JWT_SECRET_BYTES:
        problems.append(
            f"JWT_SECRET_KEY must be at least {MIN_JWT_SECRET_BYTES} bytes"
        )

    field_key = None
    field_key_hex = settings.get("FIELD_ENCRYPTION_KEY")
    if not field_key_hex:
        problems.append("FIELD_ENCRYPTION_KEY is not set")
    elif not FIELD_KEY_HEX_PATTERN.match(field_key_hex):
        problems.append(
            "FIELD_ENCRYPTION_KEY must be 64 hex characters (32 bytes). "
            "Generate with: openssl rand -hex 32"
        )
    else:
        field_key = bytes.fromhex(field_key_hex)

    rounds = settings.get("BCRYPT_ROUNDS", MIN_PRODUCTION_BCRYPT_ROUNDS)
    if environment == "prod" and rounds < MIN_PRODUCTION_BCRYPT_ROUNDS:
        problems.append(
            f"BCRYPT_ROUNDS must be at least {MIN_PRODUCTION_BCRYPT_ROUNDS} "
            "in production"
        )

    if problems:
        raise ConfigurationError("; ".join(problems))

    return jwt_secret, field_key
