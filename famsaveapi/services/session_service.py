"""SESSION SERVICE"""

import datetime
import logging

from flask_jwt_extended import create_access_token, create_refresh_token, decode_token
from flask_jwt_extended.exceptions import JWTDecodeError
import jwt

from famsaveapi.config import SETTINGS
from famsaveapi.errors import ExpiredToken, InvalidSignature

logger = logging.getLogger()

ACCESS = "access"
REFRESH = "refresh"


def _to_datetime(timestamp):
    if timestamp is None:
        return None
    return datetime.datetime.fromtimestamp(timestamp, datetime.UTC).replace(
        tzinfo=None
    )


class SessionService:
    """Signed bearer sessions (HS256 JWTs via Flask-JWT-Extended).

    All methods need an application context, the signing key is the app's
    ``JWT_SECRET_KEY``.
    """

    @staticmethod
    def issue_session(account_id, email, role):
        """Mint an access/refresh pair for an account.

        Returns:
            dict: ``access_token``, ``refresh_token``, ``token_type`` and
            ``expires_in`` (access token lifetime in seconds)
        """
        logger.info(f"[SERVICE]: Issuing session for account {account_id}")
        access_expires = SETTINGS.get("JWT_ACCESS_TOKEN_EXPIRES")
        refresh_expires = SETTINGS.get("JWT_REFRESH_TOKEN_EXPIRES")
        claims = {"email": email, "role": role}

        # PyJWT requires "sub" to be a string
        access_token = create_access_token(
            identity=str(account_id),
            additional_claims=claims,
            expires_delta=access_expires,
        )
        refresh_token = create_refresh_token(
            identity=str(account_id),
            additional_claims=claims,
            expires_delta=refresh_expires,
        )
        return {
            "access_token": access_token,
            "refresh_token": refresh_token,
            "token_type": "bearer",
            "expires_in": int(access_expires.total_seconds()),
        }

    @staticmethod
    def verify_session(token, expected_type=ACCESS):
        """Check signature, expiry and token type, then return the claims.

        The signature is verified before expiry, so a forged token that is
        also expired reports ``InvalidSignature``.

        Returns:
            dict: ``account_id``, ``email``, ``role``, ``issued_at``,
            ``expires_at``, ``token_type`` and ``jti``

        Raises:
            ExpiredToken: If the token is past its ``exp``
            InvalidSignature: For any other defect, including a token of the
                wrong type
        """
        if not token or not isinstance(token, str):
            raise InvalidSignature()
        try:
            decoded = decode_token(token)
        except jwt.ExpiredSignatureError as e:
            raise ExpiredToken() from e
        except (jwt.InvalidTokenError, JWTDecodeError) as e:
            logger.warning(f"[AUTH]: Rejected session token: {type(e).__name__}")
            raise InvalidSignature() from e

        if decoded.get("type") != expected_type:
            logger.warning(
                f"[AUTH]: Rejected {decoded.get('type')} token where "
                f"{expected_type} was expected"
            )
            raise InvalidSignature()

        try:
            account_id = int(decoded["sub"])
        except (KeyError, TypeError, ValueError) as e:
            raise InvalidSignature() from e

        return {
            "account_id": account_id,
            "email": decoded.get("email"),
            "role": decoded.get("role"),
            "issued_at": _to_datetime(decoded.get("iat")),
            "expires_at": _to_datetime(decoded.get("exp")),
            "token_type": decoded.get("type"),
            "jti": decoded.get("jti"),
        }
