"""Security event logging utilities for the FamSave API

Every security-relevant outcome goes through ``log_security_event``. The
event is written to the local log, reported to Rollbar and persisted to the
``security_event`` table by a Celery task. None of these sinks may block or
fail the operation being audited, so every sink error is caught here.
"""

import hashlib
import hmac
import logging
from typing import Any, Optional

from flask import has_request_context, request
import rollbar

from famsaveapi.config import SETTINGS
from famsaveapi.utils import clock

logger = logging.getLogger(__name__)

# Security event types for consistent logging
SECURITY_EVENTS = {
    "ACCOUNT_REGISTERED": "Account registered",
    "LOGIN_SUCCEEDED": "Account login successful",
    "LOGIN_FAILED": "Account login failed",
    "ACCOUNT_LOCKED": "Account locked after repeated failures",
    "LOGOUT": "Account logged out and session revoked",
    "SESSION_REFRESHED": "Session refreshed",
    "SESSION_REFRESH_FAILED": "Session refresh rejected",
    "ROLE_CHECK_FAILED": "Role not allowed for operation",
    "OWNERSHIP_CHECK_FAILED": "Access to resource owned by another account",
    "ENCRYPTION_FAILED": "Field encryption failed",
    "DECRYPTION_TAMPERED": "Field decryption failed authentication",
}

CRITICAL = "CRITICAL"
HIGH = "HIGH"
MEDIUM = "MEDIUM"
LOW = "LOW"
SEVERITIES = (CRITICAL, HIGH, MEDIUM, LOW)

SUCCESS = "SUCCESS"
FAILURE = "FAILURE"
BLOCKED = "BLOCKED"
RESULTS = (SUCCESS, FAILURE, BLOCKED)

RESOURCE_TYPES = ("ACCOUNT", "AUTH", "CHILD", "WALLET", "ENCRYPTION")

_LOG_LEVELS = {CRITICAL: "critical", HIGH: "warning", MEDIUM: "info", LOW: "info"}
_ROLLBAR_LEVELS = {CRITICAL: "critical", HIGH: "warning", MEDIUM: "info", LOW: "info"}

# Keys that may carry PII or secrets; never allowed in details
_SENSITIVE_KEY_PARTS = (
    "email",
    "password",
    "phone",
    "token",
    "secret",
    "name",
    "address",
    "plaintext",
    "envelope",
)


def subject_fingerprint(value: Optional[str]) -> Optional[str]:
    """Opaque, keyed fingerprint of an identifier such as an email.

    Lets operators correlate events for the same subject without the
    plaintext identifier ever reaching the audit trail.
    """
    if not value:
        return None
    key = (SETTINGS.get("JWT_SECRET_KEY") or "").encode("utf-8")
    normalised = value.strip().lower().encode("utf-8")
    return hmac.new(key, normalised, hashlib.sha256).hexdigest()[:16]


def _scrub_details(details: Optional[dict[str, Any]]) -> dict[str, Any]:
    clean = {}
    dropped = []
    for key, value in (details or {}).items():
        lowered = str(key).lower()
        if any(part in lowered for part in _SENSITIVE_KEY_PARTS):
            dropped.append(key)
            continue
        if isinstance(value, str) and "@" in value:
            dropped.append(key)
            continue
        if isinstance(value, (list, tuple)):
            value = [str(item) for item in value]
        elif value is not None and not isinstance(value, (str, int, float, bool)):
            value = str(value)
        clean[str(key)] = value
    if dropped:
        logger.debug(f"Dropped sensitive security event detail keys: {dropped}")
    return clean


def _request_info() -> dict[str, Any]:
    if not has_request_context():
        return {}
    try:
        return {
            "ip_address": request.remote_addr,
            "user_agent": request.headers.get("User-Agent", "Unknown"),
            "endpoint": request.endpoint,
            "method": request.method,
            "path": request.path,
        }
    except Exception as e:
        logger.debug(f"Failed to gather request context: {e}")
        return {}


def _dispatch_persistence(event: dict[str, Any]) -> None:
    from famsaveapi.tasks.security_events import persist_security_event

    # retry=False: an unreachable broker must not hold up the caller
    persist_security_event.apply_async(args=[event], retry=False)


def log_security_event(
    action: str,
    severity: str,
    result: str,
    actor_id: Optional[int] = None,
    resource_type: str = "AUTH",
    resource_id: Optional[Any] = None,
    details: Optional[dict[str, Any]] = None,
) -> dict[str, Any]:
    """
    Centralized security event logging function.

    Args:
        action: Type of security event (should be from SECURITY_EVENTS)
        severity: One of CRITICAL, HIGH, MEDIUM, LOW
        result: One of SUCCESS, FAILURE, BLOCKED
        actor_id: Authenticated account id, ``None`` for anonymous callers
        resource_type: Kind of resource affected (from RESOURCE_TYPES)
        resource_id: Identifier of the affected resource
        details: Reason codes and opaque identifiers; keys that look like
            PII or secrets are dropped

    Returns:
        dict: The event as emitted
    """
    if action not in SECURITY_EVENTS:
        logger.warning(f"Unknown security event type: {action}")
    if severity not in SEVERITIES:
        logger.warning(f"Unknown security event severity: {severity}")
    if result not in RESULTS:
        logger.warning(f"Unknown security event result: {result}")

    event = {
        "timestamp": clock.utcnow().isoformat(),
        "action": action,
        "description": SECURITY_EVENTS.get(action, "Unknown security event"),
        "severity": severity,
        "actor_id": actor_id,
        "resource_type": resource_type,
        "resource_id": str(resource_id) if resource_id is not None else None,
        "result": result,
        "details": _scrub_details(details),
        "request_info": _request_info(),
    }

    # Log locally
    try:
        log_message = f"SECURITY_EVENT: {action} [{severity}] {result}"
        if actor_id is not None:
            log_message += f" - Actor: {actor_id}"
        if event["details"]:
            log_message += f" - Details: {event['details']}"
        getattr(logger, _LOG_LEVELS.get(severity, "warning"))(
            log_message, extra=event
        )
    except Exception as e:
        logger.error(f"Failed to write security event to log: {e}")

    # Send to Rollbar for centralized monitoring; CRITICAL alerts out of band
    if SETTINGS.get("SECURITY_EVENTS", {}).get("REPORT_TO_ROLLBAR", True):
        try:
            rollbar.report_message(
                message=f"Security Event: {action}",
                level=_ROLLBAR_LEVELS.get(severity, "warning"),
                extra_data=event,
            )
        except Exception as e:
            logger.error(f"Failed to send security event to Rollbar: {e}")

    if SETTINGS.get("SECURITY_EVENTS", {}).get("PERSIST", True):
        try:
            _dispatch_persistence(event)
        except Exception as e:
            logger.error(f"Failed to dispatch security event persistence: {e}")

    return event


def log_account_registered(account_id: int) -> dict[str, Any]:
    return log_security_event(
        "ACCOUNT_REGISTERED",
        MEDIUM,
        SUCCESS,
        actor_id=account_id,
        resource_type="ACCOUNT",
        resource_id=account_id,
    )


def log_login_success(account_id: int) -> dict[str, Any]:
    return log_security_event(
        "LOGIN_SUCCEEDED",
        LOW,
        SUCCESS,
        actor_id=account_id,
        resource_type="AUTH",
        resource_id=account_id,
    )


def log_login_failure(
    reason: str,
    account_id: Optional[int] = None,
    email: Optional[str] = None,
    failure_count: Optional[int] = None,
    result: str = FAILURE,
) -> dict[str, Any]:
    """
    Convenience function for logging failed authentication attempts.

    Args:
        reason: Reason code (unknown_account, invalid_password, account_locked)
        account_id: Id of the targeted account, when it exists
        email: Attempted email; only its fingerprint is recorded
        failure_count: Consecutive failures including this one
        result: FAILURE, or BLOCKED when a lock rejected the attempt
    """
    severity = HIGH if failure_count and failure_count >= 3 else MEDIUM
    details = {"reason": reason}
    if failure_count is not None:
        details["failure_count"] = failure_count
    if account_id is None:
        details["subject"] = subject_fingerprint(email)
    return log_security_event(
        "LOGIN_FAILED",
        severity,
        result,
        resource_type="AUTH",
        resource_id=account_id,
        details=details,
    )


def log_account_lockout(
    account_id: int, failure_count: int, locked_until
) -> dict[str, Any]:
    return log_security_event(
        "ACCOUNT_LOCKED",
        HIGH,
        BLOCKED,
        resource_type="ACCOUNT",
        resource_id=account_id,
        details={
            "failure_count": failure_count,
            "locked_until": locked_until.isoformat() if locked_until else None,
            "lock_minutes": SETTINGS.get("LOCKOUT", {}).get("DURATION_MINUTES"),
        },
    )


def log_logout(account_id: int) -> dict[str, Any]:
    return log_security_event(
        "LOGOUT",
        LOW,
        SUCCESS,
        actor_id=account_id,
        resource_type="AUTH",
        resource_id=account_id,
    )


def log_session_refreshed(account_id: int) -> dict[str, Any]:
    return log_security_event(
        "SESSION_REFRESHED",
        LOW,
        SUCCESS,
        actor_id=account_id,
        resource_type="AUTH",
        resource_id=account_id,
    )


def log_session_refresh_failed(
    reason: str, account_id: Optional[int] = None
) -> dict[str, Any]:
    return log_security_event(
        "SESSION_REFRESH_FAILED",
        HIGH if reason == "refresh_token_not_current" else MEDIUM,
        BLOCKED,
        resource_type="AUTH",
        resource_id=account_id,
        details={"reason": reason},
    )


def log_role_check_failed(
    actor_id: Optional[int], required_roles, actual_role: Optional[str]
) -> dict[str, Any]:
    """
    Log a role mismatch. Role probing is treated as a privilege escalation
    attempt, so this is CRITICAL.
    """
    return log_security_event(
        "ROLE_CHECK_FAILED",
        CRITICAL,
        BLOCKED,
        actor_id=actor_id,
        resource_type="AUTH",
        resource_id=actor_id,
        details={
            "required_roles": sorted(required_roles),
            "actual_role": actual_role,
        },
    )


def log_ownership_check_failed(
    actor_id: int, resource_type: str, resource_id
) -> dict[str, Any]:
    return log_security_event(
        "OWNERSHIP_CHECK_FAILED",
        CRITICAL,
        BLOCKED,
        actor_id=actor_id,
        resource_type=resource_type,
        resource_id=resource_id,
        details={"reason": "not_owner"},
    )


def log_encryption_failure(
    field_type: str, resource_type: str = "ENCRYPTION", resource_id=None
) -> dict[str, Any]:
    return log_security_event(
        "ENCRYPTION_FAILED",
        CRITICAL,
        FAILURE,
        resource_type=resource_type,
        resource_id=resource_id,
        details={"field_type": field_type},
    )


def log_decryption_tampered(
    field_type: str, resource_type: str = "ENCRYPTION", resource_id=None
) -> dict[str, Any]:
    return log_security_event(
        "DECRYPTION_TAMPERED",
        CRITICAL,
        FAILURE,
        resource_type=resource_type,
        resource_id=resource_id,
        details={
            "field_type": field_type,
            "implication": "possible_tampering_or_key_mismatch",
        },
    )
