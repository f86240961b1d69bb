"""Permission utility functions"""

from __future__ import annotations

import logging

from famsaveapi.errors import Forbidden, ResourceNotFound, Unauthenticated
from famsaveapi.utils.security_events import (
    log_ownership_check_failed,
    log_role_check_failed,
)

logger = logging.getLogger(__name__)

ROLES = {
    "PARENT": "Parent managing children's savings accounts",
    "GUARDIAN": "Guardian with delegated access to a child's savings",
    "CHILD": "Child viewing their own savings and goals",
    "ADMIN": "Administrator managing the platform",
}


def is_valid_role(role) -> bool:
    """Return True if ``role`` is one of the known roles."""
    return isinstance(role, str) and role in ROLES


def get_role_description(role) -> str:
    return ROLES.get(role, "Unknown role") if isinstance(role, str) else "Unknown role"


def authorize(claims, required_roles) -> None:
    """Allow the call only if the session's role is in ``required_roles``.

    Args:
        claims: Verified session claims as returned by
            ``SessionService.verify_session``, ``None`` when the caller
            presented no valid session
        required_roles: Iterable of role names allowed for the operation

    Raises:
        Unauthenticated: If no claims are present
        Forbidden: If the role is missing or not allowed. The message never
            says which role was required or held.
    """
    if not claims:
        raise Unauthenticated()

    required = set(required_roles)
    role = claims.get("role")
    if role not in required:
        actor_id = claims.get("account_id")
        logger.warning(f"[AUTH]: Role check failed for account {actor_id}")
        log_role_check_failed(actor_id, required, role)
        raise Forbidden()


def check_ownership(claims, owner_id, resource_type, resource_id) -> None:
    """Ensure the session's account owns a resource.

    A missing resource (``owner_id is None``) and a resource owned by someone
    else both raise ``ResourceNotFound`` so callers cannot tell them apart.
    Only the second case is audited.
    """
    if not claims:
        raise Unauthenticated()

    if owner_id is None:
        raise ResourceNotFound()

    actor_id = claims.get("account_id")
    if str(owner_id) != str(actor_id):
        logger.warning(
            f"[AUTH]: Account {actor_id} denied access to {resource_type} "
            f"{resource_id}"
        )
        log_ownership_check_failed(actor_id, resource_type, resource_id)
        raise ResourceNotFound()
