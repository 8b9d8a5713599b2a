"""Ownership guard — may this account mutate this resource?

Learn: Drivers and customers carry a nullable `user_id` link back to the
account that owns them. Every endpoint that mutates one of them calls
ensure_owner() before touching the row:

- link present, different account  → deny (403, owner never revealed)
- link present, same account       → allow
- link absent (legacy row)         → allow, but emit an audit event

The unlinked case is a known gap: any authenticated caller can mutate
an unlinked resource. It stays allowed until existing rows are linked
(see `svipp-admin unlinked` / `svipp-admin link`).
"""

import enum
import uuid
from typing import Optional

import structlog

from svipp.errors import ForbiddenError

logger = structlog.get_logger()


class OwnershipDecision(str, enum.Enum):
    ALLOW = "allow"
    ALLOW_UNLINKED = "allow_unlinked"
    DENY = "deny"

    @property
    def allowed(self) -> bool:
        return self is not OwnershipDecision.DENY


def authorize(
    subject_id: uuid.UUID,
    owner_id: Optional[uuid.UUID],
    *,
    resource: str,
    resource_id: object,
) -> OwnershipDecision:
    """Decide whether `subject_id` may mutate a resource owned by `owner_id`."""
    if owner_id is None:
        logger.warning(
            "ownership.unlinked_resource",
            resource=resource,
            resource_id=resource_id,
            user_id=str(subject_id),
        )
        return OwnershipDecision.ALLOW_UNLINKED

    if owner_id != subject_id:
        logger.warning(
            "ownership.denied",
            resource=resource,
            resource_id=resource_id,
            user_id=str(subject_id),
            owner_id=str(owner_id),
        )
        return OwnershipDecision.DENY

    return OwnershipDecision.ALLOW


def ensure_owner(
    subject_id: uuid.UUID,
    owner_id: Optional[uuid.UUID],
    *,
    resource: str,
    resource_id: object,
) -> OwnershipDecision:
    """Like authorize(), but raise ForbiddenError on deny."""
    decision = authorize(
        subject_id, owner_id, resource=resource, resource_id=resource_id
    )
    if not decision.allowed:
        raise ForbiddenError()
    return decision
