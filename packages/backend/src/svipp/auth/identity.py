"""Subject resolution — which account does a validated token speak for?

Learn: The issuer's claim shape changed over time. Early tokens carried
the account id only under the .NET "nameidentifier" claim, later ones
added "sub" and "userId". Any token that is still inside its 24-hour
window must keep working, so the resolver walks an explicit, ordered
compatibility table instead of guessing. Supporting a new shape means
appending a key here — nothing else changes.
"""

import uuid
from typing import Mapping, Optional

# Canonical key first, then every legacy key ever used, oldest last.
SUBJECT_CLAIM_KEYS: tuple[str, ...] = (
    "sub",
    "nameid",
    "http://schemas.xmlsoap.org/ws/2005/05/identity/claims/nameidentifier",
    "userId",
    "user_id",
    "id",
)

# Legacy keys the issuer still writes alongside "sub".
LEGACY_ISSUED_KEYS: tuple[str, ...] = ("nameid", "userId")


def resolve_subject_id(claims: Mapping[str, object]) -> Optional[uuid.UUID]:
    """Return the first well-formed account id found in the claims.

    Empty or unparseable values are skipped so that a bad legacy key
    never shadows a good one further down the table.
    """
    for key in SUBJECT_CLAIM_KEYS:
        value = claims.get(key)
        if value is None:
            continue
        text = str(value).strip()
        if not text:
            continue
        try:
            return uuid.UUID(text)
        except ValueError:
            continue
    return None
