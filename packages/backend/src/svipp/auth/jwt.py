"""Session token creation and verification.

Learn: JWT (JSON Web Token) provides stateless authentication.
- One token kind: a 24-hour session token signed with HMAC-SHA256
- The token is the only source of truth — there is no session table
  and no revocation list, so a token stays valid until its `exp` even
  if the password changes afterwards

The subject id is written under "sub" and duplicated under the legacy
keys older clients and validators still read (see svipp.auth.identity).
"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Protocol

import jwt

from svipp.auth.identity import LEGACY_ISSUED_KEYS
from svipp.auth.secret_material import SecretMaterial


class TokenError(Exception):
    """Raised when token verification fails.

    `reason` is for logs only — callers always see one uniform message.
    """

    def __init__(self, reason: str, message: str = ""):
        super().__init__(message or reason)
        self.reason = reason


class TokenSubject(Protocol):
    """Anything with the profile fields a token embeds (e.g. db.models.User)."""

    id: uuid.UUID
    email: str
    first_name: str
    last_name: str


@dataclass(frozen=True)
class IssuedToken:
    token: str
    expires_at: datetime


class TokenIssuer:
    """Mint signed session tokens."""

    def __init__(self, secrets: SecretMaterial):
        self._secrets = secrets

    def issue(self, account: TokenSubject) -> IssuedToken:
        """Create a signed token for an account.

        Learn: exp is exactly iat + lifetime. The same `expires_at` is
        returned so the cookie can be given an identical expiry.
        """
        issued_at = datetime.now(timezone.utc).replace(microsecond=0)
        expires_at = issued_at + self._secrets.token_lifetime
        subject = str(account.id)

        payload: dict[str, Any] = {
            "sub": subject,
            "email": account.email,
            "given_name": account.first_name,
            "family_name": account.last_name,
            "iat": issued_at,
            "exp": expires_at,
            "jti": uuid.uuid4().hex,
        }
        for key in LEGACY_ISSUED_KEYS:
            payload[key] = subject
        if self._secrets.issuer:
            payload["iss"] = self._secrets.issuer
        if self._secrets.audience:
            payload["aud"] = self._secrets.audience

        token = jwt.encode(
            payload, self._secrets.signing_key, algorithm=self._secrets.algorithm
        )
        return IssuedToken(token=token, expires_at=expires_at)


class TokenValidator:
    """Verify inbound session tokens.

    Learn: Checks signature, then expiry, then issuer and audience —
    the last two only when they are configured. Empty issuer/audience
    settings switch that check off entirely.
    """

    def __init__(self, secrets: SecretMaterial):
        self._secrets = secrets

    def validate(self, token: str) -> dict:
        """Verify and decode a token.

        Returns the claim dict on success.
        Raises TokenError on failure.
        """
        if not token:
            raise TokenError("missing")

        kwargs: dict[str, Any] = {}
        if self._secrets.issuer:
            kwargs["issuer"] = self._secrets.issuer
        if self._secrets.audience:
            kwargs["audience"] = self._secrets.audience

        try:
            return jwt.decode(
                token,
                self._secrets.signing_key,
                algorithms=[self._secrets.algorithm],
                options={
                    "require": ["exp"],
                    "verify_aud": bool(self._secrets.audience),
                },
                leeway=0,
                **kwargs,
            )
        except jwt.InvalidSignatureError:
            raise TokenError("bad_signature", "Signature verification failed")
        except jwt.ExpiredSignatureError:
            raise TokenError("expired", "Token has expired")
        except jwt.InvalidIssuerError:
            raise TokenError("invalid_issuer", "Token issuer mismatch")
        except jwt.InvalidAudienceError:
            raise TokenError("invalid_audience", "Token audience mismatch")
        except jwt.MissingRequiredClaimError as e:
            raise TokenError("missing_claim", f"Missing claim: {e.claim}")
        except jwt.InvalidTokenError as e:
            raise TokenError("malformed", f"Invalid token: {e}")
