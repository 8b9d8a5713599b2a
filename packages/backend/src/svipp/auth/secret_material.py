"""Secret material — pepper and signing key, loaded once at startup.

Learn: Both secrets come from process configuration (SVIPP_* env vars).
They are copied into a frozen dataclass that is handed to the hasher,
issuer and validator when they are constructed. Nothing re-reads the
environment per request, and a missing secret stops the app from
starting instead of failing the first login.
"""

from dataclasses import dataclass, field
from datetime import timedelta

from svipp.config import Settings
from svipp.errors import ConfigurationError


@dataclass(frozen=True)
class SecretMaterial:
    """Process-wide, read-only auth configuration."""

    pepper: str = field(repr=False)
    signing_key: str = field(repr=False)
    algorithm: str = "HS256"
    issuer: str = ""
    audience: str = ""
    token_lifetime: timedelta = timedelta(hours=24)
    bcrypt_rounds: int = 12

    def __post_init__(self):
        if not self.pepper:
            raise ConfigurationError(
                "SVIPP_PASSWORD_PEPPER must be configured. "
                "Set it as an environment variable before starting the server."
            )
        if not self.signing_key:
            raise ConfigurationError(
                "SVIPP_JWT_SECRET must be configured. Generate one with: "
                'python -c "import secrets; print(secrets.token_urlsafe(32))"'
            )

    @classmethod
    def from_settings(cls, settings: Settings) -> "SecretMaterial":
        return cls(
            pepper=settings.password_pepper,
            signing_key=settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
            issuer=settings.jwt_issuer.strip(),
            audience=settings.jwt_audience.strip(),
            token_lifetime=timedelta(hours=settings.access_token_expire_hours),
            bcrypt_rounds=settings.bcrypt_rounds,
        )
