"""Password hashing with bcrypt and a pepper.

Learn: Uses bcrypt for secure password hashing. bcrypt automatically
handles salting and is resistant to rainbow table attacks.
The work factor (rounds=12) takes ~100ms per hash on modern hardware.

On top of the per-hash salt, every password is combined with a pepper
that lives only in process configuration. A leaked database dump is
not enough to brute-force passwords offline without the pepper too.
"""

import base64
import hashlib
import secrets

import bcrypt

from svipp.auth.secret_material import SecretMaterial
from svipp.errors import ConfigurationError

# bcrypt ignores (or, since bcrypt 5, rejects) input past 72 bytes.
BCRYPT_MAX_BYTES = 72


class PasswordHasher:
    """Hash and verify peppered passwords.

    Learn: Stateless apart from the pepper and the work factor, so a
    single instance is shared by every request.
    """

    def __init__(self, pepper: str, rounds: int = 12):
        if not pepper:
            raise ConfigurationError("A password pepper is required to hash passwords")
        self._pepper = pepper
        self.rounds = rounds
        # Built up front so the first unknown-email login costs one verify, not hash + verify.
        self._dummy_hash = self.hash(secrets.token_urlsafe(16))

    @classmethod
    def from_secrets(cls, material: SecretMaterial) -> "PasswordHasher":
        return cls(material.pepper, rounds=material.bcrypt_rounds)

    def hash(self, password: str) -> str:
        """Hash a password with a fresh salt.

        Learn: The result looks like "$2b$12$<salt><digest>" — algorithm,
        work factor and salt are all embedded, so verify() needs nothing
        but the stored string.
        """
        salt = bcrypt.gensalt(rounds=self.rounds)
        return bcrypt.hashpw(self._peppered(password), salt).decode("utf-8")

    def verify(self, password: str, password_hash: str) -> bool:
        """Verify a password against a stored hash.

        Malformed or non-bcrypt hashes verify as False instead of raising.
        """
        if not password_hash:
            return False
        try:
            return bcrypt.checkpw(
                self._peppered(password), password_hash.encode("utf-8")
            )
        except (ValueError, TypeError):
            return False

    def verify_dummy(self, password: str) -> bool:
        """Spend the same bcrypt time as verify(), against a throwaway hash.

        Learn: Used when the login email doesn't exist, so "unknown
        email" and "wrong password" take equally long. Always False.
        """
        self.verify(password, self._dummy_hash)
        return False

    def needs_rehash(self, password_hash: str) -> bool:
        """Check if a stored hash uses a weaker work factor than configured."""
        rounds = _bcrypt_rounds(password_hash)
        return rounds is None or rounds < self.rounds

    def _peppered(self, password: str) -> bytes:
        data = (password + self._pepper).encode("utf-8")
        if len(data) > BCRYPT_MAX_BYTES:
            # Long input is pre-hashed so the pepper at the end is never cut off.
            data = base64.b64encode(hashlib.sha256(data).digest())
        return data


def _bcrypt_rounds(password_hash: str):
    """Extract the cost factor from "$2b$12$...", or None if not bcrypt."""
    parts = password_hash.split("$")
    if len(parts) != 4 or not parts[1].startswith("2"):
        return None
    try:
        return int(parts[2])
    except ValueError:
        return None
