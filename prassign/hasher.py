"""Password hashing with bcrypt."""

from __future__ import annotations

import bcrypt

_DEFAULT_COST = 10
_MAX_PASSWORD_BYTES = 72


class BcryptHasher:
    """Hashes and checks passwords using bcrypt at the default cost."""

    def hash_password(self, password: str) -> str:
        """Return a bcrypt hash of *password*."""
        data = password.encode("utf-8")
        if len(data) > _MAX_PASSWORD_BYTES:
            raise ValueError("bcrypt: password length exceeds 72 bytes")
        salt = bcrypt.gensalt(rounds=_DEFAULT_COST, prefix=b"2a")
        return bcrypt.hashpw(data, salt).decode("ascii")

    def check_password_hash(self, password: str, hashed: str) -> bool:
        """Tell whether *password* matches *hashed*."""
        try:
            return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
        except ValueError:
            return False