"""Password hashing."""

from passlib.context import CryptContext

from libshare.domain.repositories import IPasswordHasher


class PasslibPasswordHasher(IPasswordHasher):
    """Salted PBKDF2-SHA256 hashes; ``verify`` is constant-time."""

    def __init__(self, schemes: tuple[str, ...] = ("pbkdf2_sha256",)):
        self.context = CryptContext(schemes=list(schemes), deprecated="auto")

    def hash(self, password: str) -> str:
        return self.context.hash(password)

    def verify(self, password: str, password_hash: str) -> bool:
        if not password_hash:
            return False
        try:
            return self.context.verify(password, password_hash)
        except ValueError:
            # Unrecognised hash format, e.g. a legacy plaintext row.
            return False
