from hashlib import sha256

from passlib.context import CryptContext

from inventory_admin.core.config import settings

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.BCRYPT_ROUNDS,
)


def _ensure_bcrypt_limit(secret: str) -> None:
    # bcrypt limit is 72 BYTES, not characters
    if len(secret.encode("utf-8")) > 72:
        raise ValueError("Password too long (max 72 bytes).")


def hash_secret(secret: str) -> str:
    _ensure_bcrypt_limit(secret)
    return pwd_context.hash(secret)


def verify_secret(secret: str, digest: str) -> bool:
    _ensure_bcrypt_limit(secret)
    try:
        return pwd_context.verify(secret, digest)
    except ValueError:
        # Unknown or corrupt digest format.
        return False


def hash_password(password: str) -> str:
    return hash_secret(password)


def verify_password(password: str, password_hash: str) -> bool:
    return verify_secret(password, password_hash)


def _token_fingerprint(token: str) -> str:
    # A JWT is longer than 72 bytes; bcrypt would only see its header.
    return sha256(token.encode("utf-8")).hexdigest()


def hash_refresh_token(token: str) -> str:
    return hash_secret(_token_fingerprint(token))


def refresh_token_matches(token: str, token_hash: str) -> bool:
    return verify_secret(_token_fingerprint(token), token_hash)


__all__ = [
    "hash_password",
    "hash_refresh_token",
    "hash_secret",
    "verify_password",
    "refresh_token_matches",
    "verify_secret",
]
