import hashlib

import bcrypt

from .config import settings


def _pw_prehash(pw: str) -> bytes:
    """Pre-hash to stay under bcrypt's 72-byte input limit (hex keeps it NUL-free)."""
    return hashlib.sha256(pw.encode("utf-8")).hexdigest().encode("ascii")


def hash_password(pw: str) -> str:
    salt = bcrypt.gensalt(rounds=settings.bcrypt_rounds)
    return bcrypt.hashpw(_pw_prehash(pw), salt).decode("utf-8")


def verify_password(pw: str, pw_hash: str) -> bool:
    if not pw_hash:
        return False
    try:
        return bcrypt.checkpw(_pw_prehash(pw), pw_hash.encode("utf-8"))
    except ValueError:
        # malformed stored hash
        return False
