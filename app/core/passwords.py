"""bcrypt helpers for admin passwords.

Hashing is CPU bound (hundreds of milliseconds at production cost), so the
async variants run it on the default executor to keep the event loop free.
"""

from __future__ import annotations

import asyncio

import bcrypt

from app.core.config import settings

# bcrypt only considers the first 72 bytes; newer releases reject longer input
_BCRYPT_MAX_BYTES = 72

_dummy_hash: str | None = None


def _encode(password: str) -> bytes:
    return password.encode("utf-8")[:_BCRYPT_MAX_BYTES]


def hash_password(password: str, *, rounds: int | None = None) -> str:
    """Hash a password with the configured bcrypt cost."""
    salt = bcrypt.gensalt(rounds=rounds or settings.security.bcrypt_rounds)
    return bcrypt.hashpw(_encode(password), salt).decode()


def verify_password(password: str, password_hash: str | None) -> bool:
    """Check a password against a stored hash; malformed hashes never match."""
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(_encode(password), password_hash.encode())
    except ValueError:
        return False


async def check_password(password: str, password_hash: str | None) -> bool:
    """``verify_password`` off the event loop."""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, verify_password, password, password_hash)


def _dummy_password_hash() -> str:
    global _dummy_hash
    if _dummy_hash is None:
        _dummy_hash = hash_password("not-a-real-password")
    return _dummy_hash


async def burn_password_check(password: str) -> None:
    """Spend one bcrypt comparison so unknown accounts answer as slowly as known ones."""
    loop = asyncio.get_running_loop()
    dummy_hash = await loop.run_in_executor(None, _dummy_password_hash)
    await loop.run_in_executor(None, verify_password, password, dummy_hash)
