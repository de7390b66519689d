"""Admin login with account lockout.

Failed logins are counted per account. After ``max_failed_logins``
consecutive failures the account is locked for ``lockout_minutes``; while
locked every login answers 423 regardless of the password. Unknown emails
and wrong passwords share one generic 401 message.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable

from app.adapters.storage.base import AbstractAdminRepository
from app.core.auth import issue_token
from app.core.config import settings
from app.core.errors import AccountLockedAppError, AuthenticationAppError
from app.core.logging import hash_for_log
from app.core.passwords import burn_password_check, check_password
from app.schemas.admin import AdminAccount, AdminProfile

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid email or password"
ACCOUNT_LOCKED = "Account temporarily locked due to too many failed login attempts"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuthService:
    def __init__(
        self,
        admins: AbstractAdminRepository,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._admins = admins
        self._clock = clock

    async def login(self, email: str, password: str) -> tuple[AdminProfile, str]:
        """Authenticate an admin and issue a session token.

        Args:
            email: Normalized admin email.
            password: Plaintext password.

        Returns:
            tuple[AdminProfile, str]: The admin profile and the signed token.

        Raises:
            AuthenticationAppError: Unknown email, inactive account or wrong password.
            AccountLockedAppError: The account is currently locked.
        """
        now = self._clock()
        email_hash = hash_for_log(email)
        account = await self._admins.get_by_email(email)

        if account is None or not account.is_active:
            await burn_password_check(password)
            logger.info("auth.login_failed", extra={"email_hash": email_hash, "reason": "unknown_account"})
            raise AuthenticationAppError(code="invalid_credentials", message=INVALID_CREDENTIALS)

        if account.is_locked(now):
            logger.warning(
                "auth.login_locked",
                extra={"email_hash": email_hash, "lock_until": account.lock_until},
            )
            raise AccountLockedAppError(code="account_locked", message=ACCOUNT_LOCKED)

        if not await check_password(password, account.password_hash):
            await self._record_failure(account, now)
            raise AuthenticationAppError(code="invalid_credentials", message=INVALID_CREDENTIALS)

        account.failed_login_attempts = 0
        account.lock_until = None
        account.last_login = now
        await self._admins.save(account)

        token = issue_token(
            account.id,
            account.email,
            account.role,
            account.permissions,
            now=now.timestamp(),
        )
        logger.info("auth.login_succeeded", extra={"admin_id": account.id})
        return AdminProfile.from_account(account), token

    async def _record_failure(self, account: AdminAccount, now: datetime) -> None:
        cfg = settings.security
        # An expired lock starts a fresh count
        if account.lock_until is not None and account.lock_until <= now:
            account.failed_login_attempts = 0
            account.lock_until = None

        account.failed_login_attempts += 1
        if account.failed_login_attempts >= cfg.max_failed_logins:
            account.lock_until = now + timedelta(minutes=cfg.lockout_minutes)

        await self._admins.save(account)
        logger.info(
            "auth.login_failed",
            extra={
                "admin_id": account.id,
                "reason": "bad_password",
                "failed_attempts": account.failed_login_attempts,
                "locked": account.lock_until is not None,
            },
        )
