"""
CredAdmin - Authentication Providers

An authentication provider verifies a password against an account and sets
new passwords. One provider is implemented here (local scrypt credentials);
others, such as a directory or federated login, would share the same
contract.

Outcomes are signalled with exceptions rather than return codes, so a caller
that forgets to check a result can never carry on as if authenticated.

Sequence for one attempt:
    1. verify_login_preconditions()  - account enabled, rate hook
    2. compare password to credential
    3. post_login()                   - counters and timestamps, always runs
    4. raise InvalidCredentialError if step 2 failed

verify_password() runs all four on one record. AccountService runs step 2
outside the store lock and steps 1 and 3 again inside it, on the freshest
copy of the record, so concurrent attempts never lose a count.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

import structlog

from . import crypto
from .account import AccountRecord
from .errors import (
    AccountDisabledError,
    InvalidCredentialError,
    InvariantViolationError,
)
from .policy import PasswordPolicyValidator

logger = structlog.get_logger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class AuthenticationResult:
    """Returned only on success; failures raise."""

    account_id: int
    user_name: str
    authenticated_at: datetime


class AuthenticationProvider(ABC):
    """Shared precondition and bookkeeping logic for all providers."""

    def __init__(self, policy_validator: Optional[PasswordPolicyValidator] = None,
                 clock: Clock = utc_now):
        self.policy_validator = policy_validator
        self.clock = clock

    def verify_login_preconditions(self, account: AccountRecord) -> None:
        """
        Checks that must pass before any credential comparison.

        Raises:
            AccountDisabledError: If the account is disabled
        """
        if not account.enabled:
            logger.warning("login.refused_disabled", account_id=account.id)
            raise AccountDisabledError("The account is disabled.")
        self.check_login_rate(account)

    def check_login_rate(self, account: AccountRecord) -> None:
        """
        Hook for throttling repeated failed logins. Raise an
        AuthenticationError subclass to refuse the attempt. No throttling
        policy is defined, so the default allows every attempt.
        """

    @abstractmethod
    def check_password(self, account: AccountRecord, password: str) -> bool:
        """
        Compare `password` with the account's credential. Pure: no
        preconditions, no bookkeeping, account not modified.
        """

    def verify_password(self, account: AccountRecord, password: str) -> AuthenticationResult:
        """
        Authenticate `account` with `password`, updating its bookkeeping
        fields in place. The caller persists the account afterwards.

        Raises:
            AccountDisabledError: Preconditions failed; account not modified
            InvalidCredentialError: Wrong password; bookkeeping already applied
        """
        self.verify_login_preconditions(account)

        verified = self.check_password(account, password)

        self.post_login(account, verified)

        if not verified:
            logger.info("login.failed", account_id=account.id,
                        bad_login_count=account.bad_login_count)
            raise InvalidCredentialError("The supplied credentials are invalid.")

        logger.info("login.succeeded", account_id=account.id)
        return self.result_for(account)

    @staticmethod
    def result_for(account: AccountRecord) -> AuthenticationResult:
        return AuthenticationResult(account.id, account.user_name,
                                    account.last_successful_login_at)

    @abstractmethod
    def change_password(self, account: AccountRecord, password: str) -> None:
        """
        Validate and set a new password on `account` (in place).

        Providers that cannot set passwords (e.g. OAuth) raise
        NotImplementedError.

        Raises:
            PasswordPolicyViolation: Account left untouched
        """

    def post_login(self, account: AccountRecord, success: bool) -> bool:
        """
        Routine post-authentication chores: reset or bump the bad login
        count, stamp the last (failed) login time.

        Returns:
            True - the account was modified and should be saved

        Raises:
            InvariantViolationError: Called for a disabled account, which
                means the preconditions were skipped
        """
        if not account.enabled:
            raise InvariantViolationError(
                f"{type(self).__name__}.post_login() called for disabled account {account.id}"
            )

        now = self.clock()
        if success:
            account.bad_login_count = 0
            account.last_successful_login_at = now
        else:
            account.bad_login_count = max(account.bad_login_count, 0) + 1
            account.last_failed_login_at = now
        return True


class LocalAuthenticationProvider(AuthenticationProvider):
    """
    Verifies passwords against scrypt credentials stored on the account.

    Args:
        policy_validator: Checked before any new password is stored
        n, r, p: scrypt cost used for NEW credentials; existing credentials
            carry their own parameters
    """

    def __init__(self, policy_validator: Optional[PasswordPolicyValidator] = None,
                 clock: Clock = utc_now, n: int = crypto.SCRYPT_N,
                 r: int = crypto.SCRYPT_R, p: int = crypto.SCRYPT_P):
        super().__init__(policy_validator, clock)
        self.n, self.r, self.p = n, r, p

    def check_password(self, account: AccountRecord, password: str) -> bool:
        if not account.credential or password is None:
            return False
        try:
            return crypto.verify_password(password, account.credential)
        except ValueError:
            logger.error("credential.malformed", account_id=account.id)
            return False

    def change_password(self, account: AccountRecord, password: str) -> None:
        if self.policy_validator is not None:
            self.policy_validator.check(password)

        # Fresh salt per call: equal passwords never share a credential
        account.credential = crypto.hash_password(password, self.n, self.r, self.p)
        account.credential_changed_at = self.clock()
        logger.info("credential.changed", account_id=account.id)
