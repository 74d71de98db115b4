"""Account administration operations, composed from the store and a provider."""

from typing import Optional, Tuple

import structlog

from .account import AccountRecord
from .auth import AuthenticationProvider, AuthenticationResult
from .errors import InvalidCredentialError, NotFoundError
from .store import CredentialStore

logger = structlog.get_logger(__name__)


class AccountService:
    """One method per administrative operation offered by the CLI."""

    def __init__(self, store: CredentialStore, provider: AuthenticationProvider):
        self.store = store
        self.provider = provider

    def create_account(self, user_name: str, password: str,
                       full_name: Optional[str] = None,
                       email_address: Optional[str] = None) -> AccountRecord:
        """
        Create an enabled account with the given password.

        Raises:
            PasswordPolicyViolation: Nothing is stored
            DuplicateAccountError: The user name is taken
        """
        account = AccountRecord(user_name=user_name, full_name=full_name,
                                email_address=email_address, enabled=True)
        self.provider.change_password(account, password)
        account = self.store.add(account)
        logger.info("account.created", account_id=account.id, user_name=user_name)
        return account

    def change_password(self, user_name: str, password: str) -> AccountRecord:
        account = self.get_account(user_name)
        self.provider.change_password(account, password)
        return self.store.update(account)

    def authenticate(self, user_name: str, password: str) -> AuthenticationResult:
        """
        Log in as `user_name`. Bookkeeping is saved whether or not the
        password was right.

        The credential comparison (slow) runs without the store lock. The
        bookkeeping is then applied to the current stored record under the
        lock, so concurrent attempts each count.

        Raises:
            AccountDisabledError: Nothing is saved
            InvalidCredentialError: Wrong password or unknown user name
        """
        account = self.store.find_by_user_name(user_name)
        if account is None:
            # Same answer as a wrong password
            logger.info("login.unknown_user")
            raise InvalidCredentialError("The supplied credentials are invalid.")

        self.provider.verify_login_preconditions(account)
        verified = self.provider.check_password(account, password)

        def record_outcome(current: AccountRecord) -> None:
            # Disabled or throttled since the first check: nothing is saved
            self.provider.verify_login_preconditions(current)
            self.provider.post_login(current, verified)

        try:
            account = self.store.modify(account.id, record_outcome)
        except NotFoundError:
            logger.info("login.unknown_user")
            raise InvalidCredentialError("The supplied credentials are invalid.") from None

        if not verified:
            logger.info("login.failed", account_id=account.id,
                        bad_login_count=account.bad_login_count)
            raise InvalidCredentialError("The supplied credentials are invalid.")

        logger.info("login.succeeded", account_id=account.id)
        return self.provider.result_for(account)

    def set_enabled(self, user_name: str, enabled: bool) -> AccountRecord:
        account = self.get_account(user_name)
        account.enabled = enabled
        account = self.store.update(account)
        logger.info("account.enabled" if enabled else "account.disabled",
                    account_id=account.id)
        return account

    def delete_account(self, user_name: str) -> bool:
        account = self.get_account(user_name)
        return self.store.delete(account.id)

    def get_account(self, user_name: str) -> AccountRecord:
        """
        Raises:
            NotFoundError: No account has that user name
        """
        account = self.store.find_by_user_name(user_name)
        if account is None:
            raise NotFoundError(f"The account {user_name!r} was not found")
        return account

    def list_accounts(self) -> Tuple[AccountRecord, ...]:
        return self.store.list()
