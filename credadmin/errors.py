"""
CredAdmin - Fault Types

Recoverable faults derive from CredAdminError and are reported to the user by
the CLI. Fatal faults derive from FatalError; they signal a programming or
deployment defect and are left to propagate to the process boundary.
"""

from typing import List, Optional, Sequence


class CredAdminError(Exception):
    """Base class for recoverable faults raised by the core."""

    code = "credadmin_error"

    def __init__(self, message: str, code: Optional[str] = None):
        self.message = message
        if code is not None:
            self.code = code
        super().__init__(message)

    def __str__(self) -> str:
        return self.message


class NotFoundError(CredAdminError):
    """The targeted account id or user name does not exist."""

    code = "not_found"


class DuplicateAccountError(CredAdminError):
    """Another account already uses the requested user name."""

    code = "duplicate_account"


class AuthenticationError(CredAdminError):
    """Authentication was refused."""

    code = "authentication_refused"


class AccountDisabledError(AuthenticationError):
    code = "account_disabled"


class InvalidCredentialError(AuthenticationError):
    code = "invalid_credential"


class PasswordPolicyViolation(CredAdminError):
    """
    A candidate password failed one or more policy rules.

    Carries every violation message, in rule order, not just the first.
    """

    code = "password_policy_violation"

    def __init__(self, messages: Sequence[str]):
        self.messages: List[str] = list(messages)
        super().__init__("; ".join(self.messages))

    def __str__(self) -> str:
        lines = ["Password validation error. The following problems were found:"]
        lines.extend(f"  - {msg}" for msg in self.messages)
        return "\n".join(lines)


class StoreLoadError(CredAdminError):
    """The account file exists but could not be read or parsed."""

    code = "store_load_failed"


class FatalError(RuntimeError):
    """Defect in configuration or calling code. Never caught by the CLI."""


class PolicyConfigurationError(FatalError):
    """A policy declares an unknown rule or an invalid rule parameter."""


class InvariantViolationError(FatalError):
    """An internal contract was broken by a caller."""
