"""
CredAdmin - Command Line Interface

Usage:
    python -m credadmin.cli add --user alice [--password PW] [--full-name N] [--email E]
    python -m credadmin.cli change-password --user alice [--password PW]
    python -m credadmin.cli login --user alice [--password PW]
    python -m credadmin.cli enable --user alice
    python -m credadmin.cli disable --user alice
    python -m credadmin.cli delete --user alice
    python -m credadmin.cli query --user alice
    python -m credadmin.cli list

Passwords left off the command line are prompted for, so they do not show up
in the process list.

Exit status:
    0 success, 1 not found, 2 usage or validation error,
    3 authentication refused, 4 account file unreadable
"""

import argparse
import getpass
import sys
from typing import List, Optional

from .auth import LocalAuthenticationProvider
from .config import Settings, get_settings
from .errors import (
    AuthenticationError,
    CredAdminError,
    DuplicateAccountError,
    NotFoundError,
    PasswordPolicyViolation,
    StoreLoadError,
)
from .log import configure_logging
from .policy import PolicyRegistry
from .service import AccountService
from .store import CredentialStore

EXIT_OK = 0
EXIT_NOT_FOUND = 1
EXIT_INVALID = 2
EXIT_REFUSED = 3
EXIT_STORAGE = 4


def build_service(settings: Settings) -> AccountService:
    """Wire the store, policy and provider together from settings."""
    registry = PolicyRegistry()
    registry.set_default({"minLength": settings.min_password_length})
    provider = LocalAuthenticationProvider(
        registry.get_validator(),
        n=settings.scrypt_n, r=settings.scrypt_r, p=settings.scrypt_p,
    )
    store = CredentialStore(settings.store_path, load_errors=settings.store_load_errors)
    return AccountService(store, provider)


def read_password(args, prompt: str = "Password: ") -> str:
    if args.password is not None:
        return args.password
    return getpass.getpass(prompt)


# =============================================================================
# Commands
# =============================================================================

def cmd_add(service: AccountService, args) -> int:
    password = read_password(args)
    account = service.create_account(args.user, password,
                                     full_name=args.full_name,
                                     email_address=args.email)
    print(f"✓ Account created! ID: {account.id}")
    return EXIT_OK


def cmd_change_password(service: AccountService, args) -> int:
    password = read_password(args, "New password: ")
    service.change_password(args.user, password)
    print("✓ The password was changed.")
    return EXIT_OK


def cmd_login(service: AccountService, args) -> int:
    password = read_password(args)
    service.authenticate(args.user, password)
    print("✓ Login was successful.")
    return EXIT_OK


def cmd_enable(service: AccountService, args) -> int:
    account = service.set_enabled(args.user, True)
    print(f"✓ Account enabled.\n{account.describe()}")
    return EXIT_OK


def cmd_disable(service: AccountService, args) -> int:
    account = service.set_enabled(args.user, False)
    print(f"✓ Account disabled.\n{account.describe()}")
    return EXIT_OK


def cmd_delete(service: AccountService, args) -> int:
    if service.delete_account(args.user):
        print("✓ The account was deleted.")
        return EXIT_OK
    print("The account was not deleted.")
    return EXIT_NOT_FOUND


def cmd_query(service: AccountService, args) -> int:
    print(service.get_account(args.user).describe())
    return EXIT_OK


def cmd_list(service: AccountService, args) -> int:
    accounts = service.list_accounts()
    if not accounts:
        print("No accounts found.")
        return EXIT_OK
    print(f"{'ID':>4}  {'User name':<20}  {'Enabled':<7}  {'Bad logins':>10}  {'Full name'}")
    print("-" * 70)
    for a in accounts:
        enabled = "yes" if a.enabled else "no"
        print(f"{a.id:>4}  {a.user_name:<20}  {enabled:<7}  {a.bad_login_count:>10}  {a.full_name or '-'}")
    return EXIT_OK


# =============================================================================
# Entry point
# =============================================================================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="credadmin", description="Local account administration")
    parser.add_argument("--store", help="account file (overrides CREDADMIN_STORE_PATH)")
    sub = parser.add_subparsers(dest="command", required=True)

    def with_user(name, func, help_text, password=False):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("--user", "-u", required=True, help="user name")
        if password:
            p.add_argument("--password", "-p", help="password (prompted if omitted)")
        p.set_defaults(func=func)
        return p

    add = with_user("add", cmd_add, "create an account", password=True)
    add.add_argument("--full-name")
    add.add_argument("--email")
    with_user("change-password", cmd_change_password, "set a new password", password=True)
    with_user("login", cmd_login, "authenticate", password=True)
    with_user("enable", cmd_enable, "enable an account")
    with_user("disable", cmd_disable, "disable an account")
    with_user("delete", cmd_delete, "delete an account")
    with_user("query", cmd_query, "show one account")
    sub.add_parser("list", help="list all accounts").set_defaults(func=cmd_list)
    return parser


def main(argv: Optional[List[str]] = None, settings: Optional[Settings] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = settings or get_settings()
    if args.store:
        settings = settings.model_copy(update={"store_path": args.store})
    configure_logging(settings.log_level, settings.log_json)

    service = build_service(settings)
    try:
        return args.func(service, args)
    except NotFoundError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return EXIT_NOT_FOUND
    except (PasswordPolicyViolation, DuplicateAccountError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return EXIT_INVALID
    except AuthenticationError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return EXIT_REFUSED
    except StoreLoadError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return EXIT_STORAGE
    except CredAdminError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return EXIT_INVALID


if __name__ == "__main__":
    sys.exit(main())
