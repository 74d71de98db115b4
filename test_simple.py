"""
CredAdmin - Self-Tests

Run with: python test_simple.py   (or under pytest)

Walks the main account lifecycle end to end against a throw-away file:
- Password hashing is salted and one-way
- Policy rejects short and empty passwords
- Wrong passwords bump the bad login count; a good one resets it
- A rejected password change leaves the stored credential alone
- State survives a reload from disk
- Deleted accounts are gone
"""

import os
import tempfile

from credadmin import crypto
from credadmin.auth import LocalAuthenticationProvider
from credadmin.errors import InvalidCredentialError, PasswordPolicyViolation
from credadmin.policy import PasswordPolicyValidator
from credadmin.service import AccountService
from credadmin.store import CredentialStore

FAST = {"n": 2**10, "r": 8, "p": 1}


def test_hashing():
    """Test credential transform and verification."""
    print("Testing Hashing...")

    cred1 = crypto.hash_password("longenough1", **FAST)
    cred2 = crypto.hash_password("longenough1", **FAST)

    # Fresh salt every time
    assert cred1 != cred2, "Same password must not give same credential"
    assert "longenough1" not in cred1, "Plaintext must not appear in credential"
    print("  [OK] Credentials are salted")

    assert crypto.verify_password("longenough1", cred1)
    assert crypto.verify_password("longenough1", cred2)
    assert not crypto.verify_password("wrongpassword", cred1)
    print("  [OK] Verification works")

    try:
        crypto.verify_password("longenough1", "not-a-credential")
        assert False, "Malformed credential should be rejected"
    except ValueError:
        print("  [OK] Malformed credential rejected")


def test_policy():
    """Test the minimum length rule."""
    print("Testing Policy...")

    validator = PasswordPolicyValidator.from_config({"minLength": 8})
    assert validator.validate("longenough1") == []
    assert validator.validate("12345678") == []
    assert validator.validate("short") == [
        "The password length of 5 is less than the required length of 8."
    ]
    assert validator.validate("   ") == ["Empty password supplied."]
    assert validator.validate(None) == ["Empty password supplied."]
    print("  [OK] Minimum length enforced")


def test_account_lifecycle():
    """Create, log in, fail, change password, reload and delete an account."""
    print("Testing Account Lifecycle...")

    with tempfile.TemporaryDirectory() as tmp:
        path = os.path.join(tmp, "account-info.json")
        validator = PasswordPolicyValidator.from_config({"minLength": 8})
        store = CredentialStore(path)
        service = AccountService(store, LocalAuthenticationProvider(validator, **FAST))

        # Create
        alice = service.create_account("alice", "longenough1")
        assert alice.id == 1
        assert alice.enabled and alice.bad_login_count == 0
        assert len(store.list()) == 1
        print("  [OK] Account created")

        # Three bad logins
        for _ in range(3):
            try:
                service.authenticate("alice", "wrong-password")
                assert False, "Wrong password must raise"
            except InvalidCredentialError:
                pass
        alice = store.find_by_user_name("alice")
        assert alice.bad_login_count == 3
        assert alice.last_failed_login_at is not None
        assert alice.enabled, "No automatic disable"
        print("  [OK] Bad logins counted")

        # Good login resets the counter
        result = service.authenticate("alice", "longenough1")
        assert result.user_name == "alice"
        assert store.find_by_user_name("alice").bad_login_count == 0
        print("  [OK] Successful login resets counter")

        # Rejected password change
        before = store.find_by_user_name("alice")
        try:
            service.change_password("alice", "short")
            assert False, "Short password must be rejected"
        except PasswordPolicyViolation as e:
            assert len(e.messages) == 1
        after = store.find_by_user_name("alice")
        assert after.credential == before.credential
        assert after.credential_changed_at == before.credential_changed_at
        print("  [OK] Rejected change leaves credential alone")

        # Reload from disk
        store.reset()
        assert store.find_by_user_name("alice") == after
        print("  [OK] State survives reload")

        # Delete
        assert service.delete_account("alice")
        assert store.find_by_user_name("alice") is None
        store.reset()
        assert store.find_by_user_name("alice") is None
        print("  [OK] Account deleted")


if __name__ == "__main__":
    import sys

    import pytest

    # -s keeps the [OK] progress lines visible
    sys.exit(pytest.main([__file__, "-s", "-q"]))
