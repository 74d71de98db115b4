"""
CredAdmin - Local Credential Administration

Create, update, authenticate and disable user accounts kept in a single file.

Key Features:
- Salted scrypt credentials: the plaintext password is never stored
- Pluggable password policies, checked before any password is set
- Login bookkeeping: bad login count, last success/failure, password age
- One lock around the whole store: every call sees a consistent file

Components:
- account.py: Account record and its file representation
- crypto.py: Password hashing and verification
- policy.py: Password policy rules, validator and registry
- store.py: Credential store (JSON file, whole-file rewrite)
- auth.py: Authentication providers
- service.py: Administration operations used by the CLI
- cli.py: Command-line interface (uses built-in argparse)

Usage:
    python -m credadmin.cli add --user alice        # Create account
    python -m credadmin.cli login --user alice      # Authenticate
    python -m credadmin.cli list                    # List accounts
"""

__version__ = "0.1.0"
