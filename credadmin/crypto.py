"""
CredAdmin - Cryptography Module

All password transformation lives in this one file. Stored credentials are
never the plaintext: a password is run through scrypt with a fresh random
salt, and the cost parameters, salt and derived key are encoded together in a
single string so verification does not depend on current configuration.

Credential format:
    $scrypt$n=<N>,r=<r>,p=<p>$<base64 salt>$<base64 key>

Why scrypt?
    - Memory-hard: expensive for attackers with GPUs
    - Salted per password: identical passwords give different credentials
"""

import base64
import hmac
import os
from typing import NamedTuple

from cryptography.hazmat.primitives.kdf.scrypt import Scrypt


# =============================================================================
# Configuration
# =============================================================================

SCHEME = "scrypt"
SALT_SIZE = 16           # 128-bit salt, new for every password
KEY_SIZE = 32            # 256-bit derived key

# scrypt parameters (tuned for ~250ms on modern CPU)
# N = CPU/memory cost (power of 2), r = block size, p = parallelization
SCRYPT_N = 2**17         # 131072 - uses ~128 MB RAM with r=8
SCRYPT_R = 8
SCRYPT_P = 1


class CredentialParams(NamedTuple):
    """Decoded parts of a stored credential."""
    n: int
    r: int
    p: int
    salt: bytes
    key: bytes


# =============================================================================
# Key Derivation
# =============================================================================

def derive_key(password: str, salt: bytes, n: int = SCRYPT_N,
               r: int = SCRYPT_R, p: int = SCRYPT_P) -> bytes:
    """
    Derive a key from a password using scrypt.

    Args:
        password: Plaintext password
        salt: Random salt (stored with the credential, NOT secret)
        n, r, p: scrypt cost parameters

    Returns:
        32-byte derived key
    """
    kdf = Scrypt(salt=salt, length=KEY_SIZE, n=n, r=r, p=p)
    return kdf.derive(password.encode('utf-8'))


def generate_salt() -> bytes:
    """Return a fresh random salt from the OS CSPRNG."""
    return os.urandom(SALT_SIZE)


# =============================================================================
# Credential Encoding
# =============================================================================

def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode('ascii')


def encode_credential(params: CredentialParams) -> str:
    return "${}$n={},r={},p={}${}${}".format(
        SCHEME, params.n, params.r, params.p, _b64(params.salt), _b64(params.key)
    )


def decode_credential(credential: str) -> CredentialParams:
    """
    Split an encoded credential into its parameters.

    Raises:
        ValueError: If the credential is not in the expected format
    """
    parts = credential.split('$')
    # Leading '$' yields an empty first element
    if len(parts) != 5 or parts[0] != '' or parts[1] != SCHEME:
        raise ValueError("Unrecognised credential format")
    try:
        cost = dict(item.split('=', 1) for item in parts[2].split(','))
        n, r, p = int(cost['n']), int(cost['r']), int(cost['p'])
        salt = base64.b64decode(parts[3], validate=True)
        key = base64.b64decode(parts[4], validate=True)
    except (KeyError, ValueError) as exc:
        raise ValueError("Malformed credential parameters") from exc
    return CredentialParams(n, r, p, salt, key)


# =============================================================================
# Hash / Verify
# =============================================================================

def hash_password(password: str, n: int = SCRYPT_N, r: int = SCRYPT_R,
                  p: int = SCRYPT_P) -> str:
    """
    Transform a password into a storable credential.

    A new random salt is generated on every call, so hashing the same
    password twice never produces the same credential.

    Returns:
        Encoded credential string
    """
    salt = generate_salt()
    key = derive_key(password, salt, n, r, p)
    return encode_credential(CredentialParams(n, r, p, salt, key))


def verify_password(password: str, credential: str) -> bool:
    """
    Check a plaintext password against a stored credential.

    The password is re-derived with the stored salt and cost parameters and
    compared in constant time.

    Raises:
        ValueError: If the stored credential is malformed
    """
    params = decode_credential(credential)
    candidate = derive_key(password, params.salt, params.n, params.r, params.p)
    return constant_compare(candidate, params.key)


# =============================================================================
# Helpers
# =============================================================================

def constant_compare(a: bytes, b: bytes) -> bool:
    """
    Compare two byte strings in constant time.

    Normal comparison (a == b) returns on the first mismatch, which lets an
    attacker time how many bytes matched.
    """
    return hmac.compare_digest(a, b)
