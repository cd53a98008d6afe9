"""
Hashing, secure randomness and the session key-binding chain.

The fuzzy extractor alone would leave the SHA-256 of each enrolled secret
in the store. The key-binding chain ties every stored record to a per-frame
session key that is never persisted, so that the stored hash is not on its
own a reusable credential:

    k1    = secretHash XOR salt
    K2    = k1 XOR K                  (K: fresh 256-bit session key)
    token = SHA-256(hex(K) || secretHash)

Only ``salt``, ``K2`` and ``token`` are stored. Given a candidate secret
hash the session key is recovered as ``(secretHash XOR salt) XOR K2`` and
the token recomputed; it matches only for the enrolled secret.

All values are lowercase hex strings of 32 bytes. Hashes are taken over
the UTF-8 text of bit strings or concatenated hex strings.
"""

import hashlib
import hmac
import secrets
from dataclasses import dataclass

from .exceptions import HexLengthMismatchError, RandomSourceError


# Size of salts and session keys in bytes (256 bits)
KEY_BYTES = 32


def random_bytes(n: int) -> bytes:
    """
    Draw ``n`` bytes from the operating system CSPRNG.

    Raises:
        RandomSourceError: If the entropy source is unavailable.
    """
    try:
        return secrets.token_bytes(n)
    except (OSError, NotImplementedError) as e:
        raise RandomSourceError(f"Secure random source unavailable: {e}") from e


def random_hex(n_bytes: int = KEY_BYTES) -> str:
    """Draw ``n_bytes`` random bytes and return them as lowercase hex."""
    return random_bytes(n_bytes).hex()


def sha256_hex(text: str) -> str:
    """SHA-256 over the UTF-8 encoding of ``text``, as lowercase hex."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def constant_time_equal(a: str, b: str) -> bool:
    """Compare two strings without leaking the position of the first difference."""
    return hmac.compare_digest(a.encode("utf-8"), b.encode("utf-8"))


def hex_xor(a: str, b: str) -> str:
    """
    XOR two hex strings byte by byte.

    Args:
        a: Hex string.
        b: Hex string of the same length as ``a``.

    Returns:
        Lowercase hex string of the same length.

    Raises:
        HexLengthMismatchError: If the operands differ in length.
        ValueError: If either operand is not valid hex.
    """
    if len(a) != len(b):
        raise HexLengthMismatchError(
            f"Hex operands differ in length: {len(a)} != {len(b)}"
        )

    left = bytes.fromhex(a)
    right = bytes.fromhex(b)
    if len(left) != len(right):
        raise HexLengthMismatchError(
            f"Hex operands decode to different lengths: {len(left)} != {len(right)}"
        )

    return bytes(x ^ y for x, y in zip(left, right)).hex()


def generate_salt() -> str:
    """Draw the 256-bit salt shared by every frame of one enrollment session."""
    return random_hex(KEY_BYTES)


@dataclass(frozen=True)
class SessionBinding:
    """
    The persisted part of the key-binding chain for one enrolled frame.

    Attributes:
        salt: Enrollment-session salt (hex).
        session_key_xor_hash: K2 = (secretHash XOR salt) XOR K (hex).
        token: SHA-256(hex(K) || secretHash) (hex).
    """

    salt: str
    session_key_xor_hash: str
    token: str


def compute_token(session_key: str, secret_hash: str) -> str:
    return sha256_hex(session_key + secret_hash)


def bind_session(secret_hash: str, salt: str) -> SessionBinding:
    """
    Bind a fresh session key to an enrolled secret hash.

    The session key and the intermediate ``k1`` are dropped once the
    binding is computed.

    Raises:
        RandomSourceError: If the session key cannot be drawn.
        HexLengthMismatchError: If ``secret_hash`` and ``salt`` differ in length.
    """
    session_key = random_hex(KEY_BYTES)
    k1 = hex_xor(secret_hash, salt)
    k2 = hex_xor(k1, session_key)
    return SessionBinding(
        salt=salt,
        session_key_xor_hash=k2,
        token=compute_token(session_key, secret_hash),
    )


def recover_session_key(secret_hash: str, salt: str, session_key_xor_hash: str) -> str:
    """Recover K from a candidate secret hash and the stored salt and K2."""
    k1 = hex_xor(secret_hash, salt)
    return hex_xor(k1, session_key_xor_hash)


def recompute_token(secret_hash: str, salt: str, session_key_xor_hash: str) -> str:
    """Recompute the token a record would carry for ``secret_hash``."""
    session_key = recover_session_key(secret_hash, salt, session_key_xor_hash)
    return compute_token(session_key, secret_hash)


def token_matches(secret_hash: str, salt: str, session_key_xor_hash: str, token: str) -> bool:
    """Return True if ``secret_hash`` reproduces the stored ``token``."""
    return constant_time_equal(
        recompute_token(secret_hash, salt, session_key_xor_hash), token
    )
