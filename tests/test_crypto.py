"""Tests for hashing, randomness and the key-binding chain."""

import pytest

from biometricbind.crypto import (
    KEY_BYTES,
    SessionBinding,
    bind_session,
    compute_token,
    constant_time_equal,
    generate_salt,
    hex_xor,
    random_bytes,
    random_hex,
    recover_session_key,
    recompute_token,
    sha256_hex,
    token_matches,
)
from biometricbind.exceptions import HexLengthMismatchError, RandomSourceError


def fail_token_bytes(n):
    raise OSError("entropy source unavailable")


class TestHashing:
    """Test SHA-256 helpers."""

    def test_known_vector(self):
        assert sha256_hex("abc") == (
            "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"
        )

    def test_hashes_text_of_bit_strings(self):
        """Bit strings are hashed as text, not as packed bytes."""
        assert sha256_hex("0101") != sha256_hex("01010")
        assert len(sha256_hex("0101")) == 64

    def test_constant_time_equal(self):
        assert constant_time_equal("abcd", "abcd")
        assert not constant_time_equal("abcd", "abce")
        assert not constant_time_equal("abcd", "abc")


class TestHexXor:
    """Test hex XOR."""

    def test_known_value(self):
        assert hex_xor("ff00", "0f0f") == "f00f"

    def test_self_inverse(self):
        a = random_hex()
        b = random_hex()
        assert hex_xor(hex_xor(a, b), b) == a

    def test_xor_with_self_is_zero(self):
        a = random_hex()
        assert hex_xor(a, a) == "00" * KEY_BYTES

    def test_output_is_lowercase(self):
        assert hex_xor("AB", "00") == "ab"

    def test_length_mismatch(self):
        with pytest.raises(HexLengthMismatchError):
            hex_xor("abcd", "ab")

    def test_invalid_hex(self):
        with pytest.raises(ValueError):
            hex_xor("zz", "00")


class TestRandomness:
    """Test the CSPRNG wrappers."""

    def test_random_bytes_length(self):
        assert len(random_bytes(17)) == 17

    def test_random_hex_length(self):
        assert len(random_hex()) == 2 * KEY_BYTES
        assert len(random_hex(4)) == 8

    def test_salts_differ(self):
        assert generate_salt() != generate_salt()

    def test_random_failure_raises(self, monkeypatch):
        monkeypatch.setattr("biometricbind.crypto.secrets.token_bytes", fail_token_bytes)
        with pytest.raises(RandomSourceError) as exc_info:
            random_bytes(32)
        assert isinstance(exc_info.value.__cause__, OSError)

    def test_no_fallback_on_failure(self, monkeypatch):
        monkeypatch.setattr("biometricbind.crypto.secrets.token_bytes", fail_token_bytes)
        with pytest.raises(RandomSourceError):
            generate_salt()


class TestKeyBinding:
    """Test the session key-binding chain."""

    def test_binding_fields(self):
        secret_hash = sha256_hex("0110")
        salt = generate_salt()
        binding = bind_session(secret_hash, salt)

        assert isinstance(binding, SessionBinding)
        assert binding.salt == salt
        assert len(binding.session_key_xor_hash) == 64
        assert len(binding.token) == 64

    def test_recovered_key_reproduces_token(self):
        secret_hash = sha256_hex("0110")
        salt = generate_salt()
        binding = bind_session(secret_hash, salt)

        session_key = recover_session_key(secret_hash, salt, binding.session_key_xor_hash)
        assert compute_token(session_key, secret_hash) == binding.token
        assert recompute_token(secret_hash, salt, binding.session_key_xor_hash) == binding.token
        assert token_matches(secret_hash, salt, binding.session_key_xor_hash, binding.token)

    def test_wrong_hash_does_not_reproduce_token(self):
        salt = generate_salt()
        binding = bind_session(sha256_hex("0110"), salt)

        assert not token_matches(
            sha256_hex("0111"), salt, binding.session_key_xor_hash, binding.token
        )

    def test_wrong_salt_does_not_reproduce_token(self):
        secret_hash = sha256_hex("0110")
        binding = bind_session(secret_hash, generate_salt())

        assert not token_matches(
            secret_hash, generate_salt(), binding.session_key_xor_hash, binding.token
        )

    def test_fresh_session_key_per_binding(self):
        secret_hash = sha256_hex("0110")
        salt = generate_salt()
        first = bind_session(secret_hash, salt)
        second = bind_session(secret_hash, salt)

        assert first.session_key_xor_hash != second.session_key_xor_hash
        assert first.token != second.token

    def test_token_is_hash_of_key_then_secret_hash(self):
        session_key = "11" * KEY_BYTES
        secret_hash = "22" * KEY_BYTES
        assert compute_token(session_key, secret_hash) == sha256_hex(session_key + secret_hash)

    def test_salt_length_mismatch(self):
        with pytest.raises(HexLengthMismatchError):
            bind_session(sha256_hex("0110"), "abcd")

    def test_random_failure_during_binding(self, monkeypatch):
        salt = generate_salt()
        monkeypatch.setattr("biometricbind.crypto.secrets.token_bytes", fail_token_bytes)
        with pytest.raises(RandomSourceError):
            bind_session(sha256_hex("0110"), salt)
