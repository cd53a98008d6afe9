"""Tests for the BCH fuzzy extractor."""

import numpy as np
import pytest

from biometricbind.exceptions import InvalidEnrollmentError
from biometricbind.fuzzy import BchFuzzyExtractor, Reproduction
from biometricbind.quantize import quantize

from conftest import flip_bits


def random_bits(length: int, seed: int = 0) -> np.ndarray:
    """Random bits simulating a quantized capture."""
    return np.random.default_rng(seed).integers(0, 2, length, dtype=np.uint8)


class TestGenerate:
    """Test the Gen operation."""

    def test_generate_shapes(self, small_extractor):
        helper, secret_hash = small_extractor.generate(random_bits(small_extractor.helper_bits))

        assert helper.size == small_extractor.helper_bits
        assert set(np.unique(helper)) <= {0, 1}
        assert len(secret_hash) == 64
        assert secret_hash == secret_hash.lower()
        int(secret_hash, 16)

    def test_fresh_secret_per_call(self, small_extractor):
        bits = random_bits(small_extractor.helper_bits)
        helper1, hash1 = small_extractor.generate(bits)
        helper2, hash2 = small_extractor.generate(bits)

        assert hash1 != hash2
        assert not np.array_equal(helper1, helper2)

    def test_empty_biometric_raises(self, small_extractor):
        with pytest.raises(ValueError, match="empty"):
            small_extractor.generate(np.array([], dtype=np.uint8))

    def test_helper_length_is_codeword_length(self, small_extractor, small_codec):
        assert small_extractor.helper_bits == small_codec.k + small_codec.ecc_bits


class TestReproduce:
    """Test the Rep operation."""

    def test_same_bits_reproduce(self, small_extractor):
        bits = random_bits(small_extractor.helper_bits, seed=1)
        helper, secret_hash = small_extractor.generate(bits)

        result = small_extractor.reproduce(bits, helper, secret_hash)

        assert isinstance(result, Reproduction)
        assert result.hash_match
        assert result.recovered_hash == secret_hash
        assert result.error_count == 0
        assert not result.decode_failed

    def test_reproduce_within_t_errors(self, small_extractor):
        bits = random_bits(small_extractor.helper_bits, seed=2)
        helper, secret_hash = small_extractor.generate(bits)

        t = small_extractor.codec.t
        positions = np.random.default_rng(3).choice(bits.size, t, replace=False)
        result = small_extractor.reproduce(flip_bits(bits, positions), helper, secret_hash)

        assert result.hash_match
        assert result.error_count == t

    def test_reproduce_beyond_t_errors_fails(self, small_extractor):
        bits = random_bits(small_extractor.helper_bits, seed=4)
        helper, secret_hash = small_extractor.generate(bits)

        # All flips in the data part so the secret itself is damaged
        t = small_extractor.codec.t
        positions = np.random.default_rng(5).choice(small_extractor.codec.k, t + 1, replace=False)
        result = small_extractor.reproduce(flip_bits(bits, positions), helper, secret_hash)

        assert not result.hash_match
        assert result.recovered_hash != secret_hash

    def test_unrelated_bits_fail(self, small_extractor):
        helper, secret_hash = small_extractor.generate(random_bits(small_extractor.helper_bits, seed=6))

        result = small_extractor.reproduce(
            random_bits(small_extractor.helper_bits, seed=7), helper, secret_hash
        )
        assert not result.hash_match

    def test_hash_always_computed(self, small_extractor):
        """A decode failure still yields a recovered hash."""
        helper, secret_hash = small_extractor.generate(random_bits(small_extractor.helper_bits, seed=8))

        result = small_extractor.reproduce(
            random_bits(small_extractor.helper_bits, seed=9), helper, secret_hash
        )
        assert len(result.recovered_hash) == 64
        assert result.error_count >= 0

    def test_helper_wrong_length(self, small_extractor):
        bits = random_bits(small_extractor.helper_bits)
        helper, secret_hash = small_extractor.generate(bits)

        with pytest.raises(InvalidEnrollmentError, match="Helper length mismatch"):
            small_extractor.reproduce(bits, helper[:-1], secret_hash)

    def test_hash_preview(self, small_extractor):
        bits = random_bits(small_extractor.helper_bits)
        helper, secret_hash = small_extractor.generate(bits)
        result = small_extractor.reproduce(bits, helper, secret_hash)

        assert result.recovered_hash_preview == secret_hash[:16] + "..."


class TestAlignment:
    """Test padding and truncation of biometric bits to the codeword length."""

    def test_long_input_is_truncated(self, small_extractor):
        long_bits = random_bits(small_extractor.helper_bits + 100, seed=10)
        helper, secret_hash = small_extractor.generate(long_bits)

        # Bits past the codeword length are ignored
        tail_changed = long_bits.copy()
        tail_changed[small_extractor.helper_bits:] ^= 1
        assert small_extractor.reproduce(tail_changed, helper, secret_hash).hash_match

    def test_short_input_is_padded(self, small_extractor):
        short_bits = random_bits(small_extractor.helper_bits // 2, seed=11)
        helper, secret_hash = small_extractor.generate(short_bits)

        result = small_extractor.reproduce(short_bits, helper, secret_hash)
        assert result.hash_match
        assert result.error_count == 0

    def test_quantized_capture(self, small_extractor, base_face):
        bits = quantize(base_face)
        helper, secret_hash = small_extractor.generate(bits)

        assert small_extractor.reproduce(bits, helper, secret_hash).hash_match


class TestDefaultExtractor:

    def test_default_codec(self):
        extractor = BchFuzzyExtractor()
        assert extractor.codec.m == 12
        assert extractor.codec.t == 64
        assert extractor.helper_bits >= 316 * 8
