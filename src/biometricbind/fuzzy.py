"""
BCH code-offset fuzzy extractor.

This module implements the Gen (generate) and Rep (reproduce) operations
of a code-offset fuzzy extractor on top of a BCH code:

    Gen(w):
        s      <- random k bits
        c      =  s || ECC(s)
        helper =  c XOR w
        output (helper, SHA-256(s))

    Rep(w', helper):
        c'     =  helper XOR w'  =  c XOR (w XOR w')
        s'     =  Decode(c')
        output SHA-256(s')

When w and w' differ in at most t bit positions the decoder removes the
difference and s' == s. Captures from a different person differ in far
more positions and decode to an unrelated word.

Biometric bits are aligned to the codeword length by zero-padding or
truncating on the right. No other alignment is applied.

Security Note:
    Only the helper and the secret hash are kept. The helper is the
    codeword masked by the biometric bits and the secret is never stored.
    A fresh secret is drawn for every call to generate(), so secrets are
    not shared between enrolled frames.

References:
    Dodis et al., "Fuzzy Extractors: How to Generate Strong Keys from
    Biometrics and Other Noisy Data" (2004, 2008)

    Juels and Wattenberg, "A Fuzzy Commitment Scheme" (1999)
"""

from dataclasses import dataclass
from typing import Tuple

import numpy as np

from .bch import BchCodec
from .crypto import constant_time_equal, random_bytes, sha256_hex
from .exceptions import InvalidEnrollmentError
from .quantize import align_bits, bits_to_string, xor_bits


PREVIEW_LENGTH = 16


@dataclass(frozen=True)
class Reproduction:
    """
    Result of reproducing a secret from a capture and a stored helper.

    Attributes:
        recovered_hash: SHA-256 of the decoded secret bits (hex).
        hash_match: Whether ``recovered_hash`` equals the stored secret hash.
        error_count: Bit errors corrected by the codec, for diagnostics only.
        decode_failed: True when the codec could not correct the word; the
            hash is still computed and simply does not match.
    """

    recovered_hash: str
    hash_match: bool
    error_count: int
    decode_failed: bool

    @property
    def recovered_hash_preview(self) -> str:
        return self.recovered_hash[:PREVIEW_LENGTH] + "..."


class BchFuzzyExtractor:
    """
    Code-offset fuzzy extractor over an owned BCH codec handle.

    Example:
        >>> extractor = BchFuzzyExtractor(BchCodec(BchParameters(m=10, t=40)))
        >>> helper, secret_hash = extractor.generate(bits)
        >>> # Later, with bits from a similar capture:
        >>> result = extractor.reproduce(noisy_bits, helper, secret_hash)
        >>> assert result.hash_match  # if the captures are close enough
    """

    def __init__(self, codec: BchCodec | None = None):
        """
        Initialize the extractor.

        Args:
            codec: BCH codec handle. A handle with the configured default
                parameters is built if none is given.
        """
        self.codec = codec or BchCodec()

    @property
    def helper_bits(self) -> int:
        """Length of helpers produced and accepted by this extractor."""
        return self.codec.codeword_bits

    def _random_secret(self) -> np.ndarray:
        k = self.codec.k
        raw = np.frombuffer(random_bytes((k + 7) // 8), dtype=np.uint8)
        return np.unpackbits(raw)[:k]

    def generate(self, biometric_bits: np.ndarray) -> Tuple[np.ndarray, str]:
        """
        Bind a fresh random secret to a capture (Gen operation).

        Args:
            biometric_bits: Quantized bits of one capture.

        Returns:
            A tuple of (helper, secret_hash) where:
                - helper: Bit vector of ``helper_bits`` bits, safe to store
                - secret_hash: SHA-256 of the secret bit string (hex)

        Raises:
            ValueError: If the biometric input is empty.
            RandomSourceError: If the secret cannot be drawn.
            CodecError: If the codec fails to encode.
        """
        biometric_bits = np.asarray(biometric_bits, dtype=np.uint8)
        if biometric_bits.size == 0:
            raise ValueError("Biometric input cannot be empty")

        secret_bits = self._random_secret()
        codeword = np.concatenate([secret_bits, self.codec.encode(secret_bits)])

        aligned = align_bits(biometric_bits, codeword.size)
        helper = xor_bits(codeword, aligned)
        secret_hash = sha256_hex(bits_to_string(secret_bits))

        return helper, secret_hash

    def reproduce(
        self,
        biometric_bits: np.ndarray,
        helper: np.ndarray,
        secret_hash: str,
    ) -> Reproduction:
        """
        Recover the secret hash from a capture and a stored helper (Rep operation).

        The decoded secret is always hashed, even if the codec reports an
        uncorrectable word. Acceptance depends only on the hash comparison.

        Args:
            biometric_bits: Quantized bits of the new capture.
            helper: Helper produced by :meth:`generate`.
            secret_hash: Secret hash stored alongside the helper.

        Returns:
            A :class:`Reproduction` with the recovered hash, whether it
            matches and the codec's error count.

        Raises:
            InvalidEnrollmentError: If the helper length does not match
                this extractor's codec.
            CodecError: If the codec fails.
        """
        helper = np.asarray(helper, dtype=np.uint8)
        if helper.size != self.helper_bits:
            raise InvalidEnrollmentError(
                f"Helper length mismatch: expected {self.helper_bits} bits, "
                f"got {helper.size} bits"
            )

        aligned = align_bits(np.asarray(biometric_bits, dtype=np.uint8), helper.size)
        data, ecc = self.codec.split(xor_bits(helper, aligned))
        decoded = self.codec.decode(data, ecc)

        recovered_hash = sha256_hex(bits_to_string(decoded.corrected))
        return Reproduction(
            recovered_hash=recovered_hash,
            hash_match=constant_time_equal(recovered_hash, secret_hash),
            error_count=decoded.error_count,
            decode_failed=decoded.failed,
        )
