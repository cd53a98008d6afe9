"""
BCH codec handle used by the fuzzy extractor.

This module wraps the bchlib library (a binding of the Linux kernel BCH
implementation) and presents it as a bit-oriented encode/decode primitive
with parameters fixed for the lifetime of the handle. The Galois field
arithmetic stays inside bchlib; this module only handles parameter
selection and the conversion between bit vectors and the packed bytes the
codec works on.

bchlib accepts whole-byte payloads only, so the data field is the largest
multiple of 8 bits that fits next to the ECC. The code is shortened by
fewer than 8 bits and a codeword is ``k + ecc_bits`` bits long.

bchlib reports ``ecc_bits`` as the degree of the generator polynomial,
which can be smaller than ``m * t``, but always exchanges ECC as
``ecc_bytes = ceil(m * t / 8)`` bytes. Only the leading ``ecc_bits`` bits
of that buffer carry information.

The codec corrects at most 64 errors per codeword for any field order.
"""

import math
import threading
from dataclasses import dataclass
from typing import Tuple

import bchlib
import numpy as np
import structlog

from . import config
from .exceptions import CodecError

logger = structlog.get_logger(__name__)


MIN_FIELD_ORDER = 5
MAX_FIELD_ORDER = 15

# Upper bound on t accepted by bchlib
MAX_CORRECTABLE_ERRORS = 64


@dataclass(frozen=True)
class BchParameters:
    """
    Parameters selecting a binary BCH code.

    Attributes:
        m: Galois field order. The full code length is 2^m - 1 bits.
        t: Number of bit errors the code corrects per codeword. Captures
            whose quantized bits differ in at most t positions reproduce
            the same secret.

    Security Note:
        t is the noise budget between two captures of the same face. A
        larger t accepts noisier captures but also accepts captures from
        people whose quantized features are closer than t bits.
    """

    m: int = config.BCH_M
    t: int = config.BCH_T

    def __post_init__(self) -> None:
        if not MIN_FIELD_ORDER <= self.m <= MAX_FIELD_ORDER:
            raise ValueError(
                f"m must be between {MIN_FIELD_ORDER} and {MAX_FIELD_ORDER}"
            )
        if self.t < 1:
            raise ValueError("t must be at least 1")
        if self.t > MAX_CORRECTABLE_ERRORS:
            raise ValueError(
                f"t={self.t} is too large: at most {MAX_CORRECTABLE_ERRORS} "
                "errors per codeword are supported"
            )
        if self.m * self.t >= self.n:
            raise ValueError(f"t={self.t} is too large for m={self.m}")

    @property
    def n(self) -> int:
        return (1 << self.m) - 1

    @classmethod
    def for_error_rate(cls, data_bits: int, error_rate: float) -> "BchParameters":
        """
        Pick the smallest field that carries ``data_bits`` with a given noise budget.

        The error budget is ``ceil(data_bits * error_rate)`` bits, at least 1.
        The first m whose code leaves room for ``data_bits`` data bits next
        to ``m * t`` ECC bits is chosen.

        Raises:
            CodecError: If the budget exceeds 64 bits or no field order up
                to 15 fits.
        """
        if data_bits <= 0:
            raise ValueError("data_bits must be positive")
        if not 0 <= error_rate < 1:
            raise ValueError("error_rate must be in [0, 1)")

        t = max(1, math.ceil(data_bits * error_rate))
        if t > MAX_CORRECTABLE_ERRORS:
            raise CodecError(
                f"Error budget of {t} bits exceeds the {MAX_CORRECTABLE_ERRORS} "
                "bits a single codeword can correct"
            )
        for m in range(MIN_FIELD_ORDER, MAX_FIELD_ORDER + 1):
            n = (1 << m) - 1
            if (n - data_bits) // m >= t:
                return cls(m=m, t=t)

        raise CodecError(
            f"No BCH layout for {data_bits} data bits at error rate {error_rate}"
        )


@dataclass(frozen=True)
class DecodeResult:
    """
    Output of a decode-and-correct call.

    Attributes:
        corrected: Data bits after correction. When ``failed`` is True this
            is the received data unchanged and should not be trusted.
        error_count: Number of bit errors the codec corrected (never negative).
        failed: True when the codec found more errors than it can correct.
    """

    corrected: np.ndarray
    error_count: int
    failed: bool


class BchCodec:
    """
    Owned handle to a BCH codec with fixed parameters.

    Create one handle at startup and pass it to whatever needs it. Helpers
    produced with one handle can only be reproduced with a handle built
    from the same parameters.

    Example:
        >>> codec = BchCodec(BchParameters(m=10, t=40))
        >>> ecc = codec.encode(data_bits)          # len(data_bits) == codec.k
        >>> result = codec.decode(noisy_data, ecc)
    """

    def __init__(self, params: BchParameters | None = None):
        self.params = params or BchParameters()
        try:
            self._bch = bchlib.BCH(t=self.params.t, m=self.params.m)
        except (RuntimeError, ValueError, TypeError) as e:
            raise CodecError(f"Failed to initialise BCH(m={self.params.m}, t={self.params.t}): {e}") from e

        self.ecc_bits = int(self._bch.ecc_bits)
        self.ecc_bytes = int(self._bch.ecc_bytes)
        self.k = (self.params.n - self.ecc_bits) // 8 * 8
        if self.k <= 0:
            raise CodecError(
                f"BCH(m={self.params.m}, t={self.params.t}) leaves no room for data"
            )
        self.codeword_bits = self.k + self.ecc_bits

        # decode() stores error locations that correct() reads back
        self._lock = threading.Lock()

        logger.debug(
            "BCH codec initialised",
            m=self.m,
            t=self.t,
            n=self.n,
            k=self.k,
            ecc_bits=self.ecc_bits,
        )

    @property
    def m(self) -> int:
        return self.params.m

    @property
    def t(self) -> int:
        return self.params.t

    @property
    def n(self) -> int:
        return self.params.n

    def _check_length(self, bits: np.ndarray, expected: int, label: str) -> np.ndarray:
        bits = np.asarray(bits, dtype=np.uint8)
        if bits.ndim != 1 or bits.size != expected:
            raise CodecError(f"Expected {expected} {label} bits, got {bits.size}")
        return bits

    def encode(self, data_bits: np.ndarray) -> np.ndarray:
        """
        Compute the ECC bits for ``k`` data bits.

        Raises:
            CodecError: If the input has the wrong length or the codec fails.
        """
        data_bits = self._check_length(data_bits, self.k, "data")
        data = np.packbits(data_bits).tobytes()
        try:
            ecc = self._bch.encode(data)
        except (RuntimeError, ValueError, TypeError) as e:
            raise CodecError(f"BCH encode failed: {e}") from e

        return np.unpackbits(np.frombuffer(bytes(ecc), dtype=np.uint8))[: self.ecc_bits]

    def decode(self, data_bits: np.ndarray, ecc_bits: np.ndarray) -> DecodeResult:
        """
        Decode and correct a received (data, ecc) pair.

        An uncorrectable word is reported through ``DecodeResult.failed``,
        not raised.

        Raises:
            CodecError: If the inputs have the wrong length or the codec fails.
        """
        data_bits = self._check_length(data_bits, self.k, "data")
        ecc_bits = self._check_length(ecc_bits, self.ecc_bits, "ECC")

        data = bytearray(np.packbits(data_bits).tobytes())
        ecc = bytearray(np.packbits(ecc_bits).tobytes().ljust(self.ecc_bytes, b"\x00"))

        with self._lock:
            try:
                nerr = self._bch.decode(data, ecc)
                if nerr > 0:
                    self._bch.correct(data, ecc)
            except (RuntimeError, ValueError, TypeError) as e:
                raise CodecError(f"BCH decode failed: {e}") from e

        corrected = np.unpackbits(np.frombuffer(bytes(data), dtype=np.uint8))[: self.k]
        return DecodeResult(corrected=corrected, error_count=max(0, nerr), failed=nerr < 0)

    def split(self, codeword: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """Split a codeword into its data and ECC parts."""
        codeword = self._check_length(codeword, self.codeword_bits, "codeword")
        return codeword[: self.k], codeword[self.k:]
