"""
Distance quantization and bit-vector helpers.

A face capture arrives as a vector of 316 real-valued landmark distances.
The quantizer rescales that vector against its own minimum and maximum and
emits a fixed number of bits per value, most significant bit first. The
rescaling is per vector, never across frames, so a uniform change of scale
between captures does not move the bits.

Bit vectors are 1-D numpy arrays of dtype uint8 holding 0/1 values. When
persisted or hashed they are written as ASCII "0"/"1" strings.
"""

from typing import Sequence

import numpy as np

from .exceptions import InvalidVectorLengthError


# Number of distances produced per frame by the feature pipeline
DISTANCE_COUNT = 316

DEFAULT_BITS_PER_VALUE = 8

_ZERO = ord("0")


def _as_vector(distances) -> np.ndarray:
    values = np.asarray(distances, dtype=np.float64)
    if values.ndim != 1 or values.size != DISTANCE_COUNT:
        raise InvalidVectorLengthError(DISTANCE_COUNT, int(values.size))
    return values


def is_valid_distance_vector(distances) -> bool:
    """Return True if ``distances`` holds exactly 316 finite values."""
    try:
        values = np.asarray(distances, dtype=np.float64)
    except (TypeError, ValueError):
        return False
    return (
        values.ndim == 1
        and values.size == DISTANCE_COUNT
        and bool(np.all(np.isfinite(values)))
    )


def quantize_levels(distances, bits_per_value: int = DEFAULT_BITS_PER_VALUE) -> np.ndarray:
    """
    Map a distance vector to integer levels in [0, 2^bits_per_value - 1].

    A vector with no spread (max == min) carries no information and maps
    every value to the mid level.

    Raises:
        InvalidVectorLengthError: If the vector does not hold 316 values.
        ValueError: If a value is not finite or bits_per_value is out of range.
    """
    if not 1 <= bits_per_value <= 16:
        raise ValueError("bits_per_value must be between 1 and 16")

    values = _as_vector(distances)
    if not np.all(np.isfinite(values)):
        raise ValueError("Distance vector contains non-finite values")

    lo = values.min()
    hi = values.max()
    if hi == lo:
        return np.full(values.size, 1 << (bits_per_value - 1), dtype=np.int64)

    top = (1 << bits_per_value) - 1
    scaled = (values - lo) / (hi - lo) * top
    # Round half up
    return np.floor(scaled + 0.5).astype(np.int64)


def quantize(distances, bits_per_value: int = DEFAULT_BITS_PER_VALUE) -> np.ndarray:
    """
    Quantize a distance vector into a bit vector.

    Args:
        distances: Sequence of 316 finite distances for one frame.
        bits_per_value: Bits emitted per distance (default 8).

    Returns:
        Bit vector of length 316 * bits_per_value, each value written
        most significant bit first, in input order.

    Raises:
        InvalidVectorLengthError: If the vector does not hold 316 values.
        ValueError: If a value is not finite or bits_per_value is out of range.
    """
    levels = quantize_levels(distances, bits_per_value)
    shifts = np.arange(bits_per_value - 1, -1, -1, dtype=np.int64)
    return ((levels[:, None] >> shifts) & 1).astype(np.uint8).ravel()


def dequantize(levels, lo: float, hi: float, bits_per_value: int = DEFAULT_BITS_PER_VALUE) -> np.ndarray:
    """Invert the affine map of :func:`quantize_levels` for a known range."""
    top = (1 << bits_per_value) - 1
    return lo + np.asarray(levels, dtype=np.float64) / top * (hi - lo)


def average_distances(frames: Sequence) -> np.ndarray:
    """
    Average several distance vectors element-wise.

    Rows whose length differs from the first row are ignored.

    Raises:
        InvalidVectorLengthError: If no frame is given or the first row is
            not a full distance vector.
    """
    if not frames:
        raise InvalidVectorLengthError(DISTANCE_COUNT, 0)

    first = np.asarray(frames[0], dtype=np.float64).ravel()
    if first.size != DISTANCE_COUNT:
        raise InvalidVectorLengthError(DISTANCE_COUNT, int(first.size))

    rows = [first]
    for frame in frames[1:]:
        row = np.asarray(frame, dtype=np.float64).ravel()
        if row.size == first.size:
            rows.append(row)

    return np.mean(np.vstack(rows), axis=0)


def align_bits(bits: np.ndarray, length: int) -> np.ndarray:
    """Zero-pad on the right or truncate on the right to ``length`` bits."""
    bits = np.asarray(bits, dtype=np.uint8)
    if bits.size == length:
        return bits
    if bits.size > length:
        return bits[:length]
    return np.concatenate([bits, np.zeros(length - bits.size, dtype=np.uint8)])


def xor_bits(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """XOR two bit vectors of equal length."""
    a = np.asarray(a, dtype=np.uint8)
    b = np.asarray(b, dtype=np.uint8)
    if a.size != b.size:
        raise ValueError(f"Bit vector length mismatch: {a.size} != {b.size}")
    return np.bitwise_xor(a, b)


def bits_to_string(bits: np.ndarray) -> str:
    """Render a bit vector as an ASCII "0"/"1" string."""
    return (np.asarray(bits, dtype=np.uint8) + _ZERO).astype(np.uint8).tobytes().decode("ascii")


def bits_from_string(text: str) -> np.ndarray:
    """
    Parse an ASCII "0"/"1" string into a bit vector.

    Raises:
        ValueError: If the string contains any other character.
    """
    try:
        raw = text.encode("ascii")
    except UnicodeEncodeError as e:
        raise ValueError("Bit string must contain only '0' and '1'") from e

    bits = np.frombuffer(raw, dtype=np.uint8) - _ZERO
    if bits.size and bits.max() > 1:
        raise ValueError("Bit string must contain only '0' and '1'")
    return bits.astype(np.uint8)
