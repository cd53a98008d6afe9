"""
Custom exceptions for the biometricbind library.

Every failure that aborts an enrollment or verification call is surfaced
as one of these types so the host application can tell a bad frame batch
from a corrupted store or a broken entropy source. A high error count
reported by the BCH codec is not an error: it only shows up as a failed
hash comparison.
"""


class BiometricBindError(Exception):
    """Base exception for all biometricbind errors."""

    pass


class InvalidVectorLengthError(BiometricBindError):
    """
    Raised when a distance vector does not have the expected length.

    The caller must reject the frame; vectors are never padded or trimmed
    to fit.

    Attributes:
        expected: Required number of distances.
        actual: Number of distances received.
    """

    def __init__(self, expected: int, actual: int, message: str | None = None):
        self.expected = expected
        self.actual = actual
        self.message = message or f"Expected {expected} distances, got {actual}"
        super().__init__(self.message)


class InsufficientFramesError(BiometricBindError):
    """
    Raised when too few usable frames are supplied for a protocol run.

    Enrollment needs 80 frames and verification needs 10 valid frames.
    This is a hard failure, never a low-confidence result.
    """

    def __init__(self, required: int, available: int, message: str | None = None):
        self.required = required
        self.available = available
        self.message = message or (
            f"Insufficient frames: {required} required, {available} available"
        )
        super().__init__(self.message)


class RandomSourceError(BiometricBindError):
    """
    Raised when the operating system entropy source is unavailable.

    The current call is aborted; no weaker generator is substituted.
    """

    def __init__(self, message: str = "Secure random source unavailable"):
        self.message = message
        super().__init__(self.message)


class HexLengthMismatchError(BiometricBindError):
    """
    Raised when two hex strings of different length are XORed.

    This indicates a programming error or corrupted stored data and is
    always surfaced rather than silently truncated.
    """

    def __init__(self, message: str = "Hex operands differ in length"):
        self.message = message
        super().__init__(self.message)


class CodecError(BiometricBindError):
    """
    Raised when the BCH codec itself fails.

    This is distinct from an uncorrectable word, which the codec reports
    as data rather than as an exception.
    """

    def __init__(self, message: str = "BCH codec error"):
        self.message = message
        super().__init__(self.message)


class NoEnrollmentFoundError(BiometricBindError):
    """Raised when verification is requested for an identity with no stored enrollment."""

    def __init__(self, message: str = "No enrollment found"):
        self.message = message
        super().__init__(self.message)


class InvalidEnrollmentError(BiometricBindError):
    """
    Raised when stored enrollment data is invalid or corrupted.

    This covers unreadable store documents, record sets of the wrong size,
    helpers of the wrong length and sets produced with different BCH
    parameters than the codec in use.
    """

    def __init__(self, message: str = "Invalid or corrupted enrollment data"):
        self.message = message
        super().__init__(self.message)


class EnrollmentError(BiometricBindError):
    """
    Raised when an enrollment attempt cannot produce a complete record set.

    Attributes:
        failed_frames: Number of frames dropped because of per-frame errors.
    """

    def __init__(self, message: str = "Enrollment failed", failed_frames: int = 0):
        self.message = message
        self.failed_frames = failed_frames
        super().__init__(self.message)
