"""
Public API for biometric authentication with fuzzy extraction and key binding.

This module provides the entry points a host application uses:
- BiometricAuthenticator: enroll, verify and clear for one local identity
- enroll(): Build an enrollment set from 80 captures
- verify(): Check 10 captures against an enrollment set

The library is capture-agnostic: it consumes 316-value distance vectors.
The caller is responsible for:
- Camera capture and face-landmark detection
- Deriving the distance vector from landmarks
- Liveness, pose and distance gating before frames reach this library

Security Assumptions:
    1. Captures of the same person quantize to bit strings within t bit
       errors of each other, and captures of different people do not
    2. The operating system CSPRNG is available
    3. The BCH parameters do not change between enrollment and verification

Example:
    >>> store = JsonFileEnrollmentStore("/var/lib/app/enrollments")
    >>> auth = BiometricAuthenticator(store, identity="alice")
    >>> auth.enroll(enrollment_frames)       # 80 distance vectors
    >>> outcome = auth.verify(capture_frames)  # at least 10 distance vectors
    >>> outcome.success
    True
"""

from typing import Sequence

import structlog

from . import config
from .bch import BchCodec, BchParameters
from .enrollment import EnrollmentSet, enroll as _enroll
from .exceptions import NoEnrollmentFoundError
from .fuzzy import BchFuzzyExtractor
from .store import EnrollmentStore
from .verification import VerificationOutcome, verify as _verify

logger = structlog.get_logger(__name__)


def _extractor_for(params: BchParameters | None) -> BchFuzzyExtractor:
    return BchFuzzyExtractor(BchCodec(params))


def enroll(
    frames: Sequence,
    *,
    params: BchParameters | None = None,
    bits_per_value: int | None = None,
) -> EnrollmentSet:
    """
    Enroll 80 captures into a new enrollment set.

    Args:
        frames: Distance vectors in capture order (at least 80).
        params: Optional BCH parameters. Default is the configured (m, t).
        bits_per_value: Optional quantization width. Default is the
            configured value.

    Returns:
        An :class:`EnrollmentSet` to hand to a store or to :func:`verify`.

    Raises:
        InsufficientFramesError: If fewer than 80 frames are supplied.
        EnrollmentError: If any frame fails.
        RandomSourceError: If the salt cannot be drawn.
    """
    return _enroll(
        frames,
        _extractor_for(params),
        bits_per_value=bits_per_value or config.BITS_PER_VALUE,
    )


def verify(
    frames: Sequence,
    enrollment: EnrollmentSet,
) -> VerificationOutcome:
    """
    Verify captures against an enrollment set.

    The codec is built from the parameters recorded in the enrollment.

    Args:
        frames: Distance vectors in capture order (at least 10 valid).
        enrollment: Set produced by :func:`enroll`.

    Returns:
        A :class:`VerificationOutcome`.

    Raises:
        InsufficientFramesError: If fewer than 10 valid frames are supplied.
    """
    params = BchParameters(m=enrollment.bch_m, t=enrollment.bch_t)
    return _verify(frames, enrollment, _extractor_for(params))


class BiometricAuthenticator:
    """
    Enrollment and verification for one local identity.

    The authenticator owns one codec handle for its lifetime and reads and
    writes enrollment sets through the given store.

    Attributes:
        store: Where enrollment sets are kept.
        identity: Key of this identity in the store.
        extractor: Fuzzy extractor bound to the codec handle.

    Example:
        >>> auth = BiometricAuthenticator(MemoryEnrollmentStore())
        >>> auth.enroll(enrollment_frames)
        >>> auth.verify(capture_frames).success
        True
        >>> auth.clear_enrollment()
    """

    def __init__(
        self,
        store: EnrollmentStore,
        identity: str = "default",
        *,
        extractor: BchFuzzyExtractor | None = None,
        params: BchParameters | None = None,
        bits_per_value: int | None = None,
    ):
        """
        Initialize an authenticator.

        Args:
            store: Enrollment store.
            identity: Local identity key.
            extractor: Optional pre-built extractor. Takes precedence over
                ``params``.
            params: Optional BCH parameters for a new codec handle.
            bits_per_value: Quantization width used for new enrollments.
        """
        self.store = store
        self.identity = identity
        self.extractor = extractor or _extractor_for(params)
        self.bits_per_value = bits_per_value or config.BITS_PER_VALUE

    def enroll(self, frames: Sequence) -> None:
        """
        Enroll the identity, replacing any previous enrollment.

        Nothing is written unless all 80 records were produced.

        See :func:`biometricbind.enrollment.enroll` for errors raised.
        """
        enrollment = _enroll(frames, self.extractor, bits_per_value=self.bits_per_value)
        self.store.save(self.identity, enrollment)

    def verify(self, frames: Sequence) -> VerificationOutcome:
        """
        Verify captures against the stored enrollment.

        Raises:
            NoEnrollmentFoundError: If the identity is not enrolled.

        See :func:`biometricbind.verification.verify` for other errors.
        """
        enrollment = self.store.load(self.identity)
        if enrollment is None:
            logger.warning("Verification requested without enrollment", identity=self.identity)
            raise NoEnrollmentFoundError(f"No enrollment found for identity {self.identity!r}")
        return _verify(frames, enrollment, self.extractor)

    def clear_enrollment(self) -> None:
        """Delete the stored enrollment for this identity."""
        self.store.clear(self.identity)

    def is_enrolled(self) -> bool:
        return self.store.load(self.identity) is not None
