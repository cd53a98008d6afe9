"""
biometricbind - Biometric authentication without stored templates.

This library authenticates a person by face-feature similarity while
never persisting the biometric template. Each capture's distance vector is
quantized to bits, a random secret is bound to those bits with a BCH
code-offset fuzzy extractor, and a session key-binding chain is layered on
top so that the stored record is not itself a usable credential.
Enrollment stores 80 such records; verification checks 10 fresh captures
and accepts by majority vote.

Quick Start:
    >>> from biometricbind import BiometricAuthenticator, JsonFileEnrollmentStore
    >>>
    >>> auth = BiometricAuthenticator(JsonFileEnrollmentStore("enrollments"), "alice")
    >>> auth.enroll(enrollment_frames)       # 80 vectors of 316 distances
    >>> outcome = auth.verify(capture_frames)  # 10+ vectors of 316 distances
    >>> outcome.success, outcome.matched_frame_count

Without a store:
    >>> from biometricbind import enroll, verify
    >>>
    >>> enrollment = enroll(enrollment_frames)
    >>> outcome = verify(capture_frames, enrollment)

See Also:
    - api.py: Host-facing API
    - quantize.py: Distance quantization and bit helpers
    - bch.py: BCH codec handle
    - fuzzy.py: Code-offset fuzzy extractor
    - crypto.py: Hashing, randomness and the key-binding chain
    - enrollment.py / verification.py: Multi-frame orchestration
    - store.py: Enrollment persistence
    - exceptions.py: Custom exception types
"""

__version__ = "0.1.0"
__author__ = "biometricbind Contributors"

# Public API - main functions
from .api import enroll, verify, BiometricAuthenticator

# Exceptions for error handling
from .exceptions import (
    BiometricBindError,
    InvalidVectorLengthError,
    InsufficientFramesError,
    RandomSourceError,
    HexLengthMismatchError,
    CodecError,
    NoEnrollmentFoundError,
    InvalidEnrollmentError,
    EnrollmentError,
)

# Building blocks (for advanced usage)
from .bch import BchCodec, BchParameters
from .enrollment import EnrollmentRecord, EnrollmentSet
from .fuzzy import BchFuzzyExtractor, Reproduction
from .quantize import quantize
from .store import EnrollmentStore, JsonFileEnrollmentStore, MemoryEnrollmentStore
from .verification import FrameResult, VerificationOutcome

__all__ = [
    # Version
    "__version__",
    # Main API
    "enroll",
    "verify",
    "BiometricAuthenticator",
    # Exceptions
    "BiometricBindError",
    "InvalidVectorLengthError",
    "InsufficientFramesError",
    "RandomSourceError",
    "HexLengthMismatchError",
    "CodecError",
    "NoEnrollmentFoundError",
    "InvalidEnrollmentError",
    "EnrollmentError",
    # Types
    "BchCodec",
    "BchParameters",
    "BchFuzzyExtractor",
    "Reproduction",
    "EnrollmentRecord",
    "EnrollmentSet",
    "FrameResult",
    "VerificationOutcome",
    "quantize",
    # Stores
    "EnrollmentStore",
    "JsonFileEnrollmentStore",
    "MemoryEnrollmentStore",
]
