"""
Multi-frame enrollment.

An enrollment turns 80 accepted captures into 80 independent records.
Each record holds a fuzzy-extractor helper, the hash of that frame's
secret and the key-binding chain values for that frame. All records of
one enrollment share a single salt.

Enrollment is all-or-nothing: if any frame fails, no set is produced and
whatever was stored before stays in place.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Sequence, Tuple

import numpy as np
import structlog

from .crypto import bind_session, generate_salt
from .exceptions import (
    BiometricBindError,
    CodecError,
    EnrollmentError,
    InsufficientFramesError,
    InvalidEnrollmentError,
    RandomSourceError,
)
from .fuzzy import BchFuzzyExtractor
from .quantize import DEFAULT_BITS_PER_VALUE, bits_from_string, bits_to_string, quantize

logger = structlog.get_logger(__name__)


# Number of frames, and therefore records, in one enrollment
ENROLLMENT_FRAME_COUNT = 80


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class EnrollmentRecord:
    """
    Stored artifacts of one enrolled frame.

    Attributes:
        index: Position of the frame in the enrollment batch.
        helper: Helper bits as a "0"/"1" string.
        secret_hash: SHA-256 of the frame's secret bits (hex).
        salt: Enrollment-session salt (hex).
        session_key_xor_hash: K2 of the key-binding chain (hex).
        token: Session token of the key-binding chain (hex).
        timestamp: When the record was created (UTC).
    """

    index: int
    helper: str
    secret_hash: str
    salt: str
    session_key_xor_hash: str
    token: str
    timestamp: datetime = field(default_factory=_utcnow)

    @property
    def helper_bits(self) -> np.ndarray:
        return bits_from_string(self.helper)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "helper": self.helper,
            "secret_hash": self.secret_hash,
            "salt": self.salt,
            "session_key_xor_hash": self.session_key_xor_hash,
            "token": self.token,
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EnrollmentRecord":
        """
        Rebuild a record from :meth:`to_dict` output.

        Raises:
            InvalidEnrollmentError: If a field is missing or malformed.
        """
        try:
            record = cls(
                index=int(data["index"]),
                helper=str(data["helper"]),
                secret_hash=str(data["secret_hash"]),
                salt=str(data["salt"]),
                session_key_xor_hash=str(data["session_key_xor_hash"]),
                token=str(data["token"]),
                timestamp=datetime.fromisoformat(data["timestamp"]),
            )
            # Reject helpers that are not bit strings up front
            bits_from_string(record.helper)
        except (KeyError, TypeError, ValueError) as e:
            raise InvalidEnrollmentError(f"Failed to load enrollment record: {e}") from e
        return record


@dataclass(frozen=True)
class EnrollmentSet:
    """
    The complete, immutable output of one enrollment.

    Attributes:
        records: Exactly 80 records sharing one salt, in capture order.
        bch_m: Field order of the BCH code the helpers were made with.
        bch_t: Error budget of the BCH code the helpers were made with.
        bits_per_value: Quantization width used for every frame.
        created_at: When the enrollment completed (UTC).

    Raises:
        InvalidEnrollmentError: On construction with the wrong number of
            records or with records that do not share one salt.
    """

    records: Tuple[EnrollmentRecord, ...]
    bch_m: int
    bch_t: int
    bits_per_value: int = DEFAULT_BITS_PER_VALUE
    created_at: datetime = field(default_factory=_utcnow)

    def __post_init__(self) -> None:
        object.__setattr__(self, "records", tuple(self.records))
        if len(self.records) != ENROLLMENT_FRAME_COUNT:
            raise InvalidEnrollmentError(
                f"Enrollment must hold {ENROLLMENT_FRAME_COUNT} records, "
                f"got {len(self.records)}"
            )
        if len({record.salt for record in self.records}) != 1:
            raise InvalidEnrollmentError("Enrollment records do not share one salt")

    @property
    def salt(self) -> str:
        return self.records[0].salt

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self):
        return iter(self.records)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "bch": {"m": self.bch_m, "t": self.bch_t},
            "bits_per_value": self.bits_per_value,
            "created_at": self.created_at.isoformat(),
            "records": [record.to_dict() for record in self.records],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EnrollmentSet":
        """
        Rebuild a set from :meth:`to_dict` output.

        Raises:
            InvalidEnrollmentError: If the document is malformed or incomplete.
        """
        try:
            records = tuple(EnrollmentRecord.from_dict(r) for r in data["records"])
            return cls(
                records=records,
                bch_m=int(data["bch"]["m"]),
                bch_t=int(data["bch"]["t"]),
                bits_per_value=int(data["bits_per_value"]),
                created_at=datetime.fromisoformat(data["created_at"]),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise InvalidEnrollmentError(f"Failed to load enrollment set: {e}") from e


def enroll_frame(
    index: int,
    distances,
    salt: str,
    extractor: BchFuzzyExtractor,
    bits_per_value: int = DEFAULT_BITS_PER_VALUE,
) -> EnrollmentRecord:
    """
    Produce the record for a single frame.

    Raises:
        InvalidVectorLengthError: If the frame does not hold 316 distances.
        ValueError: If the frame holds non-finite values.
        RandomSourceError: If a secret or session key cannot be drawn.
        CodecError: If BCH encoding fails.
    """
    bits = quantize(distances, bits_per_value)
    helper, secret_hash = extractor.generate(bits)
    binding = bind_session(secret_hash, salt)

    return EnrollmentRecord(
        index=index,
        helper=bits_to_string(helper),
        secret_hash=secret_hash,
        salt=binding.salt,
        session_key_xor_hash=binding.session_key_xor_hash,
        token=binding.token,
    )


def enroll(
    frames: Sequence,
    extractor: BchFuzzyExtractor,
    *,
    bits_per_value: int = DEFAULT_BITS_PER_VALUE,
) -> EnrollmentSet:
    """
    Enroll a batch of accepted captures.

    The caller is expected to have applied its liveness, pose and distance
    gates already. The first 80 frames are used.

    Args:
        frames: Distance vectors in capture order, at least 80.
        extractor: Fuzzy extractor whose codec the helpers are bound to.
        bits_per_value: Quantization width.

    Returns:
        An :class:`EnrollmentSet` of exactly 80 records.

    Raises:
        InsufficientFramesError: If fewer than 80 frames are supplied.
        RandomSourceError: If the session salt cannot be drawn.
        EnrollmentError: If any frame fails; no partial set is returned.
    """
    frames = list(frames)
    if len(frames) < ENROLLMENT_FRAME_COUNT:
        raise InsufficientFramesError(ENROLLMENT_FRAME_COUNT, len(frames))

    frames = frames[:ENROLLMENT_FRAME_COUNT]
    salt = generate_salt()

    logger.info(
        "Enrollment started",
        frames=len(frames),
        bch_m=extractor.codec.m,
        bch_t=extractor.codec.t,
    )

    records = []
    failures = 0
    first_error: BiometricBindError | ValueError | None = None

    for index, distances in enumerate(frames):
        try:
            records.append(
                enroll_frame(index, distances, salt, extractor, bits_per_value)
            )
        except (BiometricBindError, ValueError) as e:
            if isinstance(e, (RandomSourceError, CodecError)):
                logger.error("Enrollment frame failed", frame_index=index, error=str(e))
            else:
                logger.warning("Enrollment frame rejected", frame_index=index, error=str(e))
            failures += 1
            if first_error is None:
                first_error = e

    if len(records) < ENROLLMENT_FRAME_COUNT:
        logger.error(
            "Enrollment aborted",
            records=len(records),
            failed_frames=failures,
        )
        raise EnrollmentError(
            f"Enrollment produced {len(records)} of {ENROLLMENT_FRAME_COUNT} records "
            f"({failures} frames failed)",
            failed_frames=failures,
        ) from first_error

    enrollment = EnrollmentSet(
        records=tuple(records),
        bch_m=extractor.codec.m,
        bch_t=extractor.codec.t,
        bits_per_value=bits_per_value,
    )
    logger.info("Enrollment completed", records=len(enrollment))
    return enrollment
