"""
Multi-frame verification with majority-vote fusion.

A verification attempt takes the first 10 valid captures and checks each
of them against the 80 stored records. A capture counts as matched when
some record accepts it on both gates:

    1. the fuzzy extractor reproduces that record's secret hash, and
    2. the session token recomputed from the reproduced hash equals the
       record's stored token.

Records are scanned in storage order and the first accepting record ends
the scan for that capture. The attempt passes when at least 5 of the 10
captures matched. No retries happen inside a call; the host starts over
with a fresh batch.
"""

from dataclasses import dataclass
from typing import List, Sequence, Tuple

import numpy as np
import structlog

from .crypto import token_matches
from .enrollment import EnrollmentRecord, EnrollmentSet
from .exceptions import InsufficientFramesError, InvalidEnrollmentError
from .fuzzy import BchFuzzyExtractor
from .quantize import is_valid_distance_vector, quantize

logger = structlog.get_logger(__name__)


# Captures used per verification attempt
VERIFICATION_FRAME_COUNT = 10

# Matched captures needed to accept
REQUIRED_MATCHES = 5


@dataclass(frozen=True)
class RecordMatch:
    """
    Outcome of checking one capture against one stored record.

    Attributes:
        record_index: Index of the stored record.
        hash_match: Whether the fuzzy extractor reproduced the record's hash.
        token_checked: Whether the token gate was evaluated. It is skipped
            when the hash gate already failed.
        token_match: Whether the recomputed token equals the stored one.
        error_count: Bit errors corrected by the codec.
        decode_failed: Whether the codec reported an uncorrectable word.
    """

    record_index: int
    hash_match: bool
    token_checked: bool
    token_match: bool
    error_count: int
    decode_failed: bool

    @property
    def matched(self) -> bool:
        return self.hash_match and self.token_match


@dataclass(frozen=True)
class FrameResult:
    """
    Per-capture diagnostics.

    Attributes:
        frame_index: Position of the capture among the frames used.
        matched: Whether any stored record accepted the capture.
        record_index: Index of the accepting record, or None.
        records_checked: How many records were scanned.
        error_count: Codec error count on the accepting record, or None.
        hash_matches: How many scanned records passed the hash gate.
    """

    frame_index: int
    matched: bool
    record_index: int | None
    records_checked: int
    error_count: int | None
    hash_matches: int


@dataclass(frozen=True)
class VerificationOutcome:
    """
    Session-level verification decision.

    ``match_percentage`` is informational; only ``success`` is the
    decision.
    """

    success: bool
    matched_frame_count: int
    frames_used: int
    required_matches: int
    per_frame: Tuple[FrameResult, ...]

    @property
    def match_percentage(self) -> float:
        if self.frames_used == 0:
            return 0.0
        return self.matched_frame_count / self.frames_used * 100


def select_frames(frames: Sequence, count: int = VERIFICATION_FRAME_COUNT) -> List[np.ndarray]:
    """
    Keep the first ``count`` valid captures in capture order.

    A capture is valid when it holds exactly 316 finite distances.

    Raises:
        InsufficientFramesError: If fewer than ``count`` captures are valid.
    """
    valid = [
        np.asarray(frame, dtype=np.float64)
        for frame in frames
        if is_valid_distance_vector(frame)
    ]
    if len(valid) < count:
        raise InsufficientFramesError(count, len(valid))
    return valid[:count]


def match_record(
    frame_bits: np.ndarray,
    record: EnrollmentRecord,
    extractor: BchFuzzyExtractor,
) -> RecordMatch:
    """
    Check one quantized capture against one stored record.

    The token is only recomputed when the hash gate passes, and it is
    recomputed from the reproduced hash, not the stored one.
    """
    reproduction = extractor.reproduce(frame_bits, record.helper_bits, record.secret_hash)

    if not reproduction.hash_match:
        return RecordMatch(
            record_index=record.index,
            hash_match=False,
            token_checked=False,
            token_match=False,
            error_count=reproduction.error_count,
            decode_failed=reproduction.decode_failed,
        )

    token_match = token_matches(
        reproduction.recovered_hash,
        record.salt,
        record.session_key_xor_hash,
        record.token,
    )
    return RecordMatch(
        record_index=record.index,
        hash_match=True,
        token_checked=True,
        token_match=token_match,
        error_count=reproduction.error_count,
        decode_failed=reproduction.decode_failed,
    )


def match_frame(
    frame_index: int,
    frame_bits: np.ndarray,
    enrollment: EnrollmentSet,
    extractor: BchFuzzyExtractor,
) -> FrameResult:
    """Scan the stored records in order until one accepts the capture."""
    hash_matches = 0
    for checked, record in enumerate(enrollment.records, start=1):
        result = match_record(frame_bits, record, extractor)
        if result.hash_match:
            hash_matches += 1
        if result.matched:
            return FrameResult(
                frame_index=frame_index,
                matched=True,
                record_index=result.record_index,
                records_checked=checked,
                error_count=result.error_count,
                hash_matches=hash_matches,
            )

    return FrameResult(
        frame_index=frame_index,
        matched=False,
        record_index=None,
        records_checked=len(enrollment.records),
        error_count=None,
        hash_matches=hash_matches,
    )


def decide(matched_frame_count: int, required_matches: int = REQUIRED_MATCHES) -> bool:
    """Majority rule: accept when enough captures matched."""
    return matched_frame_count >= required_matches


def verify(
    frames: Sequence,
    enrollment: EnrollmentSet,
    extractor: BchFuzzyExtractor,
) -> VerificationOutcome:
    """
    Verify a batch of captures against a stored enrollment.

    Args:
        frames: Distance vectors in capture order. Invalid ones are skipped.
        enrollment: The stored enrollment for the identity.
        extractor: Fuzzy extractor built with the enrollment's BCH parameters.

    Returns:
        A :class:`VerificationOutcome`.

    Raises:
        InsufficientFramesError: If fewer than 10 valid captures are given.
        InvalidEnrollmentError: If the enrollment was made with different
            BCH parameters or holds malformed helpers.
        CodecError: If the codec fails.
    """
    if (enrollment.bch_m, enrollment.bch_t) != (extractor.codec.m, extractor.codec.t):
        raise InvalidEnrollmentError(
            f"Enrollment uses BCH(m={enrollment.bch_m}, t={enrollment.bch_t}), "
            f"codec uses BCH(m={extractor.codec.m}, t={extractor.codec.t})"
        )

    selected = select_frames(frames)
    logger.info("Verification started", frames_used=len(selected), records=len(enrollment))

    per_frame = []
    for frame_index, distances in enumerate(selected):
        frame_bits = quantize(distances, enrollment.bits_per_value)
        result = match_frame(frame_index, frame_bits, enrollment, extractor)
        logger.debug(
            "Verification frame checked",
            frame_index=frame_index,
            matched=result.matched,
            record_index=result.record_index,
            records_checked=result.records_checked,
        )
        per_frame.append(result)

    matched = sum(1 for result in per_frame if result.matched)
    outcome = VerificationOutcome(
        success=decide(matched),
        matched_frame_count=matched,
        frames_used=len(selected),
        required_matches=REQUIRED_MATCHES,
        per_frame=tuple(per_frame),
    )
    logger.info(
        "Verification completed",
        success=outcome.success,
        matched_frames=matched,
        frames_used=outcome.frames_used,
        match_percentage=outcome.match_percentage,
    )
    return outcome
