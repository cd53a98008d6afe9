"""Tests for custom exceptions."""

import pytest

from biometricbind.exceptions import (
    BiometricBindError,
    CodecError,
    EnrollmentError,
    HexLengthMismatchError,
    InsufficientFramesError,
    InvalidEnrollmentError,
    InvalidVectorLengthError,
    NoEnrollmentFoundError,
    RandomSourceError,
)


class TestExceptionHierarchy:
    """Test that all exceptions inherit from BiometricBindError."""

    @pytest.mark.parametrize(
        "exc_type",
        [
            CodecError,
            EnrollmentError,
            HexLengthMismatchError,
            InsufficientFramesError,
            InvalidEnrollmentError,
            InvalidVectorLengthError,
            NoEnrollmentFoundError,
            RandomSourceError,
        ],
    )
    def test_inheritance(self, exc_type):
        assert issubclass(exc_type, BiometricBindError)
        assert issubclass(exc_type, Exception)


class TestExceptionMessages:
    """Test exception default and custom messages."""

    def test_invalid_vector_length_message(self):
        exc = InvalidVectorLengthError(316, 300)
        assert exc.expected == 316
        assert exc.actual == 300
        assert "316" in str(exc) and "300" in str(exc)

    def test_insufficient_frames_message(self):
        exc = InsufficientFramesError(10, 7)
        assert exc.required == 10
        assert exc.available == 7
        assert "insufficient" in str(exc).lower()

    def test_random_source_default_message(self):
        assert "random" in str(RandomSourceError()).lower()

    def test_no_enrollment_default_message(self):
        assert "no enrollment" in str(NoEnrollmentFoundError()).lower()

    def test_invalid_enrollment_default_message(self):
        exc = InvalidEnrollmentError()
        assert "invalid" in str(exc).lower() or "corrupt" in str(exc).lower()

    def test_enrollment_error_carries_failures(self):
        exc = EnrollmentError("3 frames failed", failed_frames=3)
        assert exc.failed_frames == 3
        assert exc.message == "3 frames failed"

    def test_custom_message(self):
        msg = "Custom codec message"
        exc = CodecError(msg)
        assert str(exc) == msg
        assert exc.message == msg


class TestExceptionRaising:
    """Test that exceptions can be raised and caught properly."""

    def test_catch_base_exception(self):
        with pytest.raises(BiometricBindError):
            raise InsufficientFramesError(80, 79)

    def test_exception_chaining(self):
        try:
            try:
                raise OSError("original")
            except OSError as e:
                raise RandomSourceError("wrapper") from e
        except RandomSourceError as e:
            assert isinstance(e.__cause__, OSError)
