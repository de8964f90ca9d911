"""Tests for error classification and user-facing messages."""

import asyncio
import errno

import pytest
from PIL import UnidentifiedImageError

from photo_judge.models.errors import ErrorType
from photo_judge.services.scorer.exceptions import (
    BackendUnreachableError,
    ScorerOverloadedError,
    ScorerResponseError,
    ScorerTimeoutError,
)
from photo_judge.utils.error_classifier import (
    actionable_message,
    classify_error,
    log_classified_error,
)


@pytest.mark.parametrize(
    "error,expected",
    [
        (asyncio.TimeoutError(), ErrorType.TIMEOUT),
        (ScorerTimeoutError(timeout_seconds=90), ErrorType.TIMEOUT),
        (RuntimeError("Analysis timeout after 60s"), ErrorType.TIMEOUT),
        (BackendUnreachableError("refused"), ErrorType.BACKEND_UNREACHABLE),
        (ConnectionRefusedError(), ErrorType.BACKEND_UNREACHABLE),
        (RuntimeError("ECONNREFUSED 127.0.0.1:11434"), ErrorType.BACKEND_UNREACHABLE),
        (FileNotFoundError("missing.jpg"), ErrorType.FILESYSTEM),
        (PermissionError("denied"), ErrorType.FILESYSTEM),
        (OSError(errno.ENOSPC, "No space left on device"), ErrorType.FILESYSTEM),
        (UnidentifiedImageError("x"), ErrorType.CORRUPTED_FILE),
        (ValueError("image file is truncated"), ErrorType.CORRUPTED_FILE),
        (ValueError("unsupported format tiff"), ErrorType.INVALID_FORMAT),
        (RuntimeError("something odd"), ErrorType.UNKNOWN),
    ],
)
def test_classify_error(error, expected):
    assert classify_error(error).type is expected


def test_backend_error_response_is_not_fatal():
    """Test an error answer from Ollama fails only the photo."""
    error = ScorerResponseError("Ollama request failed: 400 bad image", status=400)
    classified = classify_error(error)

    assert classified.type is ErrorType.UNKNOWN
    assert not classified.type.is_fatal


def test_overloaded_is_not_fatal():
    classified = classify_error(ScorerOverloadedError("Ollama server error: 503"))
    assert not classified.type.is_fatal


def test_only_backend_unreachable_is_fatal():
    fatal = [t for t in ErrorType if t.is_fatal]
    assert fatal == [ErrorType.BACKEND_UNREACHABLE]


def test_classified_error_has_remedy():
    classified = classify_error(BackendUnreachableError("refused"))
    assert "ollama serve" in classified.actionable
    assert classified.message == "Vision backend connection lost"


def test_empty_message_uses_type_name():
    classified = classify_error(KeyError())
    assert classified.message == "KeyError"


class TestActionableMessage:
    """Tests for the one-line failure messages"""

    def test_names_file_only(self):
        message = actionable_message(ErrorType.CORRUPTED_FILE, "/a/b/night.jpg")
        assert message.startswith("night.jpg:")
        assert "/a/b" not in message

    def test_timeout_uses_detail(self):
        message = actionable_message(ErrorType.TIMEOUT, "a.jpg", {"timeout": 90})
        assert "after 90s" in message

    def test_timeout_default(self):
        assert "after 60s" in actionable_message(ErrorType.TIMEOUT, "a.jpg")

    def test_filesystem_code(self):
        message = actionable_message(ErrorType.FILESYSTEM, "a.jpg", {"code": "EACCES"})
        assert "(EACCES)" in message

    @pytest.mark.parametrize("error_type", list(ErrorType))
    def test_every_type_mentions_file(self, error_type):
        assert "a.jpg" in actionable_message(error_type, "a.jpg")


def test_log_classified_error_returns_classification():
    classified = log_classified_error(FileNotFoundError("x"), photo="a.jpg")
    assert classified.type is ErrorType.FILESYSTEM
