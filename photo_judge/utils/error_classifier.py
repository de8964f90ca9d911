"""Error classification for per-photo failures.

Maps raw exceptions onto the ``ErrorType`` taxonomy and attaches a remedy
the user can act on. The batch driver uses the type to decide whether to
skip the photo or halt the batch.
"""

import asyncio
import errno
from pathlib import Path
from typing import Any, Dict, Optional

import aiohttp
import structlog
from PIL import UnidentifiedImageError

from photo_judge.models.errors import ClassifiedError, ErrorType
from photo_judge.services.scorer.exceptions import (
    BackendUnreachableError,
    ScorerResponseError,
    ScorerTimeoutError,
)

logger = structlog.get_logger()

SUPPORTED_FORMATS_TEXT = "JPG, PNG, GIF, WebP, HEIC"

_CONNECTION_PATTERNS = (
    "connection refused",
    "cannot connect",
    "econnrefused",
    "name or service not known",
    "ollama",
)
_CORRUPTION_PATTERNS = (
    "invalid",
    "corrupt",
    "truncated",
    "cannot identify image",
    "premature",
)


def classify_error(error: BaseException) -> ClassifiedError:
    """Classify an exception.

    Checks run in a fixed order: timeout, backend error responses,
    backend connectivity, filesystem, corrupted file, format, then unknown.

    Args:
        error: The exception raised while handling a photo

    Returns:
        ClassifiedError with type, message and actionable remedy
    """
    message = str(error) or type(error).__name__
    lowered = message.lower()

    if isinstance(error, (asyncio.TimeoutError, TimeoutError, ScorerTimeoutError)) or (
        "timeout" in lowered
    ):
        return ClassifiedError(
            type=ErrorType.TIMEOUT,
            message=message,
            actionable="Reduce image size or increase --photo-timeout value",
        )

    # The backend answered, so it is reachable; only this photo failed
    if isinstance(error, ScorerResponseError):
        return ClassifiedError(
            type=ErrorType.UNKNOWN,
            message=message,
            actionable="Check the Ollama logs; the model may not support this image",
        )

    if isinstance(
        error,
        (BackendUnreachableError, aiohttp.ClientConnectorError, ConnectionError),
    ) or any(p in lowered for p in _CONNECTION_PATTERNS):
        return ClassifiedError(
            type=ErrorType.BACKEND_UNREACHABLE,
            message="Vision backend connection lost",
            actionable="Ensure Ollama is running (ollama serve) and try again",
        )

    if isinstance(error, FileNotFoundError):
        return ClassifiedError(
            type=ErrorType.FILESYSTEM,
            message="File not found",
            actionable="Check that the file exists and path is correct",
        )

    if isinstance(error, PermissionError) or "permission denied" in lowered:
        return ClassifiedError(
            type=ErrorType.FILESYSTEM,
            message="Permission denied",
            actionable="Check file/directory permissions (chmod)",
        )

    if isinstance(error, OSError) and error.errno == errno.ENOSPC:
        return ClassifiedError(
            type=ErrorType.FILESYSTEM,
            message="Disk full",
            actionable="Free up disk space and try again",
        )

    if isinstance(error, UnidentifiedImageError) or any(
        p in lowered for p in _CORRUPTION_PATTERNS
    ):
        return ClassifiedError(
            type=ErrorType.CORRUPTED_FILE,
            message="Corrupted or invalid image file",
            actionable="Re-export image from original source or use different file",
        )

    if "format" in lowered:
        return ClassifiedError(
            type=ErrorType.INVALID_FORMAT,
            message=message,
            actionable=f"Convert to supported format ({SUPPORTED_FORMATS_TEXT})",
        )

    return ClassifiedError(
        type=ErrorType.UNKNOWN,
        message=message,
        actionable="Check logs for details or report issue if problem persists",
    )


def actionable_message(
    error_type: ErrorType,
    photo_path: str,
    details: Optional[Dict[str, Any]] = None,
) -> str:
    """Format a one-line, user-facing failure message for a photo.

    Args:
        error_type: Classified error type
        photo_path: Path (or name) of the failing photo
        details: Optional extras, e.g. ``timeout`` seconds or errno ``code``

    Returns:
        Message naming the photo and the suggested remedy
    """
    details = details or {}
    filename = Path(photo_path).name

    if error_type is ErrorType.CORRUPTED_FILE:
        return f"{filename}: Corrupted file. Re-export from original source."
    if error_type is ErrorType.INVALID_FORMAT:
        return (
            f"{filename}: Invalid or unsupported format. "
            f"Convert to {SUPPORTED_FORMATS_TEXT}."
        )
    if error_type is ErrorType.TIMEOUT:
        timeout = f"{details['timeout']}s" if details.get("timeout") else "60s"
        return (
            f"{filename}: Analysis timeout after {timeout}. Try --photo-timeout "
            "with higher value or reduce image size."
        )
    if error_type is ErrorType.BACKEND_UNREACHABLE:
        return (
            f"Vision backend connection lost during analysis of {filename}. "
            "Ensure Ollama is running and restart analysis."
        )
    if error_type is ErrorType.FILESYSTEM:
        code = details.get("code") or "unknown"
        return (
            f"{filename}: File system error ({code}). "
            "Check permissions and disk space."
        )
    return f"{filename}: Unexpected error. Check logs for details."


def log_classified_error(error: BaseException, photo: str = "") -> ClassifiedError:
    """Classify an error and log it at a level matching its severity."""
    classified = classify_error(error)

    if classified.type is ErrorType.BACKEND_UNREACHABLE:
        logger.error("backend_unreachable", photo=photo, error=classified.message)
    elif classified.type is ErrorType.TIMEOUT:
        logger.warning("photo_timeout", photo=photo, error=classified.message)
    else:
        logger.debug(
            "photo_error",
            photo=photo,
            error_type=classified.type.value,
            error=classified.message,
        )
    return classified
