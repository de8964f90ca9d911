"""Error taxonomy shared by the batch driver and failure reports."""

from enum import Enum

from pydantic import BaseModel


class ErrorType(str, Enum):
    TIMEOUT = "timeout"
    BACKEND_UNREACHABLE = "backend_unreachable"
    FILESYSTEM = "filesystem"
    CORRUPTED_FILE = "corrupted_file"
    INVALID_FORMAT = "invalid_format"
    UNKNOWN = "unknown"

    @property
    def is_fatal(self) -> bool:
        """Backend outages halt the batch; everything else is per-photo."""
        return self is ErrorType.BACKEND_UNREACHABLE


class ClassifiedError(BaseModel):
    """An exception mapped onto the taxonomy with a user remedy"""

    type: ErrorType
    message: str
    actionable: str
