"""Photo validation before scoring.

A cheap Pillow check that catches missing, unreadable, corrupted and
unsupported files before the expensive vision model is called.
"""

import os
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

import structlog
from PIL import Image, UnidentifiedImageError
from pydantic import BaseModel, Field

from photo_judge.models.errors import ErrorType

logger = structlog.get_logger()

SUPPORTED_FORMATS = ("jpeg", "jpg", "png", "gif", "webp", "heic")
PHOTO_EXTENSIONS = frozenset(f".{fmt}" for fmt in SUPPORTED_FORMATS)

# Larger files may time out or exhaust memory in the vision backend
MAX_RECOMMENDED_SIZE = 20 * 1024 * 1024

# Pillow names HEIC images "HEIF" when a HEIF plugin is installed
_FORMAT_ALIASES = {"heif": "heic"}


class PhotoValidation(BaseModel):
    """Result of validating one photo"""

    valid: bool
    error: Optional[str] = None
    error_type: Optional[ErrorType] = None
    warning: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


def list_photo_files(directory: Union[str, Path]) -> List[Path]:
    """Supported photo files in a directory, sorted by filename.

    Args:
        directory: Directory to scan (not recursive)

    Returns:
        Sorted list of paths; empty when the directory does not exist
    """
    directory = Path(directory)
    if not directory.is_dir():
        return []
    return sorted(
        (
            f
            for f in directory.iterdir()
            if f.is_file() and f.suffix.lower() in PHOTO_EXTENSIONS
        ),
        key=lambda p: p.name,
    )


class PhotoValidator:
    """Validate photo files with Pillow."""

    def __init__(self, max_recommended_size: int = MAX_RECOMMENDED_SIZE):
        self.max_recommended_size = max_recommended_size

    def validate(self, photo_path: Union[str, Path]) -> PhotoValidation:
        """Validate a photo file.

        Checks, in order: the file exists, it is readable, its size (a
        warning only), Pillow can open and verify it, and its format is
        supported.

        Args:
            photo_path: Path to the photo

        Returns:
            PhotoValidation; ``metadata`` holds format and dimensions
            when valid
        """
        path = Path(photo_path)

        if not path.is_file():
            return PhotoValidation(
                valid=False, error="File not found", error_type=ErrorType.FILESYSTEM
            )

        if not os.access(path, os.R_OK):
            return PhotoValidation(
                valid=False,
                error="Permission denied - cannot read file",
                error_type=ErrorType.FILESYSTEM,
            )

        size = path.stat().st_size
        warning = None
        if size > self.max_recommended_size:
            warning = f"Large file ({size / 1024 / 1024:.1f}MB) may cause timeout"

        try:
            with Image.open(path) as img:
                image_format = (img.format or "").lower()
                width, height = img.size
                mode = img.mode
                img.verify()
        except UnidentifiedImageError:
            return PhotoValidation(
                valid=False,
                error="Invalid image format or corrupted file",
                error_type=ErrorType.CORRUPTED_FILE,
            )
        except (OSError, SyntaxError, ValueError, Image.DecompressionBombError) as e:
            return PhotoValidation(
                valid=False,
                error=f"Corrupted file: {e}",
                error_type=ErrorType.CORRUPTED_FILE,
            )

        image_format = _FORMAT_ALIASES.get(image_format, image_format)
        if image_format not in SUPPORTED_FORMATS:
            return PhotoValidation(
                valid=False,
                error=(
                    f"Unsupported format: {image_format or 'unknown'}. "
                    f"Supported: {', '.join(SUPPORTED_FORMATS)}"
                ),
                error_type=ErrorType.INVALID_FORMAT,
            )

        return PhotoValidation(
            valid=True,
            warning=warning,
            metadata={
                "format": image_format,
                "width": width,
                "height": height,
                "mode": mode,
                "size_bytes": size,
            },
        )

    def validate_batch(
        self, photo_paths: Iterable[Union[str, Path]]
    ) -> Tuple[List[Path], List[Tuple[Path, PhotoValidation]]]:
        """Validate several photos.

        Args:
            photo_paths: Paths to validate

        Returns:
            (valid paths, [(invalid path, validation)])
        """
        valid: List[Path] = []
        invalid: List[Tuple[Path, PhotoValidation]] = []

        for photo_path in photo_paths:
            path = Path(photo_path)
            result = self.validate(path)
            if result.valid:
                valid.append(path)
                if result.warning:
                    logger.debug(
                        "photo_warning", photo=path.name, warning=result.warning
                    )
            else:
                invalid.append((path, result))

        return valid, invalid
