"""
Upload validators for DRF serializers.

Domain-agnostic file checks used by the chat attachment endpoint:
- validate_file_size: Reject files above a byte limit
- validate_file_extension: Reject files whose extension is not allowed
- validate_file_mime_type: Reject files whose detected content type is not allowed
- detect_mime_type: Content-based MIME detection (python-magic)

Usage:
    from core.validators import validate_file_size, validate_file_extension

    class UploadSerializer(serializers.Serializer):
        file = serializers.FileField(
            validators=[
                validate_file_size(max_bytes=5 * 1024 * 1024),
                validate_file_extension(("jpg", "png", "pdf")),
            ]
        )

Note:
    Validators raise django.core.exceptions.ValidationError, which DRF
    converts into a field error (400). The client-declared Content-Type is
    never trusted; the type comes from the file's leading bytes.
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

import magic
from django.core.exceptions import ValidationError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from django.core.files import File

# Bytes read for magic number detection
MIME_SNIFF_BYTES = 2048


def validate_file_size(max_bytes: int):
    """
    Validator factory for file size limits.

    Args:
        max_bytes: Maximum file size in bytes (inclusive)
    """

    def validator(file: File):
        if file.size > max_bytes:
            raise ValidationError(
                f"File size must not exceed {max_bytes // (1024 * 1024)}MB. "
                f"Current size: {file.size / 1024 / 1024:.1f}MB"
            )

    return validator


def validate_file_extension(allowed_extensions: Iterable[str]):
    """
    Validator factory for file extension limits.

    Args:
        allowed_extensions: Allowed extensions (without dot, lowercase)
    """
    allowed = tuple(allowed_extensions)

    def validator(file: File):
        ext = os.path.splitext(file.name)[1].lower().lstrip(".")
        if ext not in allowed:
            raise ValidationError(
                f"File extension '{ext}' is not allowed. "
                f"Allowed: {', '.join(allowed)}"
            )

    return validator


def detect_mime_type(file: File) -> str | None:
    """
    Detect a file's MIME type from its content using libmagic.

    The file position is restored to the start, so the file can be saved
    afterwards.

    Returns:
        Detected MIME type, or None for an empty or unreadable file
    """
    file.seek(0)
    header = file.read(MIME_SNIFF_BYTES)
    file.seek(0)

    if not header:
        return None

    try:
        return magic.Magic(mime=True).from_buffer(header)
    except magic.MagicException:
        return None


def validate_file_mime_type(allowed_mime_types: Iterable[str]):
    """
    Validator factory for content types detected from the file itself.

    Args:
        allowed_mime_types: Allowed MIME types (e.g. "image/png")
    """
    allowed = tuple(allowed_mime_types)

    def validator(file: File):
        mime_type = detect_mime_type(file)
        if mime_type is None:
            raise ValidationError("Could not detect file type.")
        if mime_type.lower() not in allowed:
            raise ValidationError(f"File type '{mime_type}' is not allowed.")

    return validator
