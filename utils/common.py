# utils/common.py
"""Common utilities: path management, upload validation, text cleanup"""
import re
import os
from pathlib import Path
from fastapi import UploadFile

from core.domain import DocumentProcessingError, ErrorCode

# ⚠️ DO NOT import settings at module level - causes circular import with config.py
# Settings is imported lazily inside functions that need it


# ============= Path Management =============

def get_project_root() -> str:
    """Returns the absolute path to the project's root directory."""
    return os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))


def get_log_file_path() -> str:
    """Creates the log directory if it doesn't exist and returns the full log file path."""
    project_root = get_project_root()
    log_dir = os.path.join(project_root, 'log')

    if not os.path.exists(log_dir):
        os.makedirs(log_dir, exist_ok=True)

    return os.path.join(log_dir, 'examiner_rag.log')


# ============= File Validation =============

def get_file_extension(filename: str) -> str:
    """Extracts and normalizes the file extension from a filename."""
    return Path(filename).suffix[1:].lower()


def format_size(size: int) -> str:
    """Human-readable byte count: 5.0MB, 512.0KB, 10 bytes."""
    if size >= 1024 * 1024:
        return f"{size / 1024 / 1024:.1f}MB"
    if size >= 1024:
        return f"{size / 1024:.1f}KB"
    return f"{size} bytes"


def check_upload_size(size: int) -> None:
    """Raise FILE_TOO_LARGE when size exceeds the configured upload limit."""
    from config import settings  # Lazy import

    if size > settings.MAX_FILE_SIZE:
        raise DocumentProcessingError(
            f"File too large. Max size: {format_size(settings.MAX_FILE_SIZE)}",
            ErrorCode.FILE_TOO_LARGE
        )


def validate_uploaded_file(file: UploadFile) -> None:
    """Validate file name, type, and declared size. Raises DocumentProcessingError on failure."""
    from config import settings  # Lazy import

    if not file.filename:
        raise DocumentProcessingError("No filename provided", ErrorCode.INVALID_FORMAT)

    extension = get_file_extension(file.filename)
    if extension not in settings.ALLOWED_FILE_EXTENSIONS:
        raise DocumentProcessingError(
            f"Unsupported file type. Allowed: {', '.join(settings.ALLOWED_FILE_EXTENSIONS)}",
            ErrorCode.INVALID_FORMAT
        )

    if file.size:
        check_upload_size(file.size)


# ============= Text Utilities =============

_NON_PRINTABLE = re.compile(r'[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]')
_HORIZONTAL_SPACE = re.compile(r'[ \t]+')
_EXCESS_NEWLINES = re.compile(r'\n{3,}')


def clean_text(text: str) -> str:
    """
    Normalize uploaded text before chunking.

    Drops control characters, collapses runs of spaces/tabs and squeezes
    three or more newlines into a single blank line so paragraph
    boundaries survive.
    """
    text = text.replace('\r\n', '\n').replace('\r', '\n')
    text = _NON_PRINTABLE.sub('', text)
    text = _HORIZONTAL_SPACE.sub(' ', text)
    text = _EXCESS_NEWLINES.sub('\n\n', text)
    lines = [line.strip() for line in text.split('\n')]
    return '\n'.join(lines).strip()


def truncate(text: str, length: int) -> str:
    """Return the first `length` characters of text."""
    return text[:length] if len(text) > length else text
