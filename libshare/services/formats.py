"""File format helpers for reading and editing books in the browser."""

from pathlib import PurePath

TEXT_EXTENSIONS = {".txt", ".md", ".markdown", ".html", ".htm"}
EDITABLE_EXTENSIONS = {".txt", ".md", ".markdown"}


def extension(filename: str) -> str:
    return PurePath(filename).suffix.lower()


def is_text_file(filename: str) -> bool:
    return extension(filename) in TEXT_EXTENSIONS


def is_editable_format(filename: str) -> bool:
    return extension(filename) in EDITABLE_EXTENSIONS


def safe_filename(filename: str) -> str:
    """Strip any directory part a client may have sent."""
    return PurePath(filename.replace("\\", "/")).name


def format_file_size(size: int) -> str:
    """Human readable size using binary units, e.g. ``1.5 MB``."""
    unit = 1024
    if size < unit:
        return f"{size} B"
    div, exp = unit, 0
    n = size // unit
    while n >= unit:
        div *= unit
        exp += 1
        n //= unit
    return f"{size / div:.1f} {'KMGTPE'[exp]}B"
