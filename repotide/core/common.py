from .defaults import TRUNCATION_MARKER
from .errors import InputValidationError

from typing import Tuple
import posixpath


def wrap_content(content: str, filepath: str) -> str:
    return f"""<FILE_START::{filepath}>
{content}
</FILE_END::{filepath}>"""


def truncate(content: str, max_chars: int, marker: str = TRUNCATION_MARKER) -> Tuple[str, bool]:
    if len(content) <= max_chars:
        return content, False
    return content[:max_chars] + marker, True


def normalize_path(path: str) -> str:
    """
    Normalize a repository relative path to POSIX form without leading slashes.

    Raises:
        InputValidationError: if the path escapes the repository root.
    """
    path = path.replace("\\", "/").strip()
    while path.startswith("./"):
        path = path[2:]
    path = path.lstrip("/")

    if not path:
        return ""

    normalized = posixpath.normpath(path)
    if normalized == ".":
        return ""
    if normalized == ".." or normalized.startswith("../"):
        raise InputValidationError(f"Path escapes the repository root: {path}")
    return normalized


def file_extension(path: str) -> str:
    """Lower case extension including the dot, or an empty string"""
    name = posixpath.basename(path)
    _, ext = posixpath.splitext(name)
    return ext.lower()
