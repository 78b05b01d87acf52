from ..core.defaults import CANONICAL_FILE_PATTERNS, DEFAULT_MAX_SELECTED_FILES, SOURCE_EXTENSIONS
from ..core.common import file_extension

from typing import Dict, List, Optional
import posixpath
import re

CANONICAL_FILE_REGEXES = [re.compile(pattern, re.IGNORECASE) for pattern in CANONICAL_FILE_PATTERNS]


def dominant_extension(paths: List[str]) -> Optional[str]:
    """Most frequent source language extension; ties go to the one seen first"""
    counts: Dict[str, int] = {}
    for path in paths:
        ext = file_extension(path)
        if ext in SOURCE_EXTENSIONS:
            counts[ext] = counts.get(ext, 0) + 1

    if not counts:
        return None
    # dicts keep insertion order, so max picks the first seen on ties
    return max(counts, key=counts.get)


def select_relevant_files(paths: List[str], budget: int = DEFAULT_MAX_SELECTED_FILES) -> List[str]:
    """
    Picks the files worth showing to the model, most relevant first.

    Canonical files (readme, manifests, entry points) come first in pattern
    order, then files written in the dominant source language, then the rest
    in traversal order. Deterministic for a given input.
    """
    if budget <= 0:
        return []

    selected: Dict[str, None] = {}

    def take(candidates):
        for path in candidates:
            if len(selected) >= budget:
                return
            selected.setdefault(path, None)

    for regex in CANONICAL_FILE_REGEXES:
        take(path for path in paths if regex.fullmatch(posixpath.basename(path)))

    ext = dominant_extension(paths)
    if ext is not None:
        take(path for path in paths if file_extension(path) == ext)

    take(paths)
    return list(selected)
