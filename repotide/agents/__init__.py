from .agent import RepoAgent
from .parser import (
    extract_code, extract_file_paths, parse_multi_file,
    split_implementation_and_tests, suggest_file_name
)

__all__ = [
    "RepoAgent",
    "extract_code",
    "extract_file_paths",
    "parse_multi_file",
    "split_implementation_and_tests",
    "suggest_file_name"
]
