from .assembler import ContextAssembler, FileReader
from .indexer import build_file_tree, collect_file_paths
from .selector import dominant_extension, select_relevant_files

__all__ = [
    "ContextAssembler",
    "FileReader",
    "build_file_tree",
    "collect_file_paths",
    "dominant_extension",
    "select_relevant_files"
]
