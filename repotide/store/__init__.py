from .base import BaseRepositoryStore, ProgressCallback, ProgressTracker
from .git_store import GitRepositoryStore
from .memory_store import MemoryRepositoryStore
from .metadata import GitHubMetadataClient
from .locator import parse_repository_url

__all__ = [
    "BaseRepositoryStore",
    "GitHubMetadataClient",
    "GitRepositoryStore",
    "MemoryRepositoryStore",
    "ProgressCallback",
    "ProgressTracker",
    "parse_repository_url"
]
