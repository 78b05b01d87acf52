from ..core.defaults import NO_EXTENSION, VCS_DIRECTORIES
from ..core.errors import CloneError, NotFoundError, RepositoryIOError
from ..core.models import CloneProgress, EntryStat, NodeKind, RemoteRepository, RepositoryLocator, RepositoryMetadata
from ..core.common import file_extension
from ..core.logs import logger
from .metadata import GitHubMetadataClient
from .locator import parse_repository_url

from typing import AsyncIterator, Callable, Dict, List, Optional, Tuple
from abc import ABC, abstractmethod
import time

ProgressCallback = Callable[[CloneProgress], None]

# percent reserved for the steps that run after the backend fetch
FETCH_DONE_PERCENT = 90
METADATA_PERCENT = 92
ANALYSIS_PERCENT = 95
MAX_PENDING_PERCENT = 99


class ProgressTracker:
    """
    Forwards clone progress to a caller supplied callback.

    Reported percentages never decrease and stay below 100 until `complete`
    is called once the post-clone analysis has finished.
    """

    def __init__(self, callback: Optional[ProgressCallback] = None):
        self.callback = callback
        self.percent = 0.0
        self.completed = False

    def _emit(self, phase: str, percent: float):
        if self.callback is None:
            return
        try:
            self.callback(CloneProgress(phase=phase, percent=percent))
        except Exception as e:
            logger.error(f"Error in progress callback: {e}")

    def report(self, phase: str, percent: float):
        if self.completed:
            return
        percent = max(self.percent, min(float(percent), MAX_PENDING_PERCENT))
        self.percent = percent
        self._emit(phase, percent)

    def complete(self):
        if self.completed:
            return
        self.completed = True
        self.percent = 100.0
        self._emit("done", 100.0)


class BaseRepositoryStore(ABC):
    """
    Isolated per repository namespaces (keyed `owner/name`) holding a shallow copy
    of a remote repository, plus the primitives to browse them.
    """

    def __init__(self, metadata_client: Optional[GitHubMetadataClient] = None):
        self.metadata_client = metadata_client

    @abstractmethod
    async def _fetch(self, locator: RepositoryLocator, tracker: ProgressTracker, force: bool = False) -> Optional[str]:
        """Populate the namespace (shallow, single branch). Returns the HEAD revision when known."""
        pass

    @abstractmethod
    async def exists(self, namespace: str) -> bool:
        pass

    @abstractmethod
    async def list_dir(self, namespace: str, path: str = "") -> List[str]:
        pass

    @abstractmethod
    async def stat(self, namespace: str, path: str) -> EntryStat:
        pass

    @abstractmethod
    async def read_file(self, namespace: str, path: str) -> str:
        """
        Raises:
            NotFoundError: the path does not exist or is not a file.
            RepositoryIOError: the file exists but could not be read as text.
        """
        pass

    async def clone_repository(
        self,
        url: str,
        on_progress: Optional[ProgressCallback] = None,
        force: bool = False) -> RemoteRepository:
        """
        Clone `url` into its `owner/name` namespace and analyze its contents.

        Re-cloning an already populated namespace reuses it unless `force` is set.

        Raises:
            InvalidReferenceError: malformed URL, raised before any network access.
            CloneError: the fetch failed.
            UnsupportedOperationError: this store cannot fetch remote repositories.
        """
        locator = parse_repository_url(url)
        logger.info(f"Cloning repository {locator.namespace} from {locator.url}")

        tracker = ProgressTracker(on_progress)
        tracker.report("preparing", 0)

        st = time.time()
        try:
            revision = await self._fetch(locator, tracker, force=force)
        except OSError as e:
            raise CloneError(f"Failed to clone {locator.url}: {e}") from e
        tracker.report("fetched", FETCH_DONE_PERCENT)

        metadata = await self.fetch_metadata(locator)
        tracker.report("metadata", METADATA_PERCENT)

        file_count, file_types = await self.analyze(locator.namespace)
        tracker.report("analyzing", ANALYSIS_PERCENT)

        repository = RemoteRepository(
            owner=locator.owner,
            name=locator.name,
            url=locator.url,
            description=metadata.description,
            stars=metadata.stars,
            forks=metadata.forks,
            cloned=True,
            file_count=file_count,
            file_types=file_types,
            revision=revision
        )
        tracker.complete()
        logger.info(f"Repository {locator.namespace} ready with {file_count} files in {time.time() - st:.2f}s")
        return repository

    async def fetch_metadata(self, locator: RepositoryLocator) -> RepositoryMetadata:
        if self.metadata_client is None:
            return RepositoryMetadata()
        return await self.metadata_client.fetch(locator.owner, locator.name, host=locator.host)

    async def walk_files(self, namespace: str, path: str = "") -> AsyncIterator[str]:
        """Depth first walk yielding file paths, skipping version control directories and unreadable entries"""
        try:
            entries = await self.list_dir(namespace, path)
        except (NotFoundError, RepositoryIOError) as e:
            logger.warning(f"Error reading directory {path or '/'}: {e}")
            return

        for entry in entries:
            if entry in VCS_DIRECTORIES:
                continue

            entry_path = f"{path}/{entry}" if path else entry
            try:
                entry_stat = await self.stat(namespace, entry_path)
            except (NotFoundError, RepositoryIOError) as e:
                logger.warning(f"Error processing entry {entry_path}: {e}")
                continue

            if entry_stat.kind == NodeKind.DIRECTORY:
                async for file_path in self.walk_files(namespace, entry_path):
                    yield file_path
            else:
                yield entry_path

    async def analyze(self, namespace: str) -> Tuple[int, Dict[str, int]]:
        """Counts files and builds the extension histogram of a namespace"""
        file_count = 0
        file_types: Dict[str, int] = {}

        async for file_path in self.walk_files(namespace):
            file_count += 1
            ext = file_extension(file_path).lstrip(".") or NO_EXTENSION
            file_types[ext] = file_types.get(ext, 0) + 1

        return file_count, file_types
