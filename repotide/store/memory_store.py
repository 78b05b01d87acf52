from ..core.defaults import DEFAULT_ENCODING
from ..core.errors import NotFoundError, RepositoryIOError, UnsupportedOperationError
from ..core.models import EntryStat, NodeKind, RepositoryLocator
from ..core.common import normalize_path
from ..core.logs import logger
from .base import BaseRepositoryStore, ProgressTracker
from .metadata import GitHubMetadataClient

from typing import Dict, List, Optional, Union

FileContent = Union[str, bytes]


class MemoryRepositoryStore(BaseRepositoryStore):
    """
    Headless store backed by in-memory file maps.

    Sources are mounted per `owner/name` namespace and copied into the store on
    clone, so nothing ever touches the network or the local filesystem. Cloning
    a namespace without a mounted source is unsupported.
    """

    def __init__(
        self,
        sources: Optional[Dict[str, Dict[str, FileContent]]] = None,
        metadata_client: Optional[GitHubMetadataClient] = None):

        super().__init__(metadata_client=metadata_client)
        self.sources: Dict[str, Dict[str, FileContent]] = {}
        self.namespaces: Dict[str, Dict[str, FileContent]] = {}
        for namespace, files in (sources or {}).items():
            self.mount(namespace, files)

    def mount(self, namespace: str, files: Dict[str, FileContent]):
        """Register the content served when `namespace` gets cloned"""
        self.sources[normalize_path(namespace)] = {
            normalize_path(path): content for path, content in files.items()
        }

    async def _fetch(self, locator: RepositoryLocator, tracker: ProgressTracker, force: bool = False) -> Optional[str]:
        namespace = locator.namespace
        if namespace in self.namespaces and not force:
            logger.info(f"Namespace {namespace} already populated, reusing it")
            return None

        if namespace not in self.sources:
            raise UnsupportedOperationError(
                f"Cannot fetch {locator.url}: no in-memory source mounted for {namespace}"
            )

        self.namespaces[namespace] = dict(self.sources[namespace])
        tracker.report("Receiving objects", 80)
        return None

    async def exists(self, namespace: str) -> bool:
        return normalize_path(namespace) in self.namespaces

    def _files(self, namespace: str) -> Dict[str, FileContent]:
        files = self.namespaces.get(normalize_path(namespace))
        if files is None:
            raise NotFoundError(namespace, f"Repository namespace not found: {namespace}")
        return files

    def _is_dir(self, files: Dict[str, FileContent], path: str) -> bool:
        if not path:
            return True
        prefix = f"{path}/"
        return any(file_path.startswith(prefix) for file_path in files)

    async def list_dir(self, namespace: str, path: str = "") -> List[str]:
        files = self._files(namespace)
        path = normalize_path(path)
        if not self._is_dir(files, path):
            raise NotFoundError(path, f"Directory not found: {path or '/'}")

        prefix = f"{path}/" if path else ""
        entries = {}
        for file_path in files:
            if not file_path.startswith(prefix):
                continue
            entries.setdefault(file_path[len(prefix):].split("/", 1)[0], None)
        return list(entries)

    async def stat(self, namespace: str, path: str) -> EntryStat:
        files = self._files(namespace)
        path = normalize_path(path)
        if path in files:
            content = files[path]
            size = len(content) if isinstance(content, bytes) else len(content.encode(DEFAULT_ENCODING))
            return EntryStat(kind=NodeKind.FILE, size=size)
        if self._is_dir(files, path):
            return EntryStat(kind=NodeKind.DIRECTORY)
        raise NotFoundError(path)

    async def read_file(self, namespace: str, path: str) -> str:
        files = self._files(namespace)
        path = normalize_path(path)
        if path not in files:
            raise NotFoundError(path)

        content = files[path]
        if isinstance(content, str):
            return content
        try:
            return content.decode(DEFAULT_ENCODING)
        except UnicodeDecodeError as e:
            raise RepositoryIOError(f"{path} is not a text file: {e}") from e
