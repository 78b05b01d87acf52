from repotide.core.errors import NotFoundError, RepositoryNotLoadedError
from repotide.core.models import ContextBudget, FileTreeNode, RemoteRepository
from repotide.core.config import RepoTideConfig
from repotide.core.common import normalize_path
from repotide.core.logs import logger
from repotide.context import ContextAssembler, build_file_tree, collect_file_paths, select_relevant_files
from repotide.store import BaseRepositoryStore, GitHubMetadataClient, GitRepositoryStore, ProgressCallback

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr
from typing import List, Optional
import time


class RepoTide(BaseModel):
    """Root model holding the currently loaded repository and the store it lives in"""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    store: BaseRepositoryStore
    budget: ContextBudget = Field(default_factory=ContextBudget)
    repository: Optional[RemoteRepository] = None
    _tree: Optional[FileTreeNode] = PrivateAttr(default=None)

    @classmethod
    def from_config(cls, config: RepoTideConfig) -> "RepoTide":
        store = GitRepositoryStore(
            storage_path=config.storage_path,
            metadata_client=GitHubMetadataClient(token=config.github_token),
            clone_timeout=config.clone_timeout
        )
        return cls(store=store, budget=config.budget)

    def require_repository(self) -> RemoteRepository:
        if self.repository is None:
            raise RepositoryNotLoadedError()
        return self.repository

    @property
    def assembler(self) -> ContextAssembler:
        return ContextAssembler(self.budget)

    async def load_repository(
        self,
        url: str,
        on_progress: Optional[ProgressCallback] = None,
        force: bool = False) -> RemoteRepository:
        """
        Clone `url` and make it the active repository.

        The previous repository and its cached tree are dropped only once the
        new clone succeeded.
        """
        repository = await self.store.clone_repository(url, on_progress=on_progress, force=force)
        self.repository = repository
        self._tree = None
        return repository

    async def get_tree(self, refresh: bool = False) -> FileTreeNode:
        repository = self.require_repository()
        if self._tree is None or refresh:
            st = time.time()
            self._tree = await build_file_tree(self.store, repository.namespace, repository.name)
            logger.info(f"Built file tree for {repository.namespace} in {time.time() - st:.2f}s")
        return self._tree

    async def render_tree(self) -> str:
        return self.assembler.render_tree(await self.get_tree())

    async def get_file(self, path: str) -> str:
        """
        Raises:
            RepositoryNotLoadedError: no repository loaded.
            NotFoundError: missing path or a directory.
            RepositoryIOError: the file could not be read as text.
        """
        repository = self.require_repository()
        return await self.store.read_file(repository.namespace, normalize_path(path))

    async def get_file_or_none(self, path: str) -> Optional[str]:
        try:
            return await self.get_file(path)
        except NotFoundError:
            return None

    async def list_files(self) -> List[str]:
        return collect_file_paths(await self.get_tree())

    async def select_files(self, budget: Optional[int] = None) -> List[str]:
        if budget is None:
            budget = self.budget.max_selected_files
        return select_relevant_files(await self.list_files(), budget)

    async def build_context(self, paths: Optional[List[str]] = None, budget: Optional[ContextBudget] = None) -> str:
        """
        Prompt ready description of the repository: metadata, tree and the
        contents of `paths` (the most relevant files when omitted).
        """
        repository = self.require_repository()
        assembler = ContextAssembler(budget or self.budget)
        tree = await self.get_tree()
        if paths is None:
            paths = select_relevant_files(collect_file_paths(tree), assembler.budget.max_selected_files)
        return await assembler.assemble(repository, tree, paths, self.get_file)


__all__ = ["RepoTide"]
