from ..core.defaults import BREAKLINE, TRUNCATION_MARKER
from ..core.errors import NotFoundError, RepositoryIOError
from ..core.models import ContextBudget, FileTreeNode, RemoteRepository
from ..core.common import truncate, wrap_content
from ..core.logs import logger

from typing import Awaitable, Callable, List, Optional, Tuple

FileReader = Callable[[str], Awaitable[str]]

REPOSITORY_SUMMARY_TEMPLATE = """Repository: {owner}/{name}
Description: {description}
Total files: {file_count}
Main file types: {file_types}"""


class ContextAssembler:
    """Turns repository metadata, the file tree and selected file contents into one prompt-ready block"""

    def __init__(self, budget: Optional[ContextBudget] = None):
        self.budget = budget or ContextBudget()

    def render_metadata(self, repository: RemoteRepository) -> str:
        return REPOSITORY_SUMMARY_TEMPLATE.format(
            owner=repository.owner,
            name=repository.name,
            description=repository.description or "No description provided",
            file_count=repository.file_count,
            file_types=", ".join(repository.main_file_types()) or "none"
        )

    def render_tree(self, node: FileTreeNode) -> str:
        lines = [f"{node.name}/"]
        self._render_tree_node(node, "", lines)
        return BREAKLINE.join(lines)

    def _render_tree_node(self, node: FileTreeNode, prefix: str, lines: List[str]):
        children = sorted(node.children or [], key=lambda child: (not child.is_dir, child.name))
        limit = self.budget.max_tree_entries_per_level
        shown = children[:limit]
        hidden = len(children) - len(shown)

        for i, child in enumerate(shown):
            is_last_item = i == len(shown) - 1 and not hidden

            if is_last_item:
                current_prefix = "└── "
                next_prefix = prefix + "    "
            else:
                current_prefix = "├── "
                next_prefix = prefix + "│   "

            if child.is_dir:
                lines.append(f"{prefix}{current_prefix}{child.name}/")
                self._render_tree_node(child, next_prefix, lines)
            else:
                lines.append(f"{prefix}{current_prefix}{child.name}")

        if hidden:
            lines.append(f"{prefix}└── ... and {hidden} more items")

    async def render_file_sections(self, paths: List[str], reader: FileReader) -> Tuple[str, List[str]]:
        """
        Reads and wraps every path in order, truncating long files.

        Unreadable files are logged and left out instead of failing the whole
        context. Returns the rendered sections and the paths actually included.
        """
        sections = []
        included = []
        for path in paths:
            try:
                content = await reader(path)
            except (NotFoundError, RepositoryIOError) as e:
                logger.warning(f"Skipping {path} in context: {e}")
                continue

            content, was_truncated = truncate(content, self.budget.max_chars_per_file, TRUNCATION_MARKER)
            if was_truncated:
                logger.debug(f"Truncated {path} to {self.budget.max_chars_per_file} characters")

            sections.append(wrap_content(content, path))
            included.append(path)

        return BREAKLINE.join(sections), included

    async def assemble(
        self,
        repository: RemoteRepository,
        tree: FileTreeNode,
        paths: List[str],
        reader: FileReader) -> str:

        file_sections, included = await self.render_file_sections(paths, reader)
        logger.info(f"Assembled context for {repository.namespace} with {len(included)}/{len(paths)} files")

        parts = [
            self.render_metadata(repository),
            "File structure:",
            self.render_tree(tree)
        ]
        if file_sections:
            parts.extend(["Relevant files:", file_sections])
        return (BREAKLINE * 2).join(parts)
