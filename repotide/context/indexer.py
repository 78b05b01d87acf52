from ..core.defaults import VCS_DIRECTORIES
from ..core.errors import NotFoundError, RepositoryIOError
from ..core.models import FileTreeNode, NodeKind
from ..core.logs import logger
from ..store.base import BaseRepositoryStore

from typing import List


async def _populate(store: BaseRepositoryStore, namespace: str, node: FileTreeNode):
    try:
        entries = await store.list_dir(namespace, node.path)
    except (NotFoundError, RepositoryIOError) as e:
        logger.warning(f"Error reading directory {node.path or '/'}: {e}")
        return

    for entry in entries:
        if entry in VCS_DIRECTORIES:
            continue

        entry_path = f"{node.path}/{entry}" if node.path else entry
        try:
            entry_stat = await store.stat(namespace, entry_path)
        except (NotFoundError, RepositoryIOError) as e:
            logger.warning(f"Error processing entry {entry_path}: {e}")
            continue

        if entry_stat.kind == NodeKind.DIRECTORY:
            child = FileTreeNode.directory(entry, entry_path)
            await _populate(store, namespace, child)
        else:
            child = FileTreeNode.file(entry, entry_path)
        node.children.append(child)


async def build_file_tree(store: BaseRepositoryStore, namespace: str, root_name: str = "") -> FileTreeNode:
    """
    Builds the hierarchical view of a repository namespace.

    Children keep the order in which the store lists them. Version control
    metadata directories are skipped, and so are entries that fail to list
    or stat (logged as warnings), so a partial tree is returned rather than
    an error.
    """
    root = FileTreeNode.directory(root_name or namespace, "")
    await _populate(store, namespace, root)
    return root


def collect_file_paths(tree: FileTreeNode) -> List[str]:
    return [node.path for node in tree.iter_files()]
