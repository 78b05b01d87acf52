from repotide import RepoTide
from repotide.store import GitRepositoryStore, MemoryRepositoryStore
from repotide.core.config import RepoTideConfig
from repotide.core.errors import InputValidationError, NotFoundError, RepositoryNotLoadedError
from repotide.core.models import ContextBudget

import pytest

URL = "https://github.com/acme/notes"

FILES = {
    "README.md": "# Notes",
    "notes/app.py": "print('notes')\n",
    "notes/store.py": "NOTES = []\n",
    "docs/guide.md": "How to use it"
}

@pytest.fixture
def store():
    return MemoryRepositoryStore({"acme/notes": FILES, "acme/other": {"main.go": "package main"}})

@pytest.fixture
def tide(store):
    return RepoTide(store=store)

@pytest.mark.asyncio
async def test_operations_need_a_repository(tide):
    with pytest.raises(RepositoryNotLoadedError):
        await tide.get_tree()
    with pytest.raises(RepositoryNotLoadedError):
        await tide.get_file("README.md")
    with pytest.raises(RepositoryNotLoadedError):
        await tide.build_context()

@pytest.mark.asyncio
async def test_load_repository_makes_it_active(tide):
    progress = []
    repository = await tide.load_repository(URL, on_progress=progress.append)

    assert tide.repository is repository
    assert repository.owner == "acme"
    assert repository.name == "notes"
    assert repository.file_count == 4
    assert progress[-1].percent == 100

@pytest.mark.asyncio
async def test_tree_is_cached_until_refresh(tide, store):
    await tide.load_repository(URL)
    tree = await tide.get_tree()
    assert tree.name == "notes"
    assert await tide.get_tree() is tree

    store.mount("acme/notes", {"ONLY.md": "x"})
    await tide.load_repository(URL, force=True)
    refreshed = await tide.get_tree()
    assert refreshed is not tree
    assert [child.name for child in refreshed.children] == ["ONLY.md"]

@pytest.mark.asyncio
async def test_switching_repository_drops_cached_tree(tide):
    await tide.load_repository(URL)
    await tide.get_tree()
    await tide.load_repository("https://github.com/acme/other")
    assert await tide.list_files() == ["main.go"]

@pytest.mark.asyncio
async def test_get_file_normalizes_paths(tide):
    await tide.load_repository(URL)
    assert await tide.get_file("./notes/app.py") == "print('notes')\n"
    assert await tide.get_file("/notes/../README.md") == "# Notes"
    assert await tide.get_file_or_none("missing.txt") is None

    with pytest.raises(NotFoundError):
        await tide.get_file("notes")
    with pytest.raises(InputValidationError):
        await tide.get_file("../outside.txt")

@pytest.mark.asyncio
async def test_select_files_puts_canonical_first(tide):
    await tide.load_repository(URL)
    assert (await tide.select_files())[0] == "README.md"
    assert len(await tide.select_files(budget=2)) == 2
    assert await tide.select_files(budget=0) == []

@pytest.mark.asyncio
async def test_build_context_respects_budget(tide):
    await tide.load_repository(URL)
    context = await tide.build_context(["notes/app.py"], budget=ContextBudget(max_chars_per_file=5))

    assert "<FILE_START::notes/app.py>" in context
    assert "README.md" in context
    assert "<FILE_START::README.md>" not in context
    assert "print('notes')" not in context

@pytest.mark.asyncio
async def test_build_context_defaults_to_selected_files(tide):
    await tide.load_repository(URL)
    context = await tide.build_context()
    for path in FILES:
        assert f"<FILE_START::{path}>" in context

def test_from_config_uses_git_store(tmp_path):
    config = RepoTideConfig(storage_path=tmp_path, clone_timeout=30, budget=ContextBudget(max_selected_files=3))
    tide = RepoTide.from_config(config)

    assert isinstance(tide.store, GitRepositoryStore)
    assert tide.store.clone_timeout == 30
    assert tide.budget.max_selected_files == 3
    assert tide.repository is None
