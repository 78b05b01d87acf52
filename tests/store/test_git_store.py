from repotide import RepoTide
from repotide.store.git_store import GitRepositoryStore, git_progress_percent
from repotide.store.base import ProgressTracker
from repotide.core.errors import CloneError, NotFoundError, RepositoryIOError
from repotide.core.models import NodeKind, RepositoryLocator

from pathlib import Path
import pygit2
import shutil
import pytest

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git executable not available")

def commit_files(path: Path, files: dict) -> pygit2.Repository:
    """Creates a repository at `path` with a single commit holding `files`"""
    repo = pygit2.init_repository(str(path))
    for relative, content in files.items():
        file_path = path / relative
        file_path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            file_path.write_bytes(content)
        else:
            file_path.write_text(content, encoding="utf8")

    index = repo.index
    index.add_all()
    index.write()
    tree = index.write_tree()
    signature = pygit2.Signature("RepoTide", "tests@repotide.dev")
    repo.create_commit("HEAD", signature, signature, "initial commit", tree, [])
    return repo

@pytest.fixture
def store(tmp_path):
    return GitRepositoryStore(storage_path=tmp_path / "storage")

@pytest.fixture
def populated_store(store):
    """A store whose acme/widgets namespace already holds a working copy"""
    commit_files(store.namespace_path("acme/widgets"), {
        "README.md": "# Widgets",
        "src/widgets/core.py": "class Widget:\n    pass\n",
        "assets/logo.bin": b"\xff\xfe\x00\x81",
        "Makefile": "all:"
    })
    return store

@pytest.mark.parametrize("line, expected", [
    ("Receiving objects:  50% (5/10)", ("Receiving objects", 45.0)),
    ("remote: Counting objects: 100% (3/3), done.", ("Counting objects", 5.0)),
    ("Resolving deltas:   0% (0/2)", ("Resolving deltas", 80.0)),
    ("Cloning into 'widgets'...", None),
    ("Unknown phase:  10%", None)
])
def test_git_progress_percent(line, expected):
    assert git_progress_percent(line) == expected

@pytest.mark.asyncio
async def test_clone_reuses_existing_working_copy(populated_store):
    reported = []
    repository = await populated_store.clone_repository(
        "https://github.com/acme/widgets", on_progress=reported.append
    )

    assert repository.cloned
    assert repository.file_count == 4
    assert repository.file_types["py"] == 1
    assert repository.revision is not None and len(repository.revision) == 40
    assert reported[-1].percent == 100

@pytest.mark.asyncio
async def test_browse_working_copy(populated_store):
    entries = await populated_store.list_dir("acme/widgets")
    assert sorted(entries) == sorted([".git", "README.md", "src", "assets", "Makefile"])

    assert (await populated_store.stat("acme/widgets", "src")).kind == NodeKind.DIRECTORY
    assert (await populated_store.stat("acme/widgets", "README.md")).kind == NodeKind.FILE
    assert await populated_store.read_file("acme/widgets", "src/widgets/core.py") == "class Widget:\n    pass\n"

@pytest.mark.asyncio
async def test_read_errors(populated_store):
    with pytest.raises(NotFoundError):
        await populated_store.read_file("acme/widgets", "missing.py")
    with pytest.raises(NotFoundError):
        await populated_store.read_file("acme/widgets", "src")
    with pytest.raises(RepositoryIOError):
        await populated_store.read_file("acme/widgets", "assets/logo.bin")
    with pytest.raises(NotFoundError):
        await populated_store.list_dir("acme/widgets", "nope")

@pytest.mark.asyncio
@requires_git
async def test_run_clone_from_local_repository(store, tmp_path):
    source = tmp_path / "source"
    commit_files(source, {"main.py": "print('hi')\n"})
    target = tmp_path / "clone"

    reported = []
    await store._run_clone(source.as_uri(), target, ProgressTracker(reported.append))

    assert (target / "main.py").read_text(encoding="utf8") == "print('hi')\n"
    assert all(progress.percent < 100 for progress in reported)

@pytest.mark.asyncio
@requires_git
async def test_run_clone_failure_raises_and_cleans_up(store, tmp_path):
    target = tmp_path / "clone"
    with pytest.raises(CloneError):
        await store._run_clone((tmp_path / "does-not-exist").as_uri(), target, ProgressTracker())
    assert not target.exists()

@pytest.mark.asyncio
async def test_missing_git_executable_raises_clone_error(tmp_path):
    store = GitRepositoryStore(storage_path=tmp_path, git_executable="definitely-not-git-executable")
    with pytest.raises(CloneError):
        await store.clone_repository("https://github.com/acme/widgets")

def widgets_locator(clone_url: str) -> RepositoryLocator:
    return RepositoryLocator(host="local", owner="acme", name="widgets", url=clone_url, clone_url=clone_url)

@pytest.mark.asyncio
async def test_failed_forced_reload_keeps_active_working_copy(tmp_path):
    store = GitRepositoryStore(storage_path=tmp_path, git_executable="definitely-not-git-executable")
    commit_files(store.namespace_path("acme/widgets"), {"README.md": "# Widgets"})
    tide = RepoTide(store=store)
    repository = await tide.load_repository("https://github.com/acme/widgets")

    with pytest.raises(CloneError):
        await tide.load_repository("https://github.com/acme/widgets", force=True)

    assert tide.repository is repository
    assert await tide.get_file("README.md") == "# Widgets"
    assert not store.staging_path("acme/widgets").exists()

@pytest.mark.asyncio
@requires_git
async def test_forced_reclone_swaps_in_new_working_copy(populated_store, tmp_path):
    source = tmp_path / "source"
    commit_files(source, {"README.md": "# Widgets v2"})

    revision = await populated_store._fetch(widgets_locator(source.as_uri()), ProgressTracker(), force=True)

    assert revision is not None and len(revision) == 40
    assert await populated_store.read_file("acme/widgets", "README.md") == "# Widgets v2"
    with pytest.raises(NotFoundError):
        await populated_store.read_file("acme/widgets", "Makefile")
    assert not populated_store.staging_path("acme/widgets").exists()

@pytest.mark.asyncio
@requires_git
async def test_failed_forced_reclone_leaves_working_copy_untouched(populated_store, tmp_path):
    locator = widgets_locator((tmp_path / "does-not-exist").as_uri())
    with pytest.raises(CloneError):
        await populated_store._fetch(locator, ProgressTracker(), force=True)

    assert await populated_store.read_file("acme/widgets", "README.md") == "# Widgets"
    assert not populated_store.staging_path("acme/widgets").exists()
