from ..core.defaults import DEFAULT_ENCODING, DEFAULT_REPOSITORIES_DIR, DEFAULT_STORAGE_PATH
from ..core.errors import CloneError, NotFoundError, RepositoryIOError
from ..core.models import EntryStat, NodeKind, RepositoryLocator
from ..core.common import normalize_path
from ..core.logs import logger
from .base import BaseRepositoryStore, FETCH_DONE_PERCENT, ProgressTracker
from .metadata import GitHubMetadataClient

from typing import List, Optional, Union
from pathlib import Path
import aiofiles.os
import aiofiles
import asyncio
import pygit2
import shutil
import stat
import re
import os

GIT_PROGRESS_PATTERN = re.compile(r"(?P<phase>[A-Za-z ]+):\s+(?P<percent>\d{1,3})%")

# overall percent range covered by each git progress phase
GIT_PHASE_RANGES = {
    "Enumerating objects": (0, 2),
    "Counting objects": (2, 5),
    "Compressing objects": (5, 10),
    "Receiving objects": (10, 80),
    "Resolving deltas": (80, 88),
    "Updating files": (88, FETCH_DONE_PERCENT)
}

STDERR_TAIL_LINES = 20
STAGING_SUFFIX = ".partial"


def git_progress_percent(line: str) -> Optional[tuple]:
    """Maps a git progress line to `(phase, overall_percent)`, or None for other output"""
    match = GIT_PROGRESS_PATTERN.search(line)
    if not match:
        return None

    phase = match.group("phase").strip()
    if phase not in GIT_PHASE_RANGES:
        return None

    start, end = GIT_PHASE_RANGES[phase]
    percent = min(int(match.group("percent")), 100)
    return phase, start + (end - start) * percent / 100


class GitRepositoryStore(BaseRepositoryStore):
    """Namespaces are working copies under `<storage_path>/repositories/<owner>/<name>`"""

    def __init__(
        self,
        storage_path: Union[str, Path] = DEFAULT_STORAGE_PATH,
        metadata_client: Optional[GitHubMetadataClient] = None,
        clone_timeout: Optional[float] = None,
        git_executable: str = "git"):

        super().__init__(metadata_client=metadata_client)
        self.root = Path(storage_path) / DEFAULT_REPOSITORIES_DIR
        self.clone_timeout = clone_timeout
        self.git_executable = git_executable

    def namespace_path(self, namespace: str) -> Path:
        return self.root / normalize_path(namespace)

    def _resolve(self, namespace: str, path: str) -> Path:
        relative = normalize_path(path)
        base = self.namespace_path(namespace)
        return base / relative if relative else base

    @staticmethod
    def _open_repository(path: Path) -> Optional[pygit2.Repository]:
        try:
            return pygit2.Repository(str(path))
        except (pygit2.GitError, KeyError):
            return None

    @staticmethod
    def _head_revision(repo: Optional[pygit2.Repository]) -> Optional[str]:
        if repo is None or repo.head_is_unborn:
            return None
        try:
            return str(repo.head.target)
        except pygit2.GitError:
            return None

    async def exists(self, namespace: str) -> bool:
        return await aiofiles.os.path.isdir(self.namespace_path(namespace))

    def staging_path(self, namespace: str) -> Path:
        target = self.namespace_path(namespace)
        return target.with_name(f".{target.name}{STAGING_SUFFIX}")

    async def _fetch(self, locator: RepositoryLocator, tracker: ProgressTracker, force: bool = False) -> Optional[str]:
        target = self.namespace_path(locator.namespace)

        if await aiofiles.os.path.isdir(target):
            repo = await asyncio.to_thread(self._open_repository, target)
            if repo is not None and not force:
                logger.info(f"Directory {target} already holds {locator.namespace}, reusing it")
                return self._head_revision(repo)

        # the current working copy stays in place until the new clone succeeded
        staging = self.staging_path(locator.namespace)
        await _remove_tree(staging)
        await aiofiles.os.makedirs(target.parent, exist_ok=True)
        await self._run_clone(locator.clone_url, staging, tracker)

        if await aiofiles.os.path.isdir(target):
            logger.info(f"Replacing existing directory {target}")
            await _remove_tree(target)
        await aiofiles.os.replace(staging, target)
        logger.info(f"finished cloning to {target}")

        repo = await asyncio.to_thread(self._open_repository, target)
        return self._head_revision(repo)

    async def _run_clone(self, url: str, target: Path, tracker: ProgressTracker):
        try:
            process = await asyncio.create_subprocess_exec(
                self.git_executable, "clone", "--depth", "1", "--single-branch", "--progress",
                url, str(target),
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
                env={**os.environ, "GIT_TERMINAL_PROMPT": "0"}
            )
        except OSError as e:
            raise CloneError(f"Could not start git to clone {url}: {e}") from e

        tail: List[str] = []
        try:
            await asyncio.wait_for(self._consume_progress(process, tracker, tail), timeout=self.clone_timeout)
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            await _remove_tree(target)
            raise CloneError(f"Timeout while cloning {url}")

        if process.returncode != 0:
            await _remove_tree(target)
            details = "\n".join(tail[-STDERR_TAIL_LINES:])
            raise CloneError(f"git clone of {url} failed with exit code {process.returncode}: {details}")

    @staticmethod
    async def _consume_progress(process: asyncio.subprocess.Process, tracker: ProgressTracker, tail: List[str]):
        buffer = ""
        while True:
            chunk = await process.stderr.read(1024)
            if not chunk:
                break

            buffer += chunk.decode(DEFAULT_ENCODING, errors="replace")
            # git rewrites progress lines in place with carriage returns
            *lines, buffer = re.split(r"[\r\n]", buffer)
            for line in lines:
                line = line.strip()
                if not line:
                    continue
                progress = git_progress_percent(line)
                if progress is not None:
                    tracker.report(*progress)
                else:
                    tail.append(line)

        if buffer.strip():
            tail.append(buffer.strip())
        await process.wait()

    async def list_dir(self, namespace: str, path: str = "") -> List[str]:
        full_path = self._resolve(namespace, path)
        try:
            return await aiofiles.os.listdir(full_path)
        except (FileNotFoundError, NotADirectoryError) as e:
            raise NotFoundError(path, f"Directory not found: {path or '/'}") from e
        except OSError as e:
            raise RepositoryIOError(f"Error reading directory {path or '/'}: {e}") from e

    async def stat(self, namespace: str, path: str) -> EntryStat:
        full_path = self._resolve(namespace, path)
        try:
            entry_stat = await aiofiles.os.stat(full_path)
        except FileNotFoundError as e:
            raise NotFoundError(path) from e
        except OSError as e:
            raise RepositoryIOError(f"Error reading {path}: {e}") from e

        kind = NodeKind.DIRECTORY if stat.S_ISDIR(entry_stat.st_mode) else NodeKind.FILE
        return EntryStat(kind=kind, size=entry_stat.st_size)

    async def read_file(self, namespace: str, path: str) -> str:
        full_path = self._resolve(namespace, path)
        if await aiofiles.os.path.isdir(full_path):
            raise NotFoundError(path, f"Path is not a file: {path}")

        try:
            async with aiofiles.open(full_path, "r", encoding=DEFAULT_ENCODING) as _file:
                return await _file.read()
        except FileNotFoundError as e:
            raise NotFoundError(path) from e
        except UnicodeDecodeError as e:
            raise RepositoryIOError(f"{path} is not a text file: {e}") from e
        except OSError as e:
            raise RepositoryIOError(f"Error reading {path}: {e}") from e


def _remove_readonly(func, path, _):
    """Clear the readonly bit and reattempt the removal"""
    os.chmod(path, stat.S_IWRITE)
    func(path)


async def _remove_tree(path: Path):
    if await aiofiles.os.path.exists(path):
        await asyncio.to_thread(shutil.rmtree, path, onerror=_remove_readonly)
