from ..core.errors import InvalidReferenceError
from ..core.models import RepositoryLocator

import re

REPOSITORY_URL_PATTERN = re.compile(
    r'^(?:(?:https?|git|ssh)://)?'  # Optional protocol
    r'(?:[^@/\s]+@)?'  # Optional username
    r'(?P<host>[A-Za-z0-9.-]+\.[A-Za-z]{2,}|localhost)(?::\d+)?'  # Domain
    r'[:/](?P<owner>[A-Za-z0-9_.-]+)'  # Owner
    r'/(?P<name>[A-Za-z0-9_.-]+?)(?:\.git)?'  # Repo name
    r'(?:/[^\s]*)?/?$'  # Trailing path segments (tree/main/...)
)


def parse_repository_url(url: str) -> RepositoryLocator:
    """
    Parse a repository locator of the form `host/owner/name`.

    Accepts https/http/git/ssh URLs, scp-like `git@host:owner/name.git`
    and bare `host/owner/name` references.

    Raises:
        InvalidReferenceError: if the reference is malformed.
    """
    if not isinstance(url, str) or not url.strip():
        raise InvalidReferenceError("A repository URL is required")

    url = url.strip()
    match = REPOSITORY_URL_PATTERN.match(url)
    if not match:
        raise InvalidReferenceError(f"Invalid repository URL format: {url}")

    host = match.group("host").lower()
    owner = match.group("owner")
    name = match.group("name")

    if owner in (".", "..") or name in (".", ".."):
        raise InvalidReferenceError(f"Invalid repository URL format: {url}")

    return RepositoryLocator(
        host=host,
        owner=owner,
        name=name,
        url=f"https://{host}/{owner}/{name}",
        clone_url=f"https://{host}/{owner}/{name}.git"
    )
