from typing import Optional


class RepoTideError(Exception):
    """Base class for every error raised by the engine"""


class InputValidationError(RepoTideError, ValueError):
    """Bad caller input (malformed URL, missing field). Never retried."""


class InvalidReferenceError(InputValidationError):
    """The repository locator could not be parsed into host/owner/name"""


class RepositoryNotLoadedError(RepoTideError):
    def __init__(self, message: str = "No repository is currently loaded. Load a repository first."):
        super().__init__(message)


class NotFoundError(RepoTideError, FileNotFoundError):
    """A path does not exist in the repository namespace"""

    def __init__(self, path: str, message: Optional[str] = None):
        self.path = path
        super().__init__(message or f"File not found: {path}")


class RepositoryIOError(RepoTideError, OSError):
    """Reading the namespace failed for a reason other than a missing path"""


class CloneError(RepoTideError):
    pass


class UnsupportedOperationError(RepoTideError, NotImplementedError):
    pass


class CompletionError(RepoTideError):
    """Base class for completion failures. `retryable` drives the resilience layer."""
    retryable: bool = False


class TransientUpstreamError(CompletionError):
    retryable = True


class MalformedResponseError(CompletionError):
    retryable = True


class EmptyResponseError(CompletionError):
    retryable = True


class HttpError(CompletionError):
    summary = "API request failed with status {status}"

    def __init__(self, status: int, message: Optional[str] = None):
        self.status = status
        self.upstream_message = message
        text = self.summary.format(status=status)
        super().__init__(f"{text}: {message}" if message else text)


class AuthenticationError(HttpError):
    """401/403. Retrying with the same credentials cannot succeed."""
    summary = "Authentication error ({status}). Please check your API key"


class RateLimitError(HttpError, TransientUpstreamError):
    summary = "API rate limit exceeded ({status}). Please try again in a few moments"
    retryable = True


class UpstreamServerError(HttpError, TransientUpstreamError):
    summary = "The AI service is currently unavailable ({status}). Please try again later"
    retryable = True


class ConnectivityError(RepoTideError):
    """The provider was (recently) found unreachable or without usable models"""


def classify_http_error(status: int, message: Optional[str] = None) -> HttpError:
    if status in (401, 403):
        return AuthenticationError(status, message)
    if status == 429:
        return RateLimitError(status, message)
    if status >= 500:
        return UpstreamServerError(status, message)
    return HttpError(status, message)
