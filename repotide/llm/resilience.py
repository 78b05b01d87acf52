from ..core.defaults import (
    DEFAULT_CONNECTIVITY_TTL, DEFAULT_MAX_RETRIES, DEFAULT_RETRY_DELAY,
    FALLBACK_MODELS, REQUIRED_MODELS, TASK_DEFAULT_MODELS
)
from ..core.errors import AuthenticationError, CompletionError, ConnectivityError, HttpError, InputValidationError
from ..core.models import (
    CompletionRequest, ConnectivityState, ConnectivityStatus, Message, ModelFallbackChain, TaskType
)
from ..core.logs import logger
from .client import ChunkCallback, CompleteCallback, CompletionClient, maybe_await

from typing import Awaitable, Callable, Dict, List, Optional, Union
import asyncio
import time

Messages = Union[str, List[Message]]


def as_messages(messages: Messages) -> List[Message]:
    if isinstance(messages, str):
        return [Message(role="user", content=messages)]
    return list(messages)


class ConnectivityMonitor:
    """
    Caches whether the completion provider is reachable and advertises the
    models the engine relies on. A status is reused for `ttl` seconds.
    """

    def __init__(
        self,
        client: CompletionClient,
        required_models: Optional[List[str]] = None,
        fallback_models: Optional[List[str]] = None,
        ttl: float = DEFAULT_CONNECTIVITY_TTL,
        clock: Callable[[], float] = time.monotonic,
        task_defaults: Optional[Dict[str, str]] = None):

        self.client = client
        self.required_models = REQUIRED_MODELS if required_models is None else required_models
        self.fallback_models = FALLBACK_MODELS if fallback_models is None else fallback_models
        self.task_defaults = TASK_DEFAULT_MODELS if task_defaults is None else task_defaults
        self.ttl = ttl
        self.clock = clock
        self._status: Optional[ConnectivityStatus] = None

    def cached(self) -> Optional[ConnectivityStatus]:
        """The last status while it is still fresh, otherwise None"""
        if self._status is None or self._status.is_stale(self.clock()):
            return None
        return self._status

    def _record(self, state: ConnectivityState, message: Optional[str] = None) -> ConnectivityStatus:
        self._status = ConnectivityStatus(state=state, message=message, checked_at=self.clock(), ttl=self.ttl)
        return self._status

    async def check(self, force: bool = False) -> ConnectivityStatus:
        """
        Raises:
            AuthenticationError: the provider rejected the credentials. Nothing is cached,
                so the next call asks the provider again.
        """
        if not force:
            status = self.cached()
            if status is not None:
                logger.debug(f"Using cached connectivity status: {status.state.value}")
                return status

        try:
            available = set(await self.client.list_models())
        except AuthenticationError:
            # a rejected key is a credential failure, not a connectivity one
            raise
        except CompletionError as e:
            logger.error(f"Connectivity check failed: {e}")
            return self._record(ConnectivityState.ERROR, str(e))

        missing = [model for model in self.required_models if model not in available]
        if missing:
            logger.warning(f"Some required models are not available: {', '.join(missing)}")

        if not any(model in available for model in self.fallback_models):
            logger.error("None of the fallback models are available")
            return self._record(
                ConnectivityState.ERROR,
                "Critical models are unavailable. Please try again later."
            )

        return self._record(ConnectivityState.OK)

    async def best_available_model(self, preferred: str, task_type: TaskType = "general") -> str:
        """
        `preferred` while connectivity is OK, the task type default otherwise.

        Only useful to callers driving a client without this monitor: a
        `ResilientCompletionClient` sharing the monitor refuses every request
        while the cached status is ERROR, whatever the model.
        """
        status = await self.check()
        if status.ok:
            return preferred
        fallback = self.task_defaults.get(task_type, preferred)
        logger.warning(f"Connectivity degraded, using {fallback} instead of {preferred}")
        return fallback


class ResilientCompletionClient:
    """
    Retries the preferred model, then walks the fallback chain once per model.

    Whether an error is worth another attempt is decided by its `retryable`
    flag. Credential and input errors abort immediately, other non retryable
    HTTP errors move straight to the next model.
    """

    def __init__(
        self,
        client: CompletionClient,
        fallback_chain: Optional[ModelFallbackChain] = None,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        monitor: Optional[ConnectivityMonitor] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep):

        self.client = client
        self.fallback_chain = fallback_chain or ModelFallbackChain.from_defaults()
        self.max_retries = max(1, max_retries)
        self.retry_delay = retry_delay
        self.monitor = monitor
        self.sleep = sleep

    def _ensure_connectivity(self):
        if self.monitor is None:
            return
        status = self.monitor.cached()
        if status is not None and not status.ok:
            raise ConnectivityError(f"Connectivity problem: {status.message}")

    def _attempts(self, preferred: str) -> List[tuple]:
        attempts = [(preferred, attempt) for attempt in range(self.max_retries)]
        attempts.extend((model, 0) for model in self.fallback_chain.excluding(preferred))
        return attempts

    async def _run(self, request: CompletionRequest, call, can_retry: Callable[[], bool] = lambda: True):
        self._ensure_connectivity()

        last_error: Optional[Exception] = None
        skip_model: Optional[str] = None
        for model, attempt in self._attempts(request.model):
            if model == skip_model:
                continue

            if attempt > 0:
                logger.info(f"Retrying {model} in {self.retry_delay}s (attempt {attempt + 1}/{self.max_retries})")
                await self.sleep(self.retry_delay)
            elif model != request.model:
                logger.info(f"Falling back to model {model}")

            try:
                return await call(request.with_model(model))
            except (AuthenticationError, InputValidationError):
                raise
            except CompletionError as e:
                if not can_retry():
                    raise
                last_error = e
                logger.warning(f"Completion with {model} failed: {e}")
                if isinstance(e, HttpError) and not e.retryable:
                    skip_model = model

        logger.error(f"All models failed for request, last error: {last_error}")
        raise last_error

    async def complete_request(self, request: CompletionRequest) -> str:
        return await self._run(request, self.client.complete)

    async def complete(
        self,
        system_prompt: str,
        messages: Messages,
        model: Optional[str] = None) -> str:

        request = CompletionRequest(
            system_prompt=system_prompt,
            messages=as_messages(messages),
            model=model or next(iter(self.fallback_chain))
        )
        return await self.complete_request(request)

    async def stream(
        self,
        system_prompt: str,
        messages: Messages,
        model: Optional[str] = None,
        on_chunk: Optional[ChunkCallback] = None,
        on_complete: Optional[CompleteCallback] = None) -> str:
        """Same fallback behaviour as `complete`, but only until the first chunk reached the caller"""
        request = CompletionRequest(
            system_prompt=system_prompt,
            messages=as_messages(messages),
            model=model or next(iter(self.fallback_chain)),
            stream=True
        )
        delivered = False

        async def forward(chunk: str):
            nonlocal delivered
            delivered = True
            if on_chunk is not None:
                await maybe_await(on_chunk(chunk))

        async def call(attempt_request: CompletionRequest) -> str:
            return await self.client.stream(attempt_request, on_chunk=forward, on_complete=on_complete)

        return await self._run(request, call, can_retry=lambda: not delivered)
