from ..core.defaults import DEFAULT_APP_TITLE, DEFAULT_BASE_URL, DEFAULT_HTTP_REFERER, STREAM_DONE_SENTINEL
from ..core.errors import (
    EmptyResponseError, InputValidationError, MalformedResponseError,
    TransientUpstreamError, classify_http_error
)
from ..core.models import CompletionRequest
from ..core.logs import logger

from typing import Any, Awaitable, Callable, Dict, List, Optional, Union
import inspect
import orjson
import httpx

ChunkCallback = Callable[[str], Union[None, Awaitable[None]]]
CompleteCallback = Callable[[str], Union[None, Awaitable[None]]]

SSE_DATA_PREFIX = "data:"


async def maybe_await(result):
    if inspect.isawaitable(result):
        await result


def _error_message(body: Any) -> Optional[str]:
    """Pulls `error.message` out of an upstream error payload"""
    if not isinstance(body, dict):
        return None
    error = body.get("error")
    if isinstance(error, dict):
        message = error.get("message")
        return str(message) if message else None
    if isinstance(error, str):
        return error
    return None


class CompletionClient:
    """
    Thin async client for an OpenAI compatible chat completions endpoint.

    Maps every wire level failure onto the `CompletionError` hierarchy so the
    resilience layer can decide what to retry.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: str = DEFAULT_BASE_URL,
        http_client: Optional[httpx.AsyncClient] = None,
        extra_headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None):

        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.extra_headers = extra_headers or {}
        self._http_client = http_client or httpx.AsyncClient(timeout=timeout)

    @property
    def headers(self) -> Dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "HTTP-Referer": DEFAULT_HTTP_REFERER,
            "X-Title": DEFAULT_APP_TITLE
        }
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        headers.update(self.extra_headers)
        return headers

    async def aclose(self):
        await self._http_client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()

    @staticmethod
    def _validate(request: CompletionRequest):
        if not request.model:
            raise InputValidationError("A model id is required")
        if not request.messages:
            raise InputValidationError("At least one message is required")

    @staticmethod
    def _raise_for_status(response: httpx.Response):
        if response.status_code < 400:
            return
        try:
            message = _error_message(orjson.loads(response.content))
        except orjson.JSONDecodeError:
            message = response.text.strip() or None
        raise classify_http_error(response.status_code, message)

    async def complete(self, request: CompletionRequest) -> str:
        """
        Single shot completion.

        Returns:
            str: `choices[0].message.content`.

        Raises:
            HttpError: for any status >= 400, classified by status code.
            EmptyResponseError: empty body, no choices or blank content.
            MalformedResponseError: body that is not the expected JSON shape.
            TransientUpstreamError: network level failure.
        """
        self._validate(request)
        payload = request.model_copy(update={"stream": False}).to_payload()

        try:
            response = await self._http_client.post(
                f"{self.base_url}/chat/completions",
                content=orjson.dumps(payload),
                headers=self.headers
            )
        except httpx.TransportError as e:
            raise TransientUpstreamError(f"Network error calling {request.model}: {e}") from e

        self._raise_for_status(response)

        if not response.content.strip():
            raise EmptyResponseError(f"Empty response body from {request.model}")

        try:
            body = orjson.loads(response.content)
        except orjson.JSONDecodeError as e:
            raise MalformedResponseError(f"Response from {request.model} is not valid JSON: {e}") from e

        if not isinstance(body, dict):
            raise MalformedResponseError(f"Unexpected response shape from {request.model}")

        message = _error_message(body)
        if message is not None:
            raise TransientUpstreamError(f"Upstream error from {request.model}: {message}")

        choices = body.get("choices")
        if not isinstance(choices, list):
            raise MalformedResponseError(f"Response from {request.model} has no choices")
        if not choices:
            raise EmptyResponseError(f"Response from {request.model} has empty choices")

        first = choices[0]
        if not isinstance(first, dict) or not isinstance(first.get("message"), dict):
            raise MalformedResponseError(f"Response from {request.model} has no message")

        content = first["message"].get("content")
        if content is None:
            raise EmptyResponseError(f"Response from {request.model} has no content")
        if not isinstance(content, str):
            raise MalformedResponseError(f"Response content from {request.model} is not text")
        if not content.strip():
            raise EmptyResponseError(f"Response from {request.model} has blank content")

        return content

    @staticmethod
    def _parse_event(line: str) -> Optional[str]:
        """Returns the event's data payload, or None for blank, comment and non data lines"""
        line = line.strip()
        if not line or line.startswith(":"):
            return None
        if not line.startswith(SSE_DATA_PREFIX):
            return None
        return line[len(SSE_DATA_PREFIX):].strip()

    async def stream(
        self,
        request: CompletionRequest,
        on_chunk: Optional[ChunkCallback] = None,
        on_complete: Optional[CompleteCallback] = None) -> str:
        """
        Streaming completion over server-sent events.

        `on_chunk` receives every non empty delta in arrival order, `on_complete`
        receives the full text once the stream finished cleanly. Both may be
        plain functions or coroutines. On failure `on_complete` is not called.
        """
        self._validate(request)
        payload = request.model_copy(update={"stream": True}).to_payload()
        chunks: List[str] = []

        try:
            async with self._http_client.stream(
                "POST",
                f"{self.base_url}/chat/completions",
                content=orjson.dumps(payload),
                headers=self.headers) as response:

                if response.status_code >= 400:
                    await response.aread()
                    self._raise_for_status(response)

                async for line in response.aiter_lines():
                    data = self._parse_event(line)
                    if data is None:
                        continue
                    if data == STREAM_DONE_SENTINEL:
                        break

                    try:
                        event = orjson.loads(data)
                    except orjson.JSONDecodeError:
                        logger.warning(f"Skipping malformed stream event from {request.model}: {data[:100]}")
                        continue

                    if not isinstance(event, dict):
                        logger.warning(f"Skipping unexpected stream event from {request.model}")
                        continue

                    message = _error_message(event)
                    if message is not None:
                        raise TransientUpstreamError(f"Stream error from {request.model}: {message}")

                    content = self._delta_content(event)
                    if content:
                        chunks.append(content)
                        if on_chunk is not None:
                            await maybe_await(on_chunk(content))

        except httpx.TransportError as e:
            raise TransientUpstreamError(f"Network error while streaming from {request.model}: {e}") from e

        full_text = "".join(chunks)
        if on_complete is not None:
            await maybe_await(on_complete(full_text))
        return full_text

    @staticmethod
    def _delta_content(event: dict) -> Optional[str]:
        choices = event.get("choices")
        if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
            return None
        delta = choices[0].get("delta") or {}
        content = delta.get("content") if isinstance(delta, dict) else None
        return content if isinstance(content, str) else None

    async def list_models(self) -> List[str]:
        """Model ids advertised by the provider"""
        try:
            response = await self._http_client.get(f"{self.base_url}/models", headers=self.headers)
        except httpx.TransportError as e:
            raise TransientUpstreamError(f"Network error listing models: {e}") from e

        self._raise_for_status(response)
        try:
            body = orjson.loads(response.content)
        except orjson.JSONDecodeError as e:
            raise MalformedResponseError(f"Model list is not valid JSON: {e}") from e

        data = body.get("data") if isinstance(body, dict) else None
        if not isinstance(data, list):
            raise MalformedResponseError("Model list has no data array")
        return [entry["id"] for entry in data if isinstance(entry, dict) and isinstance(entry.get("id"), str)]
