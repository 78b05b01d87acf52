from repotide.llm.client import CompletionClient
from repotide.core.errors import (
    AuthenticationError, EmptyResponseError, HttpError, InputValidationError,
    MalformedResponseError, RateLimitError, TransientUpstreamError, UpstreamServerError
)
from repotide.core.models import CompletionRequest, Message

from typing import List
import orjson
import httpx
import pytest

BASE_URL = "https://llm.test/api/v1"

def make_client(handler) -> CompletionClient:
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return CompletionClient(api_key="sk-test", base_url=BASE_URL, http_client=http_client)

def make_request(**kwargs) -> CompletionRequest:
    return CompletionRequest(
        system_prompt="system",
        messages=[Message(role="user", content="hello")],
        model=kwargs.pop("model", "test/model"),
        **kwargs
    )

def completion_body(content) -> dict:
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}

def sse_body(events: List[str]) -> bytes:
    return "".join(f"{event}\n\n" for event in events).encode()

def delta_event(content: str) -> str:
    return "data: " + orjson.dumps({"choices": [{"delta": {"content": content}}]}).decode()

@pytest.mark.asyncio
async def test_complete_returns_content_and_sends_expected_request():
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["url"] = str(request.url)
        captured["headers"] = request.headers
        captured["body"] = orjson.loads(request.content)
        return httpx.Response(200, json=completion_body("def foo(): pass"))

    result = await make_client(handler).complete(make_request())

    assert result == "def foo(): pass"
    assert captured["url"] == f"{BASE_URL}/chat/completions"
    assert captured["headers"]["Authorization"] == "Bearer sk-test"
    assert captured["headers"]["X-Title"] == "RepoTide"
    assert "HTTP-Referer" in captured["headers"]
    assert captured["body"]["model"] == "test/model"
    assert captured["body"]["messages"][0] == {"role": "system", "content": "system"}
    assert "stream" not in captured["body"]

@pytest.mark.asyncio
@pytest.mark.parametrize("status, expected", [
    (401, AuthenticationError),
    (403, AuthenticationError),
    (429, RateLimitError),
    (500, UpstreamServerError),
    (502, UpstreamServerError),
    (400, HttpError)
])
async def test_complete_classifies_http_errors(status, expected):
    def handler(request):
        return httpx.Response(status, json={"error": {"message": "provider message"}})

    with pytest.raises(expected) as exc_info:
        await make_client(handler).complete(make_request())

    assert type(exc_info.value) is expected
    assert exc_info.value.status == status
    assert "provider message" in str(exc_info.value)

@pytest.mark.asyncio
@pytest.mark.parametrize("response, expected", [
    (httpx.Response(200, content=b""), EmptyResponseError),
    (httpx.Response(200, json={"choices": []}), EmptyResponseError),
    (httpx.Response(200, json=completion_body("   ")), EmptyResponseError),
    (httpx.Response(200, json=completion_body(None)), EmptyResponseError),
    (httpx.Response(200, content=b"<html>oops</html>"), MalformedResponseError),
    (httpx.Response(200, json={"id": "x"}), MalformedResponseError),
    (httpx.Response(200, json={"choices": [{"text": "legacy"}]}), MalformedResponseError),
    (httpx.Response(200, json=completion_body(["not", "text"])), MalformedResponseError),
    (httpx.Response(200, json=[1, 2]), MalformedResponseError),
    (httpx.Response(200, json={"error": {"message": "overloaded"}}), TransientUpstreamError)
])
async def test_complete_rejects_unusable_bodies(response, expected):
    with pytest.raises(expected):
        await make_client(lambda request: response).complete(make_request())

@pytest.mark.asyncio
async def test_complete_transport_failure_is_transient():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(TransientUpstreamError) as exc_info:
        await make_client(handler).complete(make_request())
    assert exc_info.value.retryable

@pytest.mark.asyncio
async def test_complete_validates_request_before_sending():
    def handler(request):
        raise AssertionError("no request expected")

    with pytest.raises(InputValidationError):
        await make_client(handler).complete(make_request(model=""))

@pytest.mark.asyncio
async def test_stream_delivers_chunks_in_order_and_completes_once():
    def handler(request: httpx.Request) -> httpx.Response:
        assert orjson.loads(request.content)["stream"] is True
        return httpx.Response(200, content=sse_body([
            delta_event("def "),
            delta_event("foo():\n"),
            delta_event("    pass"),
            "data: [DONE]"
        ]))

    chunks, completions = [], []
    result = await make_client(handler).stream(
        make_request(), on_chunk=chunks.append, on_complete=completions.append
    )

    assert chunks == ["def ", "foo():\n", "    pass"]
    assert completions == ["def foo():\n    pass"]
    assert result == "def foo():\n    pass"

@pytest.mark.asyncio
async def test_stream_accepts_coroutine_callbacks():
    def handler(request):
        return httpx.Response(200, content=sse_body([delta_event("a"), delta_event("b"), "data: [DONE]"]))

    chunks, completions = [], []

    async def on_chunk(chunk):
        chunks.append(chunk)

    async def on_complete(text):
        completions.append(text)

    await make_client(handler).stream(make_request(), on_chunk=on_chunk, on_complete=on_complete)
    assert chunks == ["a", "b"]
    assert completions == ["ab"]

@pytest.mark.asyncio
async def test_stream_skips_comments_blank_lines_and_malformed_events():
    def handler(request):
        return httpx.Response(200, content=sse_body([
            ": OPENROUTER PROCESSING",
            delta_event("first"),
            "data: {not json",
            "event: ping",
            "data: " + orjson.dumps({"choices": [{"delta": {}}]}).decode(),
            delta_event("second"),
            "data: [DONE]",
            delta_event("ignored after done")
        ]))

    chunks = []
    result = await make_client(handler).stream(make_request(), on_chunk=chunks.append)
    assert chunks == ["first", "second"]
    assert result == "firstsecond"

@pytest.mark.asyncio
async def test_stream_end_of_body_without_sentinel_completes():
    def handler(request):
        return httpx.Response(200, content=sse_body([delta_event("only")]))

    completions = []
    await make_client(handler).stream(make_request(), on_complete=completions.append)
    assert completions == ["only"]

@pytest.mark.asyncio
async def test_stream_in_band_error_aborts_without_completion():
    def handler(request):
        return httpx.Response(200, content=sse_body([
            delta_event("partial"),
            "data: " + orjson.dumps({"error": {"message": "model crashed"}}).decode(),
            delta_event("never")
        ]))

    chunks, completions = [], []
    with pytest.raises(TransientUpstreamError, match="model crashed"):
        await make_client(handler).stream(make_request(), on_chunk=chunks.append, on_complete=completions.append)

    assert chunks == ["partial"]
    assert completions == []

@pytest.mark.asyncio
async def test_stream_http_error_is_classified():
    def handler(request):
        return httpx.Response(429, json={"error": {"message": "slow down"}})

    completions = []
    with pytest.raises(RateLimitError, match="slow down"):
        await make_client(handler).stream(make_request(), on_complete=completions.append)
    assert completions == []

@pytest.mark.asyncio
async def test_list_models():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "GET"
        assert str(request.url) == f"{BASE_URL}/models"
        return httpx.Response(200, json={"data": [{"id": "a/one"}, {"id": "b/two"}, {"name": "no id"}]})

    assert await make_client(handler).list_models() == ["a/one", "b/two"]

@pytest.mark.asyncio
async def test_list_models_errors():
    with pytest.raises(AuthenticationError):
        await make_client(lambda request: httpx.Response(401, json={})).list_models()
    with pytest.raises(MalformedResponseError):
        await make_client(lambda request: httpx.Response(200, json={"models": []})).list_models()
