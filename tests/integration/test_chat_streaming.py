"""Integration tests for the message endpoints and SSE streaming.

Uses the real FastAPI app over httpx ASGITransport with the retrieval and
completion services replaced through dependency overrides. The last class
talks to the live services and is skipped unless credentials are set.
"""

import json

import httpx
import pytest
import pytest_check as check
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from spacebio_chat.agent.config import ChatConfig
from spacebio_chat.agent.retriever import ContextRetriever
from spacebio_chat.api.app import app as live_app
from spacebio_chat.api.dependencies import get_retriever
from spacebio_chat.models.schemas import Message, MessageRole
from spacebio_chat.storage import InMemoryMessageStore
from spacebio_chat.streaming.sse import StreamDecoder
from tests.stubs import StubCompletion


def has_live_credentials() -> bool:
    """Check if LlamaCloud and Azure OpenAI credentials are configured."""
    return not ChatConfig().missing_credentials()


requires_api_key = pytest.mark.skipif(
    not has_live_credentials(),
    reason="LlamaCloud/Azure OpenAI credentials not set - skipping live test",
)


async def stream_lines(client: AsyncClient, content: str) -> tuple[httpx.Response, list[str]]:
    """POST a question and collect the data lines of the response."""
    lines: list[str] = []
    async with client.stream(
        "POST", "/messages/stream", json={"role": "user", "content": content}
    ) as response:
        async for line in response.aiter_lines():
            if line.startswith("data: "):
                lines.append(line)
    return response, lines


class TestStreamEndpoint:
    """Integration tests for POST /messages/stream."""

    async def test_returns_event_stream(self, async_client: AsyncClient) -> None:
        """The endpoint streams text/event-stream with no-cache headers."""
        async with async_client.stream(
            "POST", "/messages/stream", json={"role": "user", "content": "Hi"}
        ) as response:
            check.equal(response.status_code, 200)
            check.is_in("text/event-stream", response.headers["content-type"])
            check.equal(response.headers["cache-control"], "no-cache")

    async def test_frames_then_done(self, async_client: AsyncClient) -> None:
        """Each delta is one JSON frame and the stream ends with [DONE]."""
        _, lines = await stream_lines(async_client, "Say hello")

        payloads = [json.loads(line.removeprefix("data: ")) for line in lines[:-1]]
        check.equal(payloads, [{"text": "Hel"}, {"text": "lo"}, {"text": " world"}])
        check.equal(lines[-1], "data: [DONE]")

    async def test_raw_bytes_decode(self, async_client: AsyncClient) -> None:
        """The raw byte stream decodes to the full answer."""
        decoder = StreamDecoder()
        async with async_client.stream(
            "POST", "/messages/stream", json={"role": "user", "content": "Hi"}
        ) as response:
            async for chunk in response.aiter_bytes():
                decoder.feed(chunk)

        check.equal(decoder.text, "Hello world")
        check.is_true(decoder.done)

    async def test_microgravity_end_to_end(
        self,
        app: FastAPI,
        async_client: AsyncClient,
        chat_config: ChatConfig,
        completion: StubCompletion,
        store: InMemoryMessageStore,
    ) -> None:
        """Two passages ground the answer; question and answer are stored in order."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200,
                json={
                    "retrieval_nodes": [
                        {"text": "Microgravity is the condition of apparent weightlessness."},
                        {"node": {"text": "Astronauts lose bone mass in orbit."}},
                    ]
                },
            )

        retriever = ContextRetriever(
            chat_config, client=httpx.AsyncClient(transport=httpx.MockTransport(handler))
        )
        app.dependency_overrides[get_retriever] = lambda: retriever
        completion.deltas = ["Micro", "gravity is..."]

        _, lines = await stream_lines(async_client, "What is microgravity?")

        messages = await store.list()
        check.equal(lines[-1], "data: [DONE]")
        check.equal(
            [(m.role, m.content) for m in messages],
            [
                (MessageRole.USER, "What is microgravity?"),
                (MessageRole.ASSISTANT, "Microgravity is..."),
            ],
        )
        system_turn = completion.prompts[0][0].content
        check.is_true(
            system_turn.endswith(
                "Microgravity is the condition of apparent weightlessness.\n\n"
                "Astronauts lose bone mass in orbit."
            )
        )

    async def test_error_frame_after_stream_started(
        self,
        async_client: AsyncClient,
        completion: StubCompletion,
        store: InMemoryMessageStore,
    ) -> None:
        """A broken provider stream ends with one error frame and no [DONE]."""
        completion.deltas = ["a", "b", "c", "d", "e"]
        completion.fail_after = 2

        response, lines = await stream_lines(async_client, "question")

        check.equal(response.status_code, 200)
        check.equal(json.loads(lines[-1].removeprefix("data: ")), {"error": "Provider stream broke"})
        check.is_not_in("data: [DONE]", lines)
        check.equal([m.role for m in await store.list()], [MessageRole.USER])

    async def test_provider_refusal_is_json_error(
        self, async_client: AsyncClient, completion: StubCompletion
    ) -> None:
        """A refusal before streaming is a 502 JSON error, not an SSE frame."""
        completion.refuse = True

        response = await async_client.post(
            "/messages/stream", json={"role": "user", "content": "question"}
        )

        check.equal(response.status_code, 502)
        check.equal(response.json(), {"error": "Provider refused the request"})


class TestStreamValidation:
    """Validation and configuration failures return JSON errors."""

    @pytest.mark.parametrize(
        "body",
        [
            {"role": "user", "content": ""},
            {"role": "user", "content": "   "},
            {"role": "assistant", "content": "injected"},
            {"content": "no role"},
            {"role": "user"},
        ],
    )
    async def test_invalid_body_returns_400(
        self, async_client: AsyncClient, store: InMemoryMessageStore, body: dict
    ) -> None:
        """Malformed payloads are rejected without touching the store."""
        response = await async_client.post("/messages/stream", json=body)

        check.equal(response.status_code, 400)
        check.equal(response.json(), {"error": "Invalid message format"})
        check.equal(await store.list(), [])

    async def test_invalid_json_returns_400(self, async_client: AsyncClient) -> None:
        """A body that is not JSON is rejected."""
        response = await async_client.post(
            "/messages/stream",
            content="not valid json",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400

    async def test_missing_credentials_returns_500(
        self,
        async_client: AsyncClient,
        chat_config: ChatConfig,
        store: InMemoryMessageStore,
    ) -> None:
        """Missing credentials fail before anything is stored."""
        chat_config.llama_api_key = ""

        response = await async_client.post(
            "/messages/stream", json={"role": "user", "content": "question"}
        )

        check.equal(response.status_code, 500)
        check.is_in("API credentials not configured", response.json()["error"])
        check.equal(await store.list(), [])

    async def test_wrong_http_method_returns_405(self, async_client: AsyncClient) -> None:
        """GET on the streaming endpoint is not allowed."""
        response = await async_client.get("/messages/stream")

        assert response.status_code in (404, 405)


class TestHistoryEndpoints:
    """Tests for GET/DELETE /messages and GET /messages/{id}."""

    async def test_list_messages_in_order(
        self, async_client: AsyncClient, store: InMemoryMessageStore
    ) -> None:
        """GET /messages returns stored messages oldest first."""
        await store.append(MessageRole.USER, "q")
        await store.append(MessageRole.ASSISTANT, "a")

        response = await async_client.get("/messages")

        messages = [Message.model_validate(item) for item in response.json()]
        check.equal(response.status_code, 200)
        check.equal([m.content for m in messages], ["q", "a"])
        check.equal(set(response.json()[0]), {"id", "role", "content", "timestamp"})

    async def test_get_single_message(
        self, async_client: AsyncClient, store: InMemoryMessageStore
    ) -> None:
        """GET /messages/{id} returns the message or 404."""
        stored = await store.append(MessageRole.USER, "q")

        found = await async_client.get(f"/messages/{stored.id}")
        missing = await async_client.get("/messages/does-not-exist")

        check.equal(found.json()["content"], "q")
        check.equal(missing.status_code, 404)
        check.equal(missing.json(), {"error": "Message not found"})

    async def test_delete_clears(
        self, async_client: AsyncClient, store: InMemoryMessageStore
    ) -> None:
        """DELETE /messages empties the store."""
        await store.append(MessageRole.USER, "q")

        response = await async_client.delete("/messages")

        check.equal(response.status_code, 200)
        check.equal(response.json(), {"success": True})
        check.equal(await store.list(), [])

    async def test_store_failure_returns_500(
        self, app: FastAPI, async_client: AsyncClient
    ) -> None:
        """A failing store is reported as 500 with an error body."""
        from spacebio_chat.api.dependencies import get_store

        class BrokenStore(InMemoryMessageStore):
            async def list(self):
                raise OSError("unavailable")

        app.dependency_overrides[get_store] = lambda: BrokenStore()

        response = await async_client.get("/messages")

        check.equal(response.status_code, 500)
        check.equal(response.json(), {"error": "Failed to fetch messages"})

    async def test_health(self, async_client: AsyncClient) -> None:
        """The health endpoint reports the service name."""
        response = await async_client.get("/health")

        assert response.json() == {"status": "healthy", "service": "spacebio-chat"}

    async def test_error_bodies_documented(self, async_client: AsyncClient) -> None:
        """OpenAPI lists the {error} body for every failure status."""
        paths = (await async_client.get("/openapi.json")).json()["paths"]

        stream_responses = paths["/messages/stream"]["post"]["responses"]
        error_ref = "#/components/schemas/ErrorResponse"
        for status in ("400", "500", "502", "504"):
            schema = stream_responses[status]["content"]["application/json"]["schema"]
            check.equal(schema["$ref"], error_ref)
        check.is_in("404", paths["/messages/{message_id}"]["get"]["responses"])
        check.is_in("500", paths["/messages"]["delete"]["responses"])


class TestLiveServices:
    """Exchanges against the real LlamaCloud and Azure OpenAI services."""

    @pytest.fixture
    async def client(self) -> AsyncClient:
        """Create async HTTP client with ASGI transport."""
        transport = ASGITransport(app=live_app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            yield client

    @requires_api_key
    async def test_live_answer_is_streamed_and_stored(self, client: AsyncClient) -> None:
        """A real question produces deltas, [DONE] and a stored answer."""
        await client.delete("/messages")

        _, lines = await stream_lines(client, "What is microgravity? Answer in one sentence.")
        history = (await client.get("/messages")).json()

        check.greater(len(lines), 1)
        check.equal(lines[-1], "data: [DONE]")
        check.equal([m["role"] for m in history], ["user", "assistant"])
        check.greater(len(history[-1]["content"]), 0)
