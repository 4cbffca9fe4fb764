"""Tests for the REST client and the chat polling loop."""

import io
import json
from unittest.mock import AsyncMock, patch
from urllib import error

import pytest

from tabichan import (
    ConfigError,
    GenerationFailed,
    HTTPStatusError,
    Job,
    NetworkError,
    PollFailure,
    PollTimeout,
    ProtocolError,
    TabichanClient,
    UnexpectedStatus,
)


def _body(req) -> dict:
    return json.loads(req.data.decode("utf-8"))


class TestClientInitialization:
    def test_direct_api_key(self):
        client = TabichanClient("direct-key")
        assert client.api_key == "direct-key"
        assert client.default_headers["x-api-key"] == "direct-key"
        assert client.base_url == "https://tourism-api.podtech-ai.com/v1"
        assert client.alternative_base_url == "https://tabichan.podtech-ai.com/v1"

    def test_api_key_from_environment(self, api_key):
        client = TabichanClient()
        assert client.api_key == "test-api-key"

    def test_missing_api_key(self):
        with pytest.raises(ConfigError, match="TABICHAN_API_KEY"):
            TabichanClient()

    def test_set_api_key_updates_header(self, api_key):
        client = TabichanClient()
        client.set_api_key("new-key")
        assert client.api_key == "new-key"
        assert client.default_headers["x-api-key"] == "new-key"

    def test_set_base_url(self, api_key):
        client = TabichanClient()
        client.set_base_url("http://localhost:8000/v1/")
        assert client.base_url == "http://localhost:8000/v1"


class TestChatEndpoints:
    @pytest.mark.asyncio
    async def test_start_chat(self, api_key, http_stub):
        http_stub.queue({"task_id": "t-1"})
        client = TabichanClient()

        task_id = await client.start_chat("Plan a 2-day trip to Tokyo", "user123", "japan")

        assert task_id == "t-1"
        req = http_stub.last_request
        assert req.get_method() == "POST"
        assert req.full_url == "https://tourism-api.podtech-ai.com/v1/chat"
        assert req.get_header("X-api-key") == "test-api-key"
        assert req.get_header("User-agent").startswith("tabichan-python-sdk/")
        assert http_stub.last_timeout == 3
        assert _body(req) == {
            "user_query": "Plan a 2-day trip to Tokyo",
            "user_id": "user123",
            "country": "japan",
            "history": [],
            "additional_inputs": {},
        }

    @pytest.mark.asyncio
    async def test_start_chat_with_all_parameters(self, api_key, http_stub):
        http_stub.queue({"task_id": "t-2"})
        client = TabichanClient()
        history = [{"role": "user", "content": "Hello"}, {"role": "assistant", "content": "Hi!"}]

        await client.start_chat("Visit Louvre", "user456", "france", history, {"budget": "high"})

        body = _body(http_stub.last_request)
        assert body["country"] == "france"
        assert body["history"] == history
        assert body["additional_inputs"] == {"budget": "high"}

    @pytest.mark.asyncio
    async def test_start_chat_missing_task_id(self, api_key, http_stub):
        http_stub.queue({"status": "accepted"})
        client = TabichanClient()

        with pytest.raises(ProtocolError, match="StartChatResponse"):
            await client.start_chat("Plan a 2-day trip to Tokyo", "user123")

    @pytest.mark.asyncio
    async def test_poll_chat(self, api_key, http_stub):
        http_stub.queue({"status": "completed", "result": {"answer": "Day 1: Asakusa"}})
        client = TabichanClient()

        job = await client.poll_chat("t-1")

        assert job == Job(task_id="t-1", status="completed", result={"answer": "Day 1: Asakusa"})
        assert http_stub.last_request.full_url == "https://tourism-api.podtech-ai.com/v1/chat/poll?task_id=t-1"
        assert http_stub.last_request.get_method() == "GET"
        assert http_stub.last_request.data is None
        assert http_stub.last_timeout == 5

    @pytest.mark.asyncio
    async def test_get_image(self, api_key, http_stub):
        http_stub.queue({"base64": "aGVsbG8="})
        client = TabichanClient()

        data = await client.get_image("img-1", "france")

        assert data == "aGVsbG8="
        assert http_stub.last_request.full_url == (
            "https://tourism-api.podtech-ai.com/v1/image?id=img-1&country=france"
        )
        assert http_stub.last_timeout == 30

    @pytest.mark.asyncio
    async def test_get_image_defaults_to_japan(self, api_key, http_stub):
        http_stub.queue({"base64": "aGVsbG8="})
        await TabichanClient().get_image("img-1")
        assert http_stub.last_request.full_url.endswith("country=japan")


class TestGenericVerbs:
    @pytest.mark.asyncio
    async def test_post_sends_json_body(self, api_key, http_stub):
        http_stub.queue({"ok": True})
        client = TabichanClient()

        response = await client.post("/feedback", {"rating": 5})

        assert response.data == {"ok": True}
        assert response.status == 200
        assert _body(http_stub.last_request) == {"rating": 5}
        assert http_stub.last_timeout == 30

    @pytest.mark.asyncio
    async def test_delete_sends_no_body(self, api_key, http_stub):
        http_stub.queue(None)
        client = TabichanClient()

        response = await client.delete("/sessions/s-1")

        assert response.data is None
        assert http_stub.last_request.get_method() == "DELETE"
        assert http_stub.last_request.data is None

    @pytest.mark.asyncio
    async def test_non_json_body_is_returned_as_text(self, api_key, http_stub):
        http_stub.queue("plain text")
        response = await TabichanClient().get("/health")
        assert response.data == "plain text"

    @pytest.mark.asyncio
    async def test_custom_headers_and_timeout(self, api_key, http_stub):
        http_stub.queue({})
        client = TabichanClient()

        await client.put("/prefs", {"a": 1}, headers={"X-Trace": "abc"}, timeout=7)

        assert http_stub.last_request.get_header("X-trace") == "abc"
        assert http_stub.last_timeout == 7


class TestErrorMapping:
    @pytest.mark.asyncio
    async def test_http_error(self, api_key, http_stub):
        http_stub.queue(
            error.HTTPError(
                url="https://tourism-api.podtech-ai.com/v1/chat",
                code=401,
                msg="Unauthorized",
                hdrs=None,
                fp=io.BytesIO(b'{"detail": "Invalid API key"}'),
            )
        )

        with pytest.raises(HTTPStatusError) as exc:
            await TabichanClient().start_chat("Plan", "user123")

        assert exc.value.status_code == 401
        assert exc.value.detail == "Invalid API key"
        assert exc.value.data == {"detail": "Invalid API key"}
        assert str(exc.value) == "HTTP 401: Invalid API key"

    @pytest.mark.asyncio
    async def test_http_error_without_body(self, api_key, http_stub):
        http_stub.queue(
            error.HTTPError(url="x", code=500, msg="Internal Server Error", hdrs=None, fp=None)
        )

        with pytest.raises(HTTPStatusError) as exc:
            await TabichanClient().poll_chat("t-1")

        assert exc.value.status_code == 500
        assert exc.value.detail == "Internal Server Error"

    @pytest.mark.asyncio
    async def test_no_response(self, api_key, http_stub):
        http_stub.queue(error.URLError("connection refused"))

        with pytest.raises(NetworkError, match="No response received"):
            await TabichanClient().poll_chat("t-1")

    @pytest.mark.asyncio
    async def test_timeout(self, api_key, http_stub):
        http_stub.queue(TimeoutError("timed out"))

        with pytest.raises(NetworkError):
            await TabichanClient().start_chat("Plan", "user123")

    @pytest.mark.asyncio
    async def test_start_does_not_retry(self, api_key, http_stub):
        http_stub.queue(error.URLError("connection refused"))

        with pytest.raises(NetworkError):
            await TabichanClient().start_chat("Plan", "user123")
        assert len(http_stub.requests) == 1


@pytest.fixture
def no_sleep():
    with patch("tabichan.client.asyncio.sleep", new_callable=AsyncMock) as sleep:
        yield sleep


class TestWaitForChat:
    @pytest.mark.asyncio
    async def test_completes_immediately(self, api_key, http_stub, no_sleep):
        http_stub.queue({"status": "completed", "result": {"answer": "Done"}})

        result = await TabichanClient().wait_for_chat("t-1")

        assert result == {"answer": "Done"}
        assert len(http_stub.requests) == 1
        no_sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_tokyo_scenario(self, api_key, http_stub, no_sleep):
        http_stub.queue(
            {"task_id": "t-1"},
            {"status": "running"},
            {"status": "completed", "result": {"answer": "..."}},
        )
        client = TabichanClient()
        progress = []

        task_id = await client.start_chat("Plan a 2-day trip to Tokyo", "user123", "japan")
        result = await client.wait_for_chat(task_id, on_progress=lambda n, total: progress.append((n, total)))

        assert task_id == "t-1"
        assert result == {"answer": "..."}
        assert progress == [(1, 30)]
        no_sleep.assert_awaited_once_with(10)

    @pytest.mark.asyncio
    async def test_failed_with_error_text(self, api_key, http_stub, no_sleep):
        http_stub.queue({"status": "failed", "error": "X"})

        with pytest.raises(GenerationFailed, match="Generation failed: X") as exc:
            await TabichanClient().wait_for_chat("t-1")

        assert exc.value.poll_data == {"status": "failed", "error": "X"}
        assert len(http_stub.requests) == 1

    @pytest.mark.asyncio
    async def test_failed_without_error_text(self, api_key, http_stub, no_sleep):
        http_stub.queue({"status": "failed"})

        with pytest.raises(GenerationFailed, match="Unknown error"):
            await TabichanClient().wait_for_chat("t-1")

    @pytest.mark.asyncio
    async def test_failed_with_structured_error(self, api_key, http_stub, no_sleep):
        error = {"code": "QUOTA", "message": "quota"}
        http_stub.queue({"status": "failed", "error": error})

        with pytest.raises(GenerationFailed, match="Generation failed: .*QUOTA") as exc:
            await TabichanClient().wait_for_chat("t-1")

        assert exc.value.poll_data == {"status": "failed", "error": error}
        assert len(http_stub.requests) == 1

    @pytest.mark.parametrize("status", ["queued", "cancelled", "COMPLETED", ""])
    @pytest.mark.asyncio
    async def test_unexpected_status(self, api_key, http_stub, no_sleep, status):
        http_stub.queue({"status": status})

        with pytest.raises(UnexpectedStatus) as exc:
            await TabichanClient().wait_for_chat("t-1")

        assert exc.value.status == status
        assert str(exc.value) == f"Unexpected status: {status}"
        assert len(http_stub.requests) == 1

    @pytest.mark.asyncio
    async def test_missing_status_is_unexpected(self, api_key, http_stub, no_sleep):
        http_stub.queue({"result": None})

        with pytest.raises(UnexpectedStatus) as exc:
            await TabichanClient().wait_for_chat("t-1")

        assert exc.value.status is None
        assert str(exc.value) == "Unexpected status: None"
        assert exc.value.poll_data == {"status": None}
        assert len(http_stub.requests) == 1

    @pytest.mark.asyncio
    async def test_non_string_status_is_unexpected(self, api_key, http_stub, no_sleep):
        http_stub.queue({"status": 3})

        with pytest.raises(UnexpectedStatus, match="Unexpected status: 3") as exc:
            await TabichanClient().wait_for_chat("t-1")

        assert exc.value.status == 3

    @pytest.mark.asyncio
    async def test_timeout_after_thirty_polls(self, api_key, http_stub, no_sleep):
        http_stub.queue({"status": "running"})

        with pytest.raises(PollTimeout, match="took too long") as exc:
            await TabichanClient().wait_for_chat("t-1")

        assert len(http_stub.requests) == 30
        assert no_sleep.await_count == 29
        assert exc.value.attempts == 30

    @pytest.mark.asyncio
    async def test_transport_failure_is_wrapped(self, api_key, http_stub, no_sleep):
        http_stub.queue({"status": "running"}, error.URLError("connection reset"))

        with pytest.raises(PollFailure, match="Failed to poll status") as exc:
            await TabichanClient().wait_for_chat("t-1")

        assert isinstance(exc.value.__cause__, NetworkError)
        assert len(http_stub.requests) == 2

    @pytest.mark.asyncio
    async def test_job_failure_is_not_wrapped(self, api_key, http_stub, no_sleep):
        http_stub.queue({"status": "running"}, {"status": "failed", "error": "quota"})

        with pytest.raises(GenerationFailed) as exc:
            await TabichanClient().wait_for_chat("t-1")

        assert not isinstance(exc.value, PollFailure)

    @pytest.mark.asyncio
    async def test_verbose_progress(self, api_key, http_stub, no_sleep, capsys):
        http_stub.queue({"status": "running"}, {"status": "running"}, {"status": "completed", "result": 1})

        await TabichanClient().wait_for_chat("t-1", verbose=True)

        out = capsys.readouterr().out
        assert "attempt 1/30" in out
        assert "attempt 2/30" in out
        assert "Generation complete" in out

    @pytest.mark.asyncio
    async def test_quiet_by_default(self, api_key, http_stub, no_sleep, capsys):
        http_stub.queue({"status": "running"}, {"status": "completed", "result": 1})

        await TabichanClient().wait_for_chat("t-1")

        assert capsys.readouterr().out == ""
