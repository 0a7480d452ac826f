import asyncio
import json

import httpx

from backend.app.core.config import Settings
from backend.app.services.generation import (
    GenerationClient,
    build_generate_content_url,
    extract_reply_text,
    is_error_reply,
    split_history,
)


def _ok(text):
    return httpx.Response(200, json={"candidates": [{"content": {"role": "model", "parts": [{"text": text}]}}]})


def _client(handler, delays, **kwargs):
    async def fake_sleep(seconds):
        delays.append(seconds)

    return GenerationClient(
        api_key="secret",
        model="gemini-test",
        api_base="https://example.test/v1beta",
        transport=httpx.MockTransport(handler),
        sleep=fake_sleep,
        **kwargs,
    )


def test_split_history_maps_non_user_roles_to_model():
    history, final = split_history(
        [
            {"role": "user", "content": "hi"},
            {"role": "assistant", "content": "hello"},
            {"role": "user", "content": "ok"},
        ]
    )
    assert history == [{"role": "user", "text": "hi"}, {"role": "model", "text": "hello"}]
    assert final == "ok"


def test_generate_sends_history_and_final_message():
    seen = []

    def handler(request):
        seen.append(request)
        return _ok("Sure thing")

    delays = []
    client = _client(handler, delays)
    reply = asyncio.run(
        client.generate(
            [
                {"role": "user", "content": "hi"},
                {"role": "assistant", "content": "hello"},
                {"role": "user", "content": "ok"},
            ]
        )
    )

    assert reply == "Sure thing"
    assert delays == []
    assert len(seen) == 1
    request = seen[0]
    assert str(request.url) == "https://example.test/v1beta/models/gemini-test:generateContent"
    assert request.headers["x-goog-api-key"] == "secret"
    body = json.loads(request.content)
    assert body["contents"] == [
        {"role": "user", "parts": [{"text": "hi"}]},
        {"role": "model", "parts": [{"text": "hello"}]},
        {"role": "user", "parts": [{"text": "ok"}]},
    ]


def test_first_turn_has_empty_history():
    bodies = []

    def handler(request):
        bodies.append(json.loads(request.content))
        return _ok("Welcome")

    reply = asyncio.run(_client(handler, []).generate([{"role": "user", "content": "first"}]))

    assert reply == "Welcome"
    assert bodies[0]["contents"] == [{"role": "user", "parts": [{"text": "first"}]}]


def test_retries_then_succeeds():
    responses = [httpx.Response(503, text="overloaded"), _ok("Recovered")]

    def handler(request):
        return responses.pop(0)

    delays = []
    reply = asyncio.run(_client(handler, delays).generate([{"role": "user", "content": "hi"}]))

    assert reply == "Recovered"
    assert delays == [2.0]


def test_exhausted_retries_return_error_sentinel():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(500, text="boom")

    delays = []
    reply = asyncio.run(_client(handler, delays).generate([{"role": "user", "content": "hi"}]))

    assert len(calls) == 3
    assert delays == [2.0, 4.0]
    assert sum(delays) == 6.0
    assert reply.startswith("Error:")
    assert "boom" in reply
    assert is_error_reply(reply)


def test_transport_errors_are_retried():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    delays = []
    reply = asyncio.run(_client(handler, delays, max_attempts=2, base_delay=0.5).generate([{"role": "user", "content": "hi"}]))

    assert delays == [0.5]
    assert reply == "Error: connection refused"


def test_failure_without_message_uses_fallback():
    def handler(request):
        raise RuntimeError()

    reply = asyncio.run(_client(handler, [], max_attempts=1).generate([{"role": "user", "content": "hi"}]))

    assert reply.startswith("Error: I encountered an error")


def test_empty_candidates_count_as_failure():
    def handler(request):
        return httpx.Response(200, json={"promptFeedback": {"blockReason": "SAFETY"}})

    reply = asyncio.run(_client(handler, [], max_attempts=1).generate([{"role": "user", "content": "hi"}]))

    assert reply == "Error: No candidates returned (SAFETY)"


def test_empty_transcript_is_an_error_without_calling_out():
    calls = []

    def handler(request):
        calls.append(request)
        return _ok("never")

    reply = asyncio.run(_client(handler, []).generate([]))

    assert is_error_reply(reply)
    assert calls == []


def test_extract_reply_text_joins_parts():
    data = {"candidates": [{"content": {"parts": [{"text": "a"}, {"text": "b"}]}}]}
    assert extract_reply_text(data) == "ab"


def test_backoff_doubles_from_base_delay():
    client = GenerationClient(api_key="", model="m", base_delay=2.0)
    assert [client.backoff_delay(n) for n in (1, 2, 3)] == [2.0, 4.0, 8.0]


def test_from_settings():
    settings = Settings(
        database_url="sqlite://",
        gemini_api_key="k",
        gemini_model="gemini-x",
        generation_max_attempts=5,
        generation_base_delay=1.0,
    )
    client = GenerationClient.from_settings(settings)
    assert client.model == "gemini-x"
    assert client.max_attempts == 5
    assert client.base_delay == 1.0
    assert build_generate_content_url(client.api_base, client.model).endswith("/models/gemini-x:generateContent")


def test_is_error_reply():
    assert is_error_reply("Error: nope")
    assert not is_error_reply("All good")
    assert not is_error_reply("")
