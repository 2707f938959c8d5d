import json
from types import SimpleNamespace

import pytest

from chat_proxy.services.profile import Profile


class FakeLLM:
    """Completion client that records calls and replays fixed chunks."""

    provider_name = "OpenAI"

    def __init__(self, chunks=("Hel", "lo")):
        self.chunks = list(chunks)
        self.calls = []

    def stream_chat(self, **kwargs):
        self.calls.append(kwargs)
        return iter(self.chunks)


class FakeResponse:
    """Minimal stand-in for requests.Response."""

    def __init__(self, status_code=200, lines=(), body=None, reason="OK"):
        self.status_code = status_code
        self.ok = status_code < 400
        self.reason = reason
        self.encoding = None
        self.closed = False
        self._lines = list(lines)
        self._body = body
        self.text = json.dumps(body) if body is not None else ""

    def json(self):
        if self._body is None:
            raise ValueError("No JSON body")
        return self._body

    def iter_lines(self):
        for line in self._lines:
            yield line.encode("utf-8")

    def close(self):
        self.closed = True


class FakeSession:
    def __init__(self, response):
        self.response = response
        self.calls = []

    def post(self, url, **kwargs):
        self.calls.append((url, kwargs))
        return self.response


def sse(*deltas):
    """Encode content deltas as an OpenAI chat completion event stream."""
    lines = []
    for delta in deltas:
        event = {
            "id": "chatcmpl-1",
            "object": "chat.completion.chunk",
            "choices": [{"index": 0, "delta": {"content": delta}, "finish_reason": None}],
        }
        lines.append(f"data: {json.dumps(event)}")
        lines.append("")
    lines.append("data: [DONE]")
    return lines


@pytest.fixture
def fake_llm():
    return FakeLLM()


@pytest.fixture
def profile_store():
    return SimpleNamespace(
        get_profile=lambda: Profile(openai_api_key="sk-test", openai_organization_id="org-1")
    )


@pytest.fixture
def empty_profile_store():
    return SimpleNamespace(get_profile=lambda: Profile())


@pytest.fixture
def make_response():
    return FakeResponse


@pytest.fixture
def make_session():
    return FakeSession


@pytest.fixture
def sse_lines():
    return sse
