from types import SimpleNamespace

from fastapi.testclient import TestClient

from chat_proxy.core.errors import UpstreamError
from chat_proxy.main import create_app
from chat_proxy.services.chat_service import ChatService

BODY = {
    "chatSettings": {"model": "gpt-4o", "temperature": 0.5, "contextLength": 4096},
    "messages": [{"role": "user", "content": "What is gravity?"}],
}


def make_client(profile_store, llm, retriever=None):
    service = ChatService(profile_store=profile_store, llm_client=llm, retriever=retriever)
    return TestClient(create_app(chat_service=service))


def test_chat_streams_text(profile_store):
    emitted = ["Wh", "at do ", "you think", " pulls things down? ", "ü"]
    llm = SimpleNamespace(provider_name="OpenAI", stream_chat=lambda **kwargs: iter(emitted))
    client = make_client(profile_store, llm)

    r = client.post("/api/chat/openai", json=BODY)

    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/plain")
    assert r.content == "".join(emitted).encode("utf-8")


def test_missing_key_returns_friendly_message(empty_profile_store, fake_llm):
    client = make_client(empty_profile_store, fake_llm)

    r = client.post("/api/chat/openai", json=BODY)

    assert r.status_code == 401
    assert r.json() == {
        "message": "OpenAI API Key not found. Please set it in your profile settings."
    }
    assert fake_llm.calls == []


def test_incorrect_key_from_upstream(profile_store):
    def stream_chat(**kwargs):
        raise UpstreamError("Incorrect API key provided: sk-test.", status_code=401)

    client = make_client(profile_store, SimpleNamespace(provider_name="OpenAI", stream_chat=stream_chat))

    r = client.post("/api/chat/openai", json=BODY)

    assert r.status_code == 401
    assert r.json()["message"] == "OpenAI API Key is incorrect. Please fix it in your profile settings."


def test_other_upstream_errors_pass_through(profile_store):
    def stream_chat(**kwargs):
        raise UpstreamError("Rate limit reached for gpt-4o", status_code=429)

    client = make_client(profile_store, SimpleNamespace(provider_name="OpenAI", stream_chat=stream_chat))

    r = client.post("/api/chat/openai", json=BODY)

    assert r.status_code == 429
    assert r.json() == {"message": "Rate limit reached for gpt-4o"}


def test_unexpected_error_is_500(profile_store):
    def retrieve_context(query, profile=None):
        raise RuntimeError("index exploded")

    client = make_client(
        profile_store,
        SimpleNamespace(provider_name="OpenAI", stream_chat=lambda **kwargs: iter(())),
        retriever=SimpleNamespace(retrieve_context=retrieve_context),
    )

    r = client.post("/api/chat/openai", json=BODY)

    assert r.status_code == 500
    assert r.json() == {"message": "index exploded"}


def test_unknown_role_is_rejected(profile_store, fake_llm):
    client = make_client(profile_store, fake_llm)
    body = dict(BODY, messages=[{"role": "tool", "content": "hi"}])

    r = client.post("/api/chat/openai", json=body)

    assert r.status_code == 400
    assert r.json()["message"].startswith("Invalid request body")
    assert fake_llm.calls == []


def test_missing_content_is_rejected(profile_store, fake_llm):
    client = make_client(profile_store, fake_llm)
    body = dict(BODY, messages=[{"role": "user"}])

    r = client.post("/api/chat/openai", json=body)

    assert r.status_code == 400
    assert "content" in r.json()["message"]


def test_empty_conversation_is_rejected(profile_store, fake_llm):
    client = make_client(profile_store, fake_llm)

    r = client.post("/api/chat/openai", json=dict(BODY, messages=[]))

    assert r.status_code == 400


def test_health(profile_store, fake_llm):
    client = make_client(profile_store, fake_llm)

    r = client.get("/health")

    assert r.status_code == 200
    data = r.json()
    assert data["status"] == "ok"
    assert data["retrieval_augmentation"] is False
    assert data["token_limits"] == {"gpt-4-vision-preview": 4096, "gpt-4o": 4096}
