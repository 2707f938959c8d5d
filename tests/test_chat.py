from types import SimpleNamespace

import pytest

from chat_proxy.core.errors import AuthError
from chat_proxy.models.request import ChatRequest
from chat_proxy.rag.prompt import PromptTemplates
from chat_proxy.services.chat_service import ChatService

PERSONA = PromptTemplates.SOCRATIC_TUTOR_PROMPT.template


def make_request(model="gpt-4o", temperature=0.5, messages=None):
    return ChatRequest.model_validate({
        "chatSettings": {"model": model, "temperature": temperature},
        "messages": messages or [{"role": "user", "content": "What is gravity?"}],
    })


def test_gravity_scenario(profile_store, fake_llm):
    svc = ChatService(profile_store=profile_store, llm_client=fake_llm)

    chunks = list(svc.stream_chat(make_request(model="gpt-4o", temperature=0.3)))

    assert chunks == ["Hel", "lo"]
    call = fake_llm.calls[0]
    assert call["model"] == "gpt-4o"
    assert call["temperature"] == 0.3
    assert call["max_tokens"] == 4096
    assert call["api_key"] == "sk-test"
    assert call["organization"] == "org-1"
    assert call["messages"] == [
        {"role": "system", "content": PERSONA},
        {"role": "user", "content": "What is gravity?"},
    ]


def test_existing_system_messages_are_replaced(profile_store, fake_llm):
    svc = ChatService(profile_store=profile_store, llm_client=fake_llm)
    request = make_request(messages=[
        {"role": "system", "content": "old prompt"},
        {"role": "user", "content": "first"},
        {"role": "assistant", "content": "second"},
        {"role": "system", "content": "another old prompt"},
        {"role": "user", "content": "third"},
    ])

    list(svc.stream_chat(request))

    sent = fake_llm.calls[0]["messages"]
    assert [m["role"] for m in sent].count("system") == 1
    assert sent[0]["role"] == "system"
    assert sent[0]["content"] == PERSONA
    assert [m["content"] for m in sent[1:]] == ["first", "second", "third"]


@pytest.mark.parametrize("model,expected", [
    ("gpt-4o", 4096),
    ("gpt-4-vision-preview", 4096),
    ("gpt-4-turbo-preview", None),
    ("gpt-3.5-turbo", None),
])
def test_max_tokens_table(profile_store, model, expected):
    llm = SimpleNamespace(provider_name="OpenAI", calls=[])
    llm.stream_chat = lambda **kwargs: llm.calls.append(kwargs) or iter(())
    svc = ChatService(profile_store=profile_store, llm_client=llm)

    list(svc.stream_chat(make_request(model=model)))

    assert llm.calls[0]["max_tokens"] == expected


def test_max_tokens_table_is_overridable(profile_store, fake_llm):
    svc = ChatService(
        profile_store=profile_store,
        llm_client=fake_llm,
        model_max_tokens={"my-model": 1024},
    )

    assert svc.max_tokens_for("my-model") == 1024
    assert svc.max_tokens_for("gpt-4o") is None


def test_missing_api_key_skips_completion_call(empty_profile_store, fake_llm):
    retriever = SimpleNamespace(retrieve_context=lambda *a, **k: pytest.fail("retriever called"))
    svc = ChatService(profile_store=empty_profile_store, llm_client=fake_llm, retriever=retriever)

    with pytest.raises(AuthError) as exc_info:
        svc.stream_chat(make_request())

    assert "API Key not found" in str(exc_info.value)
    assert exc_info.value.status_code == 401
    assert fake_llm.calls == []


def test_retrieved_context_is_appended_to_persona(profile_store, fake_llm):
    seen = {}

    def retrieve_context(query, profile=None):
        seen["query"] = query
        seen["profile"] = profile
        return "passage one\npassage two"

    svc = ChatService(
        profile_store=profile_store,
        llm_client=fake_llm,
        retriever=SimpleNamespace(retrieve_context=retrieve_context),
    )
    request = make_request(messages=[
        {"role": "user", "content": "earlier question"},
        {"role": "assistant", "content": "a reply"},
        {"role": "user", "content": "Why do apples fall?"},
    ])

    list(svc.stream_chat(request))

    assert seen["query"] == "Why do apples fall?"
    assert seen["profile"].openai_api_key == "sk-test"
    system = fake_llm.calls[0]["messages"][0]["content"]
    assert system.startswith(PERSONA)
    assert system.index(PERSONA) < system.index("passage one") < system.index("passage two")


def test_no_retrieval_without_retriever(profile_store, fake_llm):
    svc = ChatService(profile_store=profile_store, llm_client=fake_llm)

    assert svc.retrieval_enabled is False
    list(svc.stream_chat(make_request()))
    assert fake_llm.calls[0]["messages"][0]["content"] == PERSONA


def test_chunks_are_forwarded_unchanged(profile_store):
    emitted = ["The ", "apple", " falls", "\n\n", "why? ", "é", ""]
    llm = SimpleNamespace(provider_name="OpenAI", stream_chat=lambda **kwargs: iter(emitted))
    svc = ChatService(profile_store=profile_store, llm_client=llm)

    assert list(svc.stream_chat(make_request())) == emitted


def test_image_parts_pass_through(profile_store, fake_llm):
    svc = ChatService(profile_store=profile_store, llm_client=fake_llm)
    request = make_request(model="gpt-4-vision-preview", messages=[{
        "role": "user",
        "content": [
            {"type": "text", "text": "What is in this picture?"},
            {"type": "image_url", "image_url": {"url": "data:image/png;base64,AAAA"}},
        ],
    }])

    list(svc.stream_chat(request))

    sent = fake_llm.calls[0]["messages"][1]
    assert sent["content"][1] == {"type": "image_url", "image_url": {"url": "data:image/png;base64,AAAA"}}
    assert request.messages[0].text == "What is in this picture?"


def test_build_chat_service_modes():
    from chat_proxy.core.config import Settings
    from chat_proxy.rag.vector_store import PineconeVectorIndex
    from chat_proxy.services.chat_service import build_chat_service

    plain = build_chat_service(Settings(RETRIEVAL_AUGMENTATION=False))
    assert plain.retrieval_enabled is False

    augmented = build_chat_service(Settings(
        RETRIEVAL_AUGMENTATION=True,
        VECTOR_STORE_TYPE="pinecone",
        PINECONE_API_KEY="pc-key",
        PINECONE_INDEX_HOST="tutor.svc.pinecone.io",
        MODEL_MAX_TOKENS={"gpt-4o": 2048},
    ))
    assert augmented.retrieval_enabled is True
    assert isinstance(augmented.retriever.vector_index, PineconeVectorIndex)
    assert augmented.retriever.top_k == 5
    assert augmented.max_tokens_for("gpt-4o") == 2048
