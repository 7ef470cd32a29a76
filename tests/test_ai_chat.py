# tests/test_ai_chat.py

from types import SimpleNamespace

import pytest

from app.common.deps import get_chat_relay
from app.common.errors import MissingMessage
from app.main import app
from app.services.ai_chat import (
    EMPTY_REPLY,
    ERROR_REPLY,
    HISTORY_LIMIT,
    NO_KEY_REPLY,
    SYSTEM_PROMPT,
    ChatContext,
    ChatRelay,
    ChatRequest,
    ChatStats,
    HistoryEntry,
    build_messages,
    contextual_message,
)


class FakeMessages:
    def __init__(self, reply=None, error=None):
        self.reply = reply
        self.error = error
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return self.reply


def fake_client(text="Meet Riya for chai this week!", error=None, content=None):
    if content is None:
        content = [SimpleNamespace(type="text", text=text)]
    messages = FakeMessages(reply=SimpleNamespace(content=content), error=error)
    return SimpleNamespace(messages=messages)


def relay_with(client, api_key="sk-test"):
    return ChatRelay(api_key=api_key, model="claude-3-haiku-20240307", max_tokens=300, client=client)


def test_contextual_message_tags():
    context = ChatContext(
        userName="Asha",
        stats=ChatStats(meetups=3, connections=5, streak=2),
        recentActivity="Joined Sunday Run Club",
        coolingFriendships=["Riya", "Dev"],
    )
    text = contextual_message("Who should I meet?", context)

    assert text.splitlines() == [
        "[STATS: 3 meetups, 5 connections, 2 day streak]",
        "[RECENT: Joined Sunday Run Club]",
        "[COOLING: Haven't met Riya, Dev recently]",
        "[User's name: Asha]",
        "",
        "User: Who should I meet?",
    ]


def test_contextual_message_without_context_is_verbatim():
    assert contextual_message("hello", None) == "hello"
    assert contextual_message("hello", ChatContext()) == "hello"


def test_history_is_trimmed_and_mapped():
    history = [
        HistoryEntry(direction="from_user" if i % 2 == 0 else "from_ai", content=f"turn {i}")
        for i in range(15)
    ]
    messages = build_messages("latest", history=history)

    assert len(messages) == HISTORY_LIMIT + 1
    assert messages[0] == {"role": "assistant", "content": "turn 5"}
    assert messages[1] == {"role": "user", "content": "turn 6"}
    assert messages[-1] == {"role": "user", "content": "latest"}


@pytest.mark.asyncio
async def test_missing_message_is_rejected():
    with pytest.raises(MissingMessage):
        await relay_with(fake_client()).chat(ChatRequest(message=""))


@pytest.mark.asyncio
async def test_no_api_key_returns_fallback():
    client = fake_client()
    reply = await relay_with(client, api_key=None).chat(ChatRequest(message="hi"))

    assert reply.fallback is True
    assert reply.response == NO_KEY_REPLY
    assert client.messages.calls == []


@pytest.mark.asyncio
async def test_relays_to_model():
    client = fake_client()
    request = ChatRequest(
        message="Any plans?",
        conversationHistory=[HistoryEntry(direction="from_user", content="hey")],
    )
    reply = await relay_with(client).chat(request)

    assert reply.fallback is False
    assert reply.response == "Meet Riya for chai this week!"
    call = client.messages.calls[0]
    assert call["model"] == "claude-3-haiku-20240307"
    assert call["max_tokens"] == 300
    assert call["system"] == SYSTEM_PROMPT
    assert call["messages"] == [
        {"role": "user", "content": "hey"},
        {"role": "user", "content": "Any plans?"},
    ]


@pytest.mark.asyncio
async def test_provider_error_returns_fallback():
    client = fake_client(error=RuntimeError("overloaded"))
    reply = await relay_with(client).chat(ChatRequest(message="hi"))

    assert reply.fallback is True
    assert reply.response == ERROR_REPLY


@pytest.mark.asyncio
async def test_no_text_block_returns_canned_reply():
    client = fake_client(content=[SimpleNamespace(type="tool_use", id="t1")])
    reply = await relay_with(client).chat(ChatRequest(message="hi"))

    assert reply.fallback is False
    assert reply.response == EMPTY_REPLY


def test_chat_endpoint(client):
    app.dependency_overrides[get_chat_relay] = lambda: relay_with(fake_client(text="Hello there"))

    response = client.post("/api/ai/chat", json={"message": "hi", "context": {"userName": "Asha"}})
    assert response.status_code == 200
    assert response.json() == {"response": "Hello there", "fallback": False}


def test_chat_endpoint_without_key(client):
    app.dependency_overrides[get_chat_relay] = lambda: relay_with(fake_client(), api_key=None)

    response = client.post("/api/ai/chat", json={"message": "hi"})
    assert response.status_code == 200
    assert response.json()["fallback"] is True


def test_chat_endpoint_requires_message(client):
    response = client.post("/api/ai/chat", json={})
    assert response.status_code == 400
    assert response.json() == {"error": "Message is required"}
