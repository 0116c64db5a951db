import pytest

from agentdesk.backend.base import (
    BackendError,
    BackendNotRunningError,
    ImageInput,
    SessionNotFoundError,
    SkillInfo,
)
from agentdesk.backend.local import LocalAgentBackend, build_system_prompt, build_user_content
from agentdesk.providers.base import LLMProvider, LLMResponse


class ScriptedProvider(LLMProvider):
    def __init__(self, replies=None):
        super().__init__()
        self.replies = list(replies or [])
        self.calls = []

    async def chat(self, messages, model=None, max_tokens=4096, temperature=0.7, web_search=False, thinking=False):
        self.calls.append({
            "messages": [dict(m) for m in messages],
            "model": model,
            "web_search": web_search,
            "thinking": thinking,
        })
        if self.replies:
            return self.replies.pop(0)
        return LLMResponse(content="ok")

    def get_default_model(self) -> str:
        return "default-model"


@pytest.fixture
def provider():
    return ScriptedProvider()


async def _running(provider) -> LocalAgentBackend:
    backend = LocalAgentBackend(provider, system_prompt="be kind", base_url="http://localhost", port=9000)
    await backend.start_process()
    return backend


@pytest.mark.asyncio
async def test_lifecycle_and_status(provider):
    backend = LocalAgentBackend(provider, port=9000)

    assert (await backend.get_process_status()).running is False
    status = await backend.start_process()
    assert status.running is True
    assert status.port == 9000
    assert backend.default_model == "default-model"

    await backend.create_session("claude")
    await backend.stop_process()

    assert (await backend.get_process_status()).running is False
    assert await backend.list_sessions() == []


@pytest.mark.asyncio
async def test_operations_require_running_backend(provider):
    backend = LocalAgentBackend(provider)

    with pytest.raises(BackendNotRunningError):
        await backend.create_session("claude")
    with pytest.raises(BackendNotRunningError):
        await backend.send_message("hi", session_id="x")


@pytest.mark.asyncio
async def test_send_builds_prompt_with_history(provider):
    running = await _running(provider)
    created = await running.create_session("claude", model="claude-opus-4-20250514")
    provider.replies = [LLMResponse(content="first"), LLMResponse(content="second")]

    assert await running.send_message("hello", session_id=created.session_id) == "first"
    assert await running.send_message("again", session_id=created.session_id) == "second"

    sent = provider.calls[1]["messages"]
    assert sent[0] == {"role": "system", "content": "be kind"}
    assert [m["content"] for m in sent[1:]] == ["hello", "first", "again"]
    assert provider.calls[1]["model"] == "claude-opus-4-20250514"

    info = await running.get_session(created.session_id)
    assert info.messages_count == 4


@pytest.mark.asyncio
async def test_model_override_and_flags(provider):
    running = await _running(provider)
    created = await running.create_session("claude")

    await running.send_message("hi", session_id=created.session_id, model="gpt-4o", web_search=True, thinking=True)
    await running.send_message("hi", session_id=created.session_id)

    assert provider.calls[0]["model"] == "gpt-4o"
    assert provider.calls[0]["web_search"] is True
    assert provider.calls[0]["thinking"] is True
    assert provider.calls[1]["model"] == "default-model"
    assert provider.calls[1]["web_search"] is False


@pytest.mark.asyncio
async def test_provider_error_raises_and_keeps_history_clean(provider):
    running = await _running(provider)
    created = await running.create_session("claude")
    provider.replies = [LLMResponse(content="Error calling LLM: 401", finish_reason="error")]

    with pytest.raises(BackendError, match="401"):
        await running.send_message("hello", session_id=created.session_id)

    assert (await running.get_session(created.session_id)).messages_count == 0


@pytest.mark.asyncio
async def test_none_content_becomes_empty_string(provider):
    running = await _running(provider)
    created = await running.create_session("claude")
    provider.replies = [LLMResponse(content=None)]

    assert await running.send_message("hello", session_id=created.session_id) == ""


@pytest.mark.asyncio
async def test_unknown_session(provider):
    running = await _running(provider)
    with pytest.raises(SessionNotFoundError):
        await running.send_message("hi", session_id="nope")
    with pytest.raises(SessionNotFoundError):
        await running.delete_session("nope")


@pytest.mark.asyncio
async def test_list_sessions_most_recent_first(provider):
    running = await _running(provider)
    a = await running.create_session("claude")
    b = await running.create_session("claude")
    await running.send_message("bump", session_id=a.session_id)

    ids = [s.session_id for s in await running.list_sessions()]
    assert ids == [a.session_id, b.session_id]

    await running.delete_session(a.session_id)
    assert [s.session_id for s in await running.list_sessions()] == [b.session_id]


@pytest.mark.asyncio
async def test_skills_are_appended_to_system_prompt(provider):
    running = await _running(provider)
    created = await running.create_session("claude", skills=[SkillInfo(name="search", description="web lookup")])

    await running.send_message("hi", session_id=created.session_id)

    system = provider.calls[0]["messages"][0]["content"]
    assert system.startswith("be kind")
    assert "- search: web lookup" in system


def test_build_user_content_with_images():
    assert build_user_content("hi", None) == "hi"

    parts = build_user_content("look", [ImageInput(data="AAAA", media_type="image/png")])
    assert parts[0] == {"type": "text", "text": "look"}
    assert parts[1]["image_url"]["url"] == "data:image/png;base64,AAAA"


def test_build_system_prompt():
    assert build_system_prompt(None, None) is None
    assert build_system_prompt("base", []) == "base"
    assert build_system_prompt(None, [SkillInfo(name="x")]).startswith("## Available Skills")
