import json
from datetime import datetime, timezone

from agentdesk.chat.types import Message, MessageImage
from agentdesk.storage.adapters import (
    CURRENT_SESSION_KEY,
    MESSAGES_KEY,
    PREF_MODEL_KEY,
    PREF_PROVIDER_KEY,
    PreferenceStore,
    TransientStore,
)
from agentdesk.storage.base import JsonFileStore, MemoryStore


def test_memory_store_read_write():
    store = MemoryStore()
    store.write("k", {"a": [1, 2]})
    assert store.read("k") == {"a": [1, 2]}
    assert store.read("missing", "dflt") == "dflt"


def test_corrupt_value_falls_back_to_default():
    store = MemoryStore({"k": "{not json"})
    assert store.read("k", []) == []


def test_unserializable_write_is_swallowed():
    store = MemoryStore()
    store.write("k", object())
    assert store.read("k", "dflt") == "dflt"


def test_json_file_store_persists_across_instances(tmp_path):
    path = tmp_path / "prefs.json"
    JsonFileStore(path).write("agent_pref_provider", "openai")

    assert JsonFileStore(path).read("agent_pref_provider") == "openai"
    assert json.loads(path.read_text(encoding="utf-8")) == {"agent_pref_provider": '"openai"'}


def test_json_file_store_tolerates_corrupt_file(tmp_path):
    path = tmp_path / "prefs.json"
    path.write_text("garbage", encoding="utf-8")
    store = JsonFileStore(path)

    assert store.read("agent_pref_provider", "claude") == "claude"

    store.write("agent_pref_provider", "gemini")
    assert store.read("agent_pref_provider") == "gemini"


def test_preferences_use_defaults_when_unset():
    prefs = PreferenceStore(MemoryStore(), default_provider="claude", default_model="claude-sonnet-4-20250514")
    assert prefs.provider_type == "claude"
    assert prefs.model == "claude-sonnet-4-20250514"


def test_preferences_round_trip_under_known_keys():
    store = MemoryStore()
    prefs = PreferenceStore(store, default_provider="claude")
    prefs.provider_type = "qwen"
    prefs.model = "qwen-max"

    assert store.read(PREF_PROVIDER_KEY) == "qwen"
    assert store.read(PREF_MODEL_KEY) == "qwen-max"
    assert PreferenceStore(store, default_provider="claude").provider_type == "qwen"


def test_preferences_ignore_wrong_types():
    store = MemoryStore({PREF_PROVIDER_KEY: "42", PREF_MODEL_KEY: "[1]"})
    prefs = PreferenceStore(store, default_provider="claude", default_model="m")
    assert prefs.provider_type == "claude"
    assert prefs.model == "m"


def test_transient_message_timestamp_is_reconstructed():
    stamp = datetime(2025, 3, 7, 9, 5, 30, tzinfo=timezone.utc)
    store = MemoryStore()
    transient = TransientStore(store)
    transient.messages = [Message(id="a", role="user", content="hi", timestamp=stamp)]

    loaded = TransientStore(store).messages

    assert len(loaded) == 1
    assert isinstance(loaded[0].timestamp, datetime)
    assert loaded[0].timestamp == stamp
    assert (loaded[0].id, loaded[0].role, loaded[0].content) == ("a", "user", "hi")


def test_transient_reads_browser_style_records():
    raw = [
        {"id": "a", "role": "user", "content": "hi", "timestamp": "2025-03-07T09:05:30.000Z",
         "images": [{"data": "AAAA", "mediaType": "image/png"}]},
        {"id": "b", "role": "assistant", "content": "", "timestamp": "2025-03-07T09:05:31.000Z",
         "isThinking": True, "thinkingContent": "思考中..."},
    ]
    store = MemoryStore({MESSAGES_KEY: json.dumps(raw)})

    first, second = TransientStore(store).messages

    assert first.timestamp == datetime(2025, 3, 7, 9, 5, 30, tzinfo=timezone.utc)
    assert first.images == [MessageImage(data="AAAA", media_type="image/png")]
    assert second.is_thinking is True
    assert second.thinking_label == "思考中..."


def test_transient_serializes_with_camel_case_keys():
    store = MemoryStore()
    TransientStore(store).messages = [
        Message(id="b", role="assistant", content="", is_thinking=True, thinking_label="思考中...")
    ]
    record = store.read(MESSAGES_KEY)[0]
    assert record["isThinking"] is True
    assert record["thinkingContent"] == "思考中..."
    assert "is_thinking" not in record


def test_malformed_messages_fall_back_to_empty():
    store = MemoryStore({MESSAGES_KEY: json.dumps([{"id": "a", "role": "robot", "timestamp": "x"}])})
    assert TransientStore(store).messages == []

    store = MemoryStore({MESSAGES_KEY: json.dumps({"not": "a list"})})
    assert TransientStore(store).messages == []

    store = MemoryStore({MESSAGES_KEY: "[{broken"})
    assert TransientStore(store).messages == []


def test_transient_session_id():
    store = MemoryStore()
    transient = TransientStore(store)
    assert transient.session_id is None

    transient.session_id = "s1"
    assert store.read(CURRENT_SESSION_KEY) == "s1"

    transient.session_id = None
    assert transient.session_id is None
