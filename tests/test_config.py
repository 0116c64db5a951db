import json

from agentdesk.config.loader import camel_to_snake, convert_keys, load_config, save_config, snake_to_camel
from agentdesk.config.schema import Config


def test_defaults():
    config = Config()
    assert config.agent.provider == "claude"
    assert config.default_model == "claude-sonnet-4-20250514"
    assert config.storage.persist_transient is False
    assert config.get_api_key() is None


def test_case_conversion():
    assert camel_to_snake("persistTransient") == "persist_transient"
    assert snake_to_camel("memory_window") == "memoryWindow"
    assert convert_keys({"agent": {"maxTokens": 1}, "list": [{"apiKey": "k"}]}) == {
        "agent": {"max_tokens": 1},
        "list": [{"api_key": "k"}],
    }


def test_load_camel_case_file(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({
        "agent": {"provider": "openai", "maxTokens": 1000, "systemPrompt": "be brief"},
        "providers": {"openai": {"apiKey": "sk-test"}},
        "storage": {"dataDir": str(tmp_path / "data"), "persistTransient": True},
    }), encoding="utf-8")

    config = load_config(path)

    assert config.agent.provider == "openai"
    assert config.agent.max_tokens == 1000
    assert config.agent.system_prompt == "be brief"
    assert config.get_api_key() == "sk-test"
    assert config.default_model == "gpt-4o"
    assert config.storage.persist_transient is True
    assert config.data_path == tmp_path / "data"


def test_corrupt_file_falls_back_to_defaults(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("{oops", encoding="utf-8")

    assert load_config(path).agent.provider == "claude"


def test_missing_file_gives_defaults(tmp_path):
    assert load_config(tmp_path / "absent.json").agent.model == ""


def test_save_writes_camel_case(tmp_path):
    path = tmp_path / "nested" / "config.json"
    config = Config()
    config.agent.memory_window = 10

    save_config(config, path)

    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["agent"]["memoryWindow"] == 10
    assert "persistTransient" in data["storage"]
    assert load_config(path).agent.memory_window == 10


def test_unknown_provider_has_no_config():
    config = Config()
    assert config.get_provider("nope") is None
    assert config.get_provider("qwen") is config.providers.qwen


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("AGENTDESK_AGENT__PROVIDER", "deepseek")
    assert Config().agent.provider == "deepseek"
