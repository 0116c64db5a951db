import pytest
from rich.console import Console
from typer.testing import CliRunner

import agentdesk.cli.commands as commands
from agentdesk.cli.commands import ChatOptions, RichNotifier, _handle_command, app
from agentdesk.config.schema import Config

runner = CliRunner()


def test_providers_table(monkeypatch):
    config = Config()
    config.providers.openai.api_key = "sk-test"
    monkeypatch.setattr(commands, "load_config", lambda: config)

    result = runner.invoke(app, ["providers"])

    assert result.exit_code == 0
    assert "claude" in result.stdout
    assert "gpt-4o" in result.stdout


def test_version():
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert "agentdesk v" in result.stdout


def test_rich_notifier_renders_messages():
    out = Console(record=True, width=80)
    notifier = RichNotifier(out)

    notifier.success("话题已删除")
    notifier.error("删除话题失败")

    text = out.export_text()
    assert "话题已删除" in text
    assert "删除话题失败" in text


@pytest.mark.asyncio
async def test_slash_commands_drive_the_orchestrator(backend, make_orchestrator):
    backend.add_session("other", messages_count=2)
    orch = make_orchestrator()
    options = ChatOptions()
    await orch.send_message("hello")

    await _handle_command(orch, "/think", options)
    await _handle_command(orch, "/web", options)
    assert options.thinking and options.web_search

    await _handle_command(orch, "/edit 1 hello there", options)
    assert orch.messages[0].content == "hello there"

    await _handle_command(orch, "/rm 2", options)
    assert len(orch.messages) == 1

    await _handle_command(orch, "/provider openai", options)
    assert orch.provider_type == "openai"
    assert orch.model == "gpt-4o"

    await _handle_command(orch, "/provider nope", options)
    assert orch.provider_type == "openai"

    await _handle_command(orch, "/topics", options)
    index = [t.id for t in orch.topics.topics].index("other") + 1
    await _handle_command(orch, f"/switch {index}", options)
    assert orch.session_id == "other"

    await _handle_command(orch, "/delete s1", options)
    assert "s1" not in backend.sessions

    await _handle_command(orch, "/new", options)
    assert orch.session_id is None


def test_single_message_chat_runs_without_event_bus(monkeypatch, make_orchestrator):
    seen = {}

    def fake_make_orchestrator(config, notifier, bus=None):
        seen["bus"] = bus
        return make_orchestrator(bus=bus, notifier=notifier)

    monkeypatch.setattr(commands, "load_config", lambda: Config())
    monkeypatch.setattr(commands, "_make_orchestrator", fake_make_orchestrator)

    result = runner.invoke(app, ["chat", "-m", "hello", "--logs", "--no-markdown"])

    assert result.exit_code == 0
    assert seen["bus"] is None
    assert "reply" in result.stdout


def test_make_provider_carries_credentials_for_other_providers(monkeypatch):
    monkeypatch.setenv("ANTHROPIC_API_KEY", "preset")
    config = Config()
    config.providers.claude.api_key = "sk-ant"
    config.providers.openai.api_key = "sk-openai"
    config.providers.deepseek.api_base = "https://deepseek.proxy"
    config.providers.openrouter.api_key = "sk-or"

    provider = commands._make_provider(config, "claude")

    assert provider.api_key == "sk-ant"
    assert provider.credentials["openai"].api_key == "sk-openai"
    assert provider.credentials["deepseek"].api_key is None
    assert provider.credentials["deepseek"].api_base == "https://deepseek.proxy"
    assert "gemini" not in provider.credentials
    assert "openrouter" not in provider.credentials


def test_make_provider_without_key_exits(monkeypatch):
    with pytest.raises(commands.typer.Exit):
        commands._make_provider(Config(), "gemini")
