"""
CLI 命令模块 - agentdesk 的所有命令行命令定义。

本模块使用 Typer 框架定义 agentdesk 的 CLI 命令体系：
- onboard：初始化配置文件和数据目录
- chat：与 Agent 对话（单条消息或交互式对话，交互模式支持话题管理命令）
- status：查看配置、偏好和 API Key 状态
- providers：列出可选的 Provider 及其模型

技术栈：
- Typer：CLI 框架（基于 Click，支持类型注解自动生成帮助文档）
- Rich：终端美化输出（Markdown 渲染、表格、状态指示）
- prompt_toolkit：交互式输入（历史记录、多行粘贴）

CLI 本身只是 SessionOrchestrator 的一个"皮肤"：所有状态变化都经由编排器完成，
这里只负责解析输入、渲染时间线和通知。
"""

import asyncio
import os
import select
import signal
import sys
from contextlib import nullcontext
from dataclasses import dataclass
from pathlib import Path

import typer
from loguru import logger
from prompt_toolkit import PromptSession
from prompt_toolkit.formatted_text import HTML
from prompt_toolkit.history import FileHistory
from prompt_toolkit.patch_stdout import patch_stdout
from rich.console import Console
from rich.markdown import Markdown
from rich.table import Table
from rich.text import Text

from agentdesk import __logo__, __version__
from agentdesk.backend.local import LocalAgentBackend
from agentdesk.bus.events import ChatEvent
from agentdesk.bus.queue import EventBus
from agentdesk.chat.notify import Notifier
from agentdesk.chat.orchestrator import SessionOrchestrator
from agentdesk.chat.types import Message
from agentdesk.config.loader import get_config_path, load_config, save_config
from agentdesk.config.schema import Config
from agentdesk.providers.litellm_provider import LiteLLMProvider, ProviderCredentials
from agentdesk.providers.registry import PROVIDERS, default_model_for, find_by_name
from agentdesk.storage.adapters import PreferenceStore, TransientStore
from agentdesk.storage.base import JsonFileStore, KeyValueStore, MemoryStore
from agentdesk.utils.helpers import ensure_dir, truncate_string

app = typer.Typer(
    name="agentdesk",
    help=f"{__logo__} agentdesk - Multi-topic AI chat client",
    no_args_is_help=True,
)

console = Console()
EXIT_COMMANDS = {"exit", "quit", "/exit", "/quit", ":q"}

HELP_TEXT = """[bold]可用命令[/bold]
  /new                 开始新话题
  /topics              列出话题
  /switch <序号|ID>    切换话题
  /delete <序号|ID>    删除话题
  /history             显示当前时间线
  /edit <序号> <内容>  编辑一条消息（仅本地）
  /rm <序号>           删除一条消息（仅本地）
  /provider [名称]     查看或切换 Provider
  /model [名称]        查看或切换模型
  /think               开关深度思考
  /web                 开关联网搜索
  /status              显示后端与会话状态
  exit                 退出"""


# ---------------------------------------------------------------------------
# CLI 输入：使用 prompt_toolkit 实现编辑、粘贴、历史记录和显示
# ---------------------------------------------------------------------------

_PROMPT_SESSION: PromptSession | None = None
_SAVED_TERM_ATTRS = None  # 保存的终端原始属性（用于退出时恢复）


def _flush_pending_tty_input() -> None:
    """
    清除终端中未读的按键输入。

    等待回复期间用户可能按了额外的键，这些残留输入会干扰下次读取。
    优先使用 termios.tcflush（POSIX），回退到 select+read 轮询。
    """
    try:
        fd = sys.stdin.fileno()
        if not os.isatty(fd):
            return
    except (OSError, ValueError):
        return

    try:
        import termios
        termios.tcflush(fd, termios.TCIFLUSH)
        return
    except (ImportError, OSError):
        pass

    try:
        while True:
            ready, _, _ = select.select([fd], [], [], 0)
            if not ready or not os.read(fd, 4096):
                break
    except OSError:
        return


def _restore_terminal() -> None:
    """恢复终端到原始状态（回显、行缓冲等）。"""
    if _SAVED_TERM_ATTRS is None:
        return
    try:
        import termios
        termios.tcsetattr(sys.stdin.fileno(), termios.TCSADRAIN, _SAVED_TERM_ATTRS)
    except (ImportError, OSError):
        pass


def _init_prompt_session(data_path: Path) -> None:
    """创建 prompt_toolkit 会话，历史记录保存在 {data_dir}/history/cli_history。"""
    global _PROMPT_SESSION, _SAVED_TERM_ATTRS

    try:
        import termios
        _SAVED_TERM_ATTRS = termios.tcgetattr(sys.stdin.fileno())
    except (ImportError, OSError):
        pass

    history_file = ensure_dir(data_path / "history") / "cli_history"
    _PROMPT_SESSION = PromptSession(
        history=FileHistory(str(history_file)),
        enable_open_in_editor=False,
        multiline=False,
    )


async def _read_interactive_input_async() -> str:
    """使用 prompt_toolkit 异步读取一行用户输入。"""
    if _PROMPT_SESSION is None:
        raise RuntimeError("Call _init_prompt_session() first")
    try:
        with patch_stdout():
            return await _PROMPT_SESSION.prompt_async(HTML("<b fg='ansiblue'>You:</b> "))
    except EOFError as exc:
        raise KeyboardInterrupt from exc


def _is_exit_command(command: str) -> bool:
    return command.lower() in EXIT_COMMANDS


# ---------------------------------------------------------------------------
# 渲染
# ---------------------------------------------------------------------------


class RichNotifier(Notifier):
    """用 rich 在终端渲染通知（对应图形界面里的 toast）。"""

    def __init__(self, out: Console | None = None):
        self.console = out or console

    def success(self, message: str) -> None:
        self.console.print(f"[green]✓[/green] {message}")

    def error(self, message: str) -> None:
        self.console.print(f"[red]✗ {message}[/red]")

    def info(self, message: str) -> None:
        self.console.print(f"[dim]{message}[/dim]")


def _print_assistant_message(message: Message, render_markdown: bool) -> None:
    body = Markdown(message.content) if render_markdown else Text(message.content)
    console.print()
    console.print(f"[cyan]{__logo__} agentdesk[/cyan]")
    console.print(body)
    console.print()


def _print_history(messages: list[Message]) -> None:
    if not messages:
        console.print("[dim]（时间线为空）[/dim]")
        return
    for i, msg in enumerate(messages, 1):
        who = "[blue]You[/blue]" if msg.role == "user" else "[cyan]AI[/cyan]"
        text = msg.thinking_label if msg.is_thinking else msg.content
        console.print(f"{i:>3}. {who} [dim]{msg.timestamp:%H:%M}[/dim] {truncate_string(text or '', 80)}")


def _print_topics(orchestrator: SessionOrchestrator) -> None:
    topics = orchestrator.topics.topics
    if not topics:
        console.print("[dim]（暂无话题）[/dim]")
        return
    table = Table(title="话题")
    table.add_column("#", style="dim")
    table.add_column("标题", style="cyan")
    table.add_column("消息数", justify="right")
    table.add_column("ID", style="dim")
    for i, topic in enumerate(topics, 1):
        marker = "*" if topic.id == orchestrator.session_id else ""
        table.add_row(f"{i}{marker}", topic.title, str(topic.message_count), topic.id)
    console.print(table)


# ---------------------------------------------------------------------------
# 组装
# ---------------------------------------------------------------------------


def _provider_credentials(config: Config) -> dict[str, ProviderCredentials]:
    """
    收集所有已配置标准 Provider 的凭据。

    切换 Provider 后模型名会随之变化，LiteLLMProvider 据此把请求
    连同对应 Provider 的 Key 与 api_base 一起发出。
    """
    credentials: dict[str, ProviderCredentials] = {}
    for spec in PROVIDERS:
        p = config.get_provider(spec.name)
        if spec.is_gateway or not p or not (p.api_key or p.api_base):
            continue
        credentials[spec.name] = ProviderCredentials(
            api_key=p.api_key or None,
            api_base=p.api_base,
            extra_headers=p.extra_headers,
        )
    return credentials


def _make_provider(config: Config, provider_type: str) -> LiteLLMProvider:
    """
    根据配置创建 LiteLLM 提供者实例。

    如果当前 Provider 未配置 API Key，打印错误并退出。
    """
    p = config.get_provider(provider_type)
    if not config.get_api_key(provider_type):
        console.print(f"[red]Error: No API key configured for {provider_type}.[/red]")
        console.print(f"Set one in {get_config_path()} under providers.{provider_type}")
        raise typer.Exit(1)
    return LiteLLMProvider(
        api_key=p.api_key,
        api_base=p.api_base,
        default_model=default_model_for(provider_type) or config.default_model,
        extra_headers=p.extra_headers,
        provider_name=provider_type,
        credentials=_provider_credentials(config),
    )


def _make_orchestrator(
    config: Config,
    notifier: Notifier,
    bus: EventBus | None = None,
) -> SessionOrchestrator:
    """
    组装编排器：偏好文件 → Provider → 本地后端 → 临时存储。

    - 偏好保存在 {data_dir}/preferences.json
    - 临时状态默认只在内存中；storage.persist_transient 为 true 时写入 {data_dir}/session.json
    """
    data_path = ensure_dir(config.data_path)
    preferences = PreferenceStore(
        JsonFileStore(data_path / "preferences.json"),
        default_provider=config.agent.provider,
        default_model=config.agent.model,
    )
    transient_store: KeyValueStore = (
        JsonFileStore(data_path / "session.json")
        if config.storage.persist_transient else MemoryStore()
    )

    provider = _make_provider(config, preferences.provider_type)
    backend = LocalAgentBackend(
        provider=provider,
        default_model=preferences.model or provider.get_default_model(),
        system_prompt=config.agent.system_prompt,
        memory_window=config.agent.memory_window,
        max_tokens=config.agent.max_tokens,
        temperature=config.agent.temperature,
    )
    return SessionOrchestrator(
        backend=backend,
        preferences=preferences,
        transient=TransientStore(transient_store),
        notifier=notifier,
        bus=bus,
        system_prompt=config.agent.system_prompt,
    )


def version_callback(value: bool):
    if value:
        console.print(f"{__logo__} agentdesk v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", "-v", callback=version_callback, is_eager=True
    ),
):
    """agentdesk CLI 根命令回调。处理全局选项（如 --version）。"""
    pass


# ============================================================================
# Onboard
# ============================================================================


@app.command()
def onboard():
    """
    初始化 agentdesk 配置和数据目录。

    执行流程：
    1. 在 ~/.agentdesk/ 下创建默认配置文件 config.json
    2. 创建数据目录
    3. 打印后续操作指引
    """
    config_path = get_config_path()

    if config_path.exists():
        console.print(f"[yellow]Config already exists at {config_path}[/yellow]")
        if not typer.confirm("Overwrite?"):
            raise typer.Exit()

    config = Config()
    save_config(config)
    console.print(f"[green]✓[/green] Created config at {config_path}")

    data_path = ensure_dir(config.data_path)
    console.print(f"[green]✓[/green] Data directory at {data_path}")

    console.print(f"\n{__logo__} agentdesk is ready!")
    console.print("\nNext steps:")
    console.print(f"  1. Add your API key to [cyan]{config_path}[/cyan]")
    console.print("  2. Chat: [cyan]agentdesk chat -m \"Hello!\"[/cyan]")


# ============================================================================
# Chat
# ============================================================================


@dataclass
class ChatOptions:
    """交互模式下可随时切换的发送选项。"""

    thinking: bool = False
    web_search: bool = False
    markdown: bool = True


def _resolve_index(ref: str, size: int) -> int | None:
    """把 1 起始的序号解析为下标，非法时返回 None。"""
    if ref.isdigit() and 1 <= int(ref) <= size:
        return int(ref) - 1
    return None


def _resolve_topic(orchestrator: SessionOrchestrator, ref: str) -> str:
    topics = orchestrator.topics.topics
    index = _resolve_index(ref, len(topics))
    return topics[index].id if index is not None else ref


async def _handle_command(orchestrator: SessionOrchestrator, command: str, options: ChatOptions) -> None:
    """处理以 / 开头的交互命令。"""
    name, _, arg = command.partition(" ")
    arg = arg.strip()

    if name == "/help":
        console.print(HELP_TEXT)

    elif name == "/new":
        orchestrator.clear_messages()

    elif name == "/topics":
        await orchestrator.refresh_topics()
        _print_topics(orchestrator)

    elif name == "/switch":
        if not arg:
            console.print("[yellow]用法: /switch <序号|ID>[/yellow]")
        elif not await orchestrator.switch_topic(_resolve_topic(orchestrator, arg)):
            console.print("[dim]已经是当前话题[/dim]")

    elif name == "/delete":
        if not arg:
            console.print("[yellow]用法: /delete <序号|ID>[/yellow]")
        else:
            await orchestrator.delete_topic(_resolve_topic(orchestrator, arg))

    elif name == "/history":
        _print_history(orchestrator.messages)

    elif name in ("/edit", "/rm"):
        ref, _, text = arg.partition(" ")
        messages = orchestrator.messages
        index = _resolve_index(ref, len(messages))
        if index is None:
            console.print(f"[yellow]无效的消息序号: {ref or '（空）'}[/yellow]")
        elif name == "/rm":
            orchestrator.delete_message(messages[index].id)
        elif not text.strip():
            console.print("[yellow]用法: /edit <序号> <内容>[/yellow]")
        else:
            orchestrator.edit_message(messages[index].id, text.strip())

    elif name == "/provider":
        if not arg:
            console.print(f"Provider: [cyan]{orchestrator.provider_type}[/cyan]")
        elif not find_by_name(arg):
            names = ", ".join(spec.name for spec in PROVIDERS)
            console.print(f"[yellow]未知 Provider: {arg}（可选: {names}）[/yellow]")
        else:
            orchestrator.set_provider_type(arg)
            orchestrator.set_model(default_model_for(arg))
            console.print(f"Provider → [cyan]{arg}[/cyan]，模型 → [cyan]{orchestrator.model}[/cyan]（新话题生效）")

    elif name == "/model":
        if arg:
            orchestrator.set_model(arg)
        console.print(f"Model: [cyan]{orchestrator.model or '（后端默认）'}[/cyan]")

    elif name == "/think":
        options.thinking = not options.thinking
        console.print(f"深度思考: {'开' if options.thinking else '关'}")

    elif name == "/web":
        options.web_search = not options.web_search
        console.print(f"联网搜索: {'开' if options.web_search else '关'}")

    elif name == "/status":
        status = await orchestrator.refresh_process_status()
        console.print(f"Backend: {'[green]running[/green]' if status.running else '[red]stopped[/red]'}")
        console.print(f"Session: {orchestrator.session_id or '[dim]（无）[/dim]'}")
        console.print(f"State: {orchestrator.state.value}")
        console.print(f"Provider: {orchestrator.provider_type}  Model: {orchestrator.model or '（后端默认）'}")

    else:
        console.print(f"[yellow]未知命令: {name}，输入 /help 查看帮助[/yellow]")


@app.command()
def chat(
    message: str = typer.Option(None, "--message", "-m", help="Message to send"),
    think: bool = typer.Option(False, "--think", help="Request deep thinking"),
    web: bool = typer.Option(False, "--web", help="Request web search"),
    markdown: bool = typer.Option(True, "--markdown/--no-markdown", help="Render assistant output as Markdown"),
    logs: bool = typer.Option(False, "--logs/--no-logs", help="Show agentdesk runtime logs during chat"),
):
    """
    与 Agent 对话。

    支持两种使用方式：
    1. 单条消息模式：agentdesk chat -m "你好" → 直接返回回复
    2. 交互模式：agentdesk chat → 进入交互式对话循环，支持 /new、/topics 等命令
    """
    config = load_config()

    if logs:
        logger.enable("agentdesk")
    else:
        logger.disable("agentdesk")

    # 单条消息模式没有事件循环消费事件，不挂总线
    bus = None if message else EventBus()
    orchestrator = _make_orchestrator(config, RichNotifier(), bus)
    options = ChatOptions(thinking=think, web_search=web, markdown=markdown)

    def _thinking_ctx(label: str):
        if logs:
            return nullcontext()
        return console.status(f"[dim]{label}[/dim]", spinner="dots")

    async def send(text: str) -> None:
        pending = orchestrator.begin_send(text, web_search=options.web_search, thinking=options.thinking)
        with _thinking_ctx(pending.placeholder.thinking_label or ""):
            ok = await orchestrator.complete_send(pending)
        if ok:
            reply = orchestrator.timeline.get(pending.placeholder.id)
            if reply:
                _print_assistant_message(reply, options.markdown)

    if message:
        async def run_once():
            await orchestrator.start_process()
            await orchestrator.initialize()
            await send(message)
            await orchestrator.stop_process()

        asyncio.run(run_once())
        return

    _init_prompt_session(config.data_path)
    console.print(f"{__logo__} Interactive mode (type [bold]/help[/bold] for commands, [bold]exit[/bold] to quit)\n")

    def _exit_on_sigint(signum, frame):
        _restore_terminal()
        console.print("\nGoodbye!")
        os._exit(0)

    signal.signal(signal.SIGINT, _exit_on_sigint)

    async def on_session(event: ChatEvent) -> None:
        if event.payload:
            console.print(f"[dim]会话: {event.payload}[/dim]")

    async def run_interactive():
        bus.subscribe("session", on_session)
        dispatcher = asyncio.create_task(bus.dispatch())

        await orchestrator.start_process()
        await orchestrator.initialize()
        if orchestrator.session_id and orchestrator.session_id not in orchestrator.topics:
            console.print("[yellow]上次的会话在后端已不存在，输入 /new 开始新话题[/yellow]")

        try:
            while True:
                _flush_pending_tty_input()
                user_input = await _read_interactive_input_async()
                command = user_input.strip()
                if not command:
                    continue
                if _is_exit_command(command):
                    break
                if command.startswith("/"):
                    await _handle_command(orchestrator, command, options)
                else:
                    await send(user_input)
        except KeyboardInterrupt:
            pass
        finally:
            _restore_terminal()
            console.print("\nGoodbye!")
            await orchestrator.stop_process()
            bus.stop()
            await dispatcher

    asyncio.run(run_interactive())


# ============================================================================
# Status / Providers
# ============================================================================


@app.command()
def status():
    """
    显示 agentdesk 状态。

    展示内容：配置文件、数据目录、当前偏好，以及各 Provider 的 API Key 配置状态。
    """
    config_path = get_config_path()
    config = load_config()
    data_path = config.data_path

    console.print(f"{__logo__} agentdesk Status\n")
    console.print(f"Config: {config_path} {'[green]✓[/green]' if config_path.exists() else '[red]✗[/red]'}")
    console.print(f"Data: {data_path} {'[green]✓[/green]' if data_path.exists() else '[red]✗[/red]'}")

    preferences = PreferenceStore(
        JsonFileStore(data_path / "preferences.json"),
        default_provider=config.agent.provider,
        default_model=config.agent.model,
    )
    console.print(f"Provider: {preferences.provider_type}")
    console.print(f"Model: {preferences.model or default_model_for(preferences.provider_type)}")
    console.print(f"Transient state: {'file' if config.storage.persist_transient else 'memory'}")

    for spec in PROVIDERS:
        has_key = bool(config.get_api_key(spec.name))
        console.print(f"{spec.label}: {'[green]✓[/green]' if has_key else '[dim]not set[/dim]'}")


@app.command()
def providers():
    """以表格形式列出所有可选 Provider 及其模型（第一个为默认模型）。"""
    config = load_config()

    table = Table(title="Providers")
    table.add_column("Name", style="cyan")
    table.add_column("Display")
    table.add_column("Models", style="yellow")
    table.add_column("API Key", style="green")

    for spec in PROVIDERS:
        table.add_row(
            spec.name,
            spec.label,
            ", ".join(spec.models),
            "✓" if config.get_api_key(spec.name) else "✗",
        )

    console.print(table)


if __name__ == "__main__":
    app()
