"""
Agent 后端接口定义模块。

编排器只通过本模块定义的 AgentBackend 接口与后端交互，对传输方式一无所知：
后端可以是进程内的 LocalAgentBackend，也可以是任何"请求-响应"式的远端实现。

本模块包含：
- 数据结构：ProcessStatus、ImageInput、SkillInfo、CreateSessionResponse、SessionInfo
- 异常层级：BackendError 及其子类
- AgentBackend：抽象基类（8 个异步操作）

【Java 开发者类比】
- AgentBackend 相当于一个 Feign Client 接口，只声明调用签名
- 各数据类相当于请求/响应 DTO
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


class BackendError(Exception):
    """后端调用失败的基类异常。"""


class BackendNotRunningError(BackendError):
    """后端尚未启动（或已停止）时调用了需要运行中后端的操作。"""


class SessionNotFoundError(BackendError):
    """引用的会话 ID 在后端不存在。"""

    def __init__(self, session_id: str):
        super().__init__(f"Session not found: {session_id}")
        self.session_id = session_id


@dataclass
class ProcessStatus:
    """后端进程状态快照。只在显式启动/停止/查询时更新，不做轮询。"""

    running: bool = False
    base_url: str | None = None
    port: int | None = None


@dataclass
class ImageInput:
    """发送给后端的图片输入（base64 数据 + MIME 类型）。"""

    data: str
    media_type: str


@dataclass
class SkillInfo:
    """创建会话时可附带的技能描述。"""

    name: str
    description: str | None = None
    path: str | None = None


@dataclass
class CreateSessionResponse:
    """创建会话的响应。"""

    session_id: str
    credential_name: str
    credential_uuid: str
    provider_type: str
    model: str | None = None


@dataclass
class SessionInfo:
    """
    后端持有的会话记录摘要。

    created_at / last_activity 保持后端给出的原始文本（通常是 RFC 3339），
    由话题注册表负责解析。
    """

    session_id: str
    provider_type: str
    created_at: str
    last_activity: str
    messages_count: int
    model: str | None = None


class AgentBackend(ABC):
    """
    Agent 后端抽象接口。

    所有方法都是异步的；失败时抛出异常（推荐 BackendError 子类），
    由编排器在边界处统一捕获、记录并通知用户。
    """

    @abstractmethod
    async def start_process(self) -> ProcessStatus:
        """启动后端，返回启动后的状态。"""
        pass

    @abstractmethod
    async def stop_process(self) -> None:
        """停止后端。"""
        pass

    @abstractmethod
    async def get_process_status(self) -> ProcessStatus:
        """查询后端当前状态。"""
        pass

    @abstractmethod
    async def create_session(
        self,
        provider_type: str,
        model: str | None = None,
        system_prompt: str | None = None,
        skills: list[SkillInfo] | None = None,
    ) -> CreateSessionResponse:
        """创建新会话。"""
        pass

    @abstractmethod
    async def send_message(
        self,
        message: str,
        session_id: str | None = None,
        model: str | None = None,
        images: list[ImageInput] | None = None,
        web_search: bool | None = None,
        thinking: bool | None = None,
    ) -> str:
        """
        发送一条消息并等待最终回复文本。

        参数:
            message: 用户消息
            session_id: 目标会话；为 None 时后端按单轮对话处理
            model: 覆盖会话默认模型（可选）
            images: 图片输入（可选）
            web_search: 是否请求联网搜索
            thinking: 是否请求深度思考
        """
        pass

    @abstractmethod
    async def list_sessions(self) -> list[SessionInfo]:
        """列出后端持有的所有会话，顺序由后端决定。"""
        pass

    @abstractmethod
    async def get_session(self, session_id: str) -> SessionInfo:
        """获取单个会话的摘要。"""
        pass

    @abstractmethod
    async def delete_session(self, session_id: str) -> None:
        """删除会话。"""
        pass
