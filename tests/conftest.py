"""
Shared pytest configuration and test doubles.

This file ensures the project root is on sys.path so that `import agentdesk`
works consistently in all tests, and provides an in-memory scripted backend.
"""

import asyncio
import sys
from pathlib import Path

import pytest

# Ensure project root is importable for test modules.
ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from agentdesk.backend.base import (  # noqa: E402
    AgentBackend,
    CreateSessionResponse,
    ProcessStatus,
    SessionInfo,
    SessionNotFoundError,
)
from agentdesk.chat.notify import Notifier  # noqa: E402
from agentdesk.chat.orchestrator import SessionOrchestrator  # noqa: E402
from agentdesk.storage.adapters import PreferenceStore, TransientStore  # noqa: E402
from agentdesk.storage.base import MemoryStore  # noqa: E402


class RecordingNotifier(Notifier):
    def __init__(self):
        self.successes: list[str] = []
        self.errors: list[str] = []
        self.infos: list[str] = []

    def success(self, message: str) -> None:
        self.successes.append(message)

    def error(self, message: str) -> None:
        self.errors.append(message)

    def info(self, message: str) -> None:
        self.infos.append(message)


class FakeBackend(AgentBackend):
    """
    Scripted backend.

    Failures are injected by setting the *_error attributes; replies are
    popped from `responses` (falling back to "reply"). Setting `send_gate`
    or `create_gate` to an asyncio.Event holds the call until the event is set.
    """

    def __init__(self):
        self.running = True
        self.sessions: dict[str, SessionInfo] = {}
        self.responses: list[str] = []
        self.create_calls: list[tuple] = []
        self.send_calls: list[dict] = []
        self.delete_calls: list[str] = []
        self.list_calls = 0

        self.create_error: Exception | None = None
        self.send_error: Exception | None = None
        self.delete_error: Exception | None = None
        self.list_error: Exception | None = None
        self.start_error: Exception | None = None
        self.stop_error: Exception | None = None
        self.status_error: Exception | None = None

        self.send_gate: asyncio.Event | None = None
        self.create_gate: asyncio.Event | None = None
        self.active_sends = 0
        self.max_active_sends = 0
        self._counter = 0

    def add_session(self, session_id: str, created_at: str = "2025-03-07T09:05:00", messages_count: int = 0):
        self.sessions[session_id] = SessionInfo(
            session_id=session_id,
            provider_type="claude",
            created_at=created_at,
            last_activity=created_at,
            messages_count=messages_count,
        )

    async def start_process(self) -> ProcessStatus:
        if self.start_error:
            raise self.start_error
        self.running = True
        return ProcessStatus(running=True, base_url="http://127.0.0.1:8080", port=8080)

    async def stop_process(self) -> None:
        if self.stop_error:
            raise self.stop_error
        self.running = False

    async def get_process_status(self) -> ProcessStatus:
        if self.status_error:
            raise self.status_error
        return ProcessStatus(running=self.running)

    async def create_session(self, provider_type, model=None, system_prompt=None, skills=None):
        self.create_calls.append((provider_type, model, system_prompt, skills))
        if self.create_gate:
            await self.create_gate.wait()
        if self.create_error:
            raise self.create_error
        self._counter += 1
        session_id = f"s{self._counter}"
        self.add_session(session_id)
        return CreateSessionResponse(
            session_id=session_id,
            credential_name="test",
            credential_uuid="cred-1",
            provider_type=provider_type,
            model=model,
        )

    async def send_message(self, message, session_id=None, model=None, images=None, web_search=None, thinking=None):
        self.send_calls.append({
            "message": message,
            "session_id": session_id,
            "model": model,
            "images": images,
            "web_search": web_search,
            "thinking": thinking,
        })
        self.active_sends += 1
        self.max_active_sends = max(self.max_active_sends, self.active_sends)
        try:
            if self.send_gate:
                await self.send_gate.wait()
            if self.send_error:
                raise self.send_error
            if session_id not in self.sessions:
                raise SessionNotFoundError(session_id)
            self.sessions[session_id].messages_count += 2
            return self.responses.pop(0) if self.responses else "reply"
        finally:
            self.active_sends -= 1

    async def list_sessions(self):
        self.list_calls += 1
        if self.list_error:
            raise self.list_error
        return list(self.sessions.values())

    async def get_session(self, session_id):
        if session_id not in self.sessions:
            raise SessionNotFoundError(session_id)
        return self.sessions[session_id]

    async def delete_session(self, session_id):
        self.delete_calls.append(session_id)
        if self.delete_error:
            raise self.delete_error
        if session_id not in self.sessions:
            raise SessionNotFoundError(session_id)
        del self.sessions[session_id]


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def pref_store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def transient_store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def make_orchestrator(backend, notifier, pref_store, transient_store):
    def _make(**kwargs) -> SessionOrchestrator:
        return SessionOrchestrator(
            backend=kwargs.pop("backend", backend),
            preferences=PreferenceStore(kwargs.pop("pref_store", pref_store), default_provider="claude"),
            transient=TransientStore(kwargs.pop("transient_store", transient_store)),
            notifier=kwargs.pop("notifier", notifier),
            **kwargs,
        )

    return _make
