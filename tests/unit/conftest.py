# pylint: disable=missing-module-docstring,missing-function-docstring

from pathlib import Path

import pytest

from adapters.tts.gateway import SynthesisGateway
from config import AppConfig
from context.conversation import ConversationStore
from observability import logger
from orchestrator.runtime import StreamOrchestrator, SynthesisParams

from fakes import FakeChat, FakeEngine, fragments, write_style


@pytest.fixture(autouse=True)
def log_lines(monkeypatch: pytest.MonkeyPatch) -> list[str]:
    """Capture logger output instead of writing to stdout."""
    captured: list[str] = []
    monkeypatch.setattr(logger, "_print", captured.append)
    logger.configure(level="DEBUG", json_lines=True)
    return captured


@pytest.fixture(autouse=True)
def _reset_sse_app_status() -> None:
    # sse-starlette keeps a class-level exit event bound to the first loop
    from sse_starlette.sse import AppStatus  # pylint: disable=import-outside-toplevel
    if hasattr(AppStatus, "should_exit_event"):
        AppStatus.should_exit_event = None


@pytest.fixture
def engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture
def chat() -> FakeChat:
    return FakeChat(fragments("Hello", " there."))


@pytest.fixture
def store() -> ConversationStore:
    return ConversationStore()


@pytest.fixture
def params() -> SynthesisParams:
    return SynthesisParams(style="style-handle", total_steps=3, speed=1.4)


@pytest.fixture
def orchestrator(engine: FakeEngine, chat: FakeChat, store: ConversationStore) -> StreamOrchestrator:
    return StreamOrchestrator(
        gateway=SynthesisGateway(engine),
        store=store,
        chat=chat,
        system_prompt="You are a test assistant.",
    )


@pytest.fixture
def styles_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "voice_styles"
    directory.mkdir()
    write_style(directory / "M1.json")
    write_style(directory / "F1.json")
    return directory


@pytest.fixture
def config(styles_dir: Path) -> AppConfig:
    return AppConfig(voice_styles_dir=styles_dir, log_level="DEBUG")
