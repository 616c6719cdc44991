"""
Application configuration.

Responsibilities:
- Load deployment-specific configuration
- Read environment variables
- Provide a typed, immutable config object

Non-responsibilities:
- No orchestration logic
- No behavioural constants (see constants.py)
- No runtime mutation
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from adapters.llm.prompts import DEFAULT_SYSTEM_PROMPT


_BASE_DIR = Path(__file__).resolve().parent.parent


def _env_bool(name: str, default: str) -> bool:
    return os.environ.get(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class AppConfig:
    """
    Immutable application configuration.

    Constructed once at process startup and stored on app.state.
    """

    # ------------------------------------------------------------------
    # Environment
    # ------------------------------------------------------------------

    env: str = "dev"
    log_level: str = "INFO"
    enable_json_logs: bool = True
    host: str = "0.0.0.0"
    port: int = 3001
    cors_origins: tuple[str, ...] = ("*",)

    # ------------------------------------------------------------------
    # TTS
    # ------------------------------------------------------------------

    onnx_dir: Path = _BASE_DIR / "assets" / "onnx"
    voice_styles_dir: Path = _BASE_DIR / "assets" / "voice_styles"
    default_voice: str = "M1"
    default_steps: int = 3
    default_speed: float = 1.4
    tts_engine_factory: str | None = None

    # ------------------------------------------------------------------
    # LLM (Ollama)
    # ------------------------------------------------------------------

    ollama_url: str = "http://localhost:11434"
    ollama_model: str = "llama3.2"
    llm_connect_timeout_s: float = 5.0
    llm_read_timeout_s: float = 60.0
    llm_health_timeout_s: float = 3.0
    system_prompt: str = DEFAULT_SYSTEM_PROMPT

    # ------------------------------------------------------------------
    # Factory
    # ------------------------------------------------------------------

    @staticmethod
    def load_from_env() -> AppConfig:
        """
        Load configuration from environment variables.

        Raises:
            ValueError if a numeric variable cannot be parsed.
        """
        origins = os.environ.get("CORS_ORIGINS", "*")

        return AppConfig(
            env=os.environ.get("ENV", "dev"),
            log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
            enable_json_logs=_env_bool("ENABLE_JSON_LOGS", "1"),
            host=os.environ.get("HOST", "0.0.0.0"),
            port=int(os.environ.get("PORT", "3001")),
            cors_origins=tuple(o.strip() for o in origins.split(",") if o.strip()),

            onnx_dir=Path(os.environ.get("ONNX_DIR", str(_BASE_DIR / "assets" / "onnx"))),
            voice_styles_dir=Path(
                os.environ.get("VOICE_STYLES_DIR", str(_BASE_DIR / "assets" / "voice_styles"))
            ),
            default_voice=os.environ.get("DEFAULT_VOICE", "M1"),
            default_steps=int(os.environ.get("DEFAULT_STEPS", "3")),
            default_speed=float(os.environ.get("DEFAULT_SPEED", "1.4")),
            tts_engine_factory=os.environ.get("TTS_ENGINE_FACTORY") or None,

            ollama_url=os.environ.get("OLLAMA_URL", "http://localhost:11434").rstrip("/"),
            ollama_model=os.environ.get("OLLAMA_MODEL", "llama3.2"),
            llm_connect_timeout_s=float(os.environ.get("LLM_CONNECT_TIMEOUT_S", "5")),
            llm_read_timeout_s=float(os.environ.get("LLM_READ_TIMEOUT_S", "60")),
            llm_health_timeout_s=float(os.environ.get("LLM_HEALTH_TIMEOUT_S", "3")),
            system_prompt=os.environ.get("SYSTEM_PROMPT") or DEFAULT_SYSTEM_PROMPT,
        )
