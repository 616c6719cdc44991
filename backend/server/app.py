"""
FastAPI app factory.

Responsibilities:
- Create and configure FastAPI app
- Set up middleware (CORS, request logging)
- Build shared services once per process
- Load the synthesis engine off the event loop at startup
- Map errors to {"error": message} JSON responses
- Register routes
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager, suppress
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from adapters.llm.base import ChatBackend
from adapters.llm.ollama import OllamaChatBackend
from adapters.tts.base import SynthesisEngine
from adapters.tts.loader import load_engine
from adapters.tts.styles import StyleLoadError, StyleNotFoundError, VoiceStyleLibrary
from config import AppConfig
from context.conversation import ConversationStore
from observability import logger
from observability.fatal import fatal_exit, install_process_handlers
from observability.logger import log_event
from server.middleware import RequestLogMiddleware
from server.routes import register_routes
from session.requests import RequestError
from session.services import AppServices


def create_app(
    config: AppConfig | None = None,
    *,
    engine: SynthesisEngine | None = None,
    chat: ChatBackend | None = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    `engine` and `chat` replace the configured collaborators (tests,
    embedding). With an explicit engine no factory is loaded at startup.
    """
    config = config or AppConfig.load_from_env()
    logger.configure(level=config.log_level, json_lines=config.enable_json_logs)

    services = AppServices(
        config=config,
        styles=VoiceStyleLibrary(config.voice_styles_dir, default_voice=config.default_voice),
        store=ConversationStore(),
        chat=chat or OllamaChatBackend(
            config.ollama_url,
            default_model=config.ollama_model,
            connect_timeout_s=config.llm_connect_timeout_s,
            read_timeout_s=config.llm_read_timeout_s,
            health_timeout_s=config.llm_health_timeout_s,
        ),
    )
    if engine is not None:
        services.attach_engine(engine)

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        install_process_handlers()
        log_event({
            "event_type": "SERVER_STARTING",
            "env": config.env,
            "host": config.host,
            "port": config.port,
            "ollama_url": config.ollama_url,
            "ollama_model": config.ollama_model,
        })

        load_task: asyncio.Task[None] | None = None
        if not services.tts_loaded:
            if config.tts_engine_factory:
                load_task = asyncio.create_task(_load_engine(services), name="tts-engine-load")
            else:
                log_event({
                    "event_type": "TTS_ENGINE_NOT_CONFIGURED",
                    "message": "TTS_ENGINE_FACTORY is unset; synthesis requests answer 503",
                }, level="WARN")

        try:
            yield
        finally:
            if load_task is not None and not load_task.done():
                load_task.cancel()
                with suppress(asyncio.CancelledError):
                    await load_task
            await services.aclose()
            log_event({"event_type": "SERVER_STOPPED"})

    app = FastAPI(title="Streaming TTS Orchestrator", lifespan=lifespan)
    app.state.config = config
    app.state.services = services

    # Middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(config.cors_origins),
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLogMiddleware)

    _register_error_handlers(app)

    # Routes
    register_routes(app)

    return app


async def _load_engine(services: AppServices) -> None:
    """Build the engine in a worker thread; failure is fatal."""
    config = services.config
    assert config.tts_engine_factory is not None

    try:
        engine = await asyncio.to_thread(load_engine, config.tts_engine_factory, config.onnx_dir)
    except asyncio.CancelledError:
        raise
    except Exception as exc:  # pylint: disable=broad-exception-caught
        fatal_exit("tts_engine_load_failed", exc)
        return

    services.attach_engine(engine)

    try:
        await services.styles.load(None)
    except (StyleNotFoundError, StyleLoadError) as exc:
        log_event({
            "event_type": "DEFAULT_VOICE_UNAVAILABLE",
            "voice": services.styles.default_voice,
            "message": str(exc),
        }, level="WARN")


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(RequestError)
    async def request_error_handler(  # pyright: ignore[reportUnusedFunction]
        request: Request, exc: RequestError
    ) -> JSONResponse:
        log_event({
            "event_type": "REQUEST_REJECTED",
            "path": request.url.path,
            "status": exc.status_code,
            "message": exc.message,
        }, level="WARN" if exc.status_code < 500 else "ERROR")
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(  # pyright: ignore[reportUnusedFunction]
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        if exc.status_code == 404:
            log_event({
                "event_type": "ROUTE_NOT_FOUND",
                "method": request.method,
                "path": request.url.path,
            }, level="WARN")
            return JSONResponse(status_code=404, content={"error": "Route not found"})
        return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})

    @app.exception_handler(Exception)
    async def unhandled_error_handler(  # pyright: ignore[reportUnusedFunction]
        request: Request, exc: Exception
    ) -> JSONResponse:
        log_event({
            "event_type": "UNHANDLED_REQUEST_ERROR",
            "method": request.method,
            "path": request.url.path,
            "exception": type(exc).__name__,
            "message": str(exc),
        }, level="ERROR")
        return JSONResponse(
            status_code=500,
            content={"error": str(exc) or "Internal server error"},
        )
