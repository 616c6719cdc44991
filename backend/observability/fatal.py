"""
Process-level failure handling.

Rules:
- Per-request failures never reach this module; they are handled where
  they occur and reported in-stream.
- Uncaught exceptions outside the event loop mean the process state can
  no longer be trusted: log, flush, terminate.
- Exceptions of orphaned event-loop tasks are logged only.
"""

from __future__ import annotations

import asyncio
import os
import signal
import sys
import threading
import traceback
from types import TracebackType
from typing import Any

from observability.logger import flush, log_event


def fatal_exit(reason: str, exc: BaseException | None = None) -> None:
    """
    Log a fatal condition and ask the server to shut down.

    SIGTERM lets uvicorn run its shutdown sequence (lifespan, open
    connections) instead of dying mid-write.
    """
    log_event({
        "event_type": "FATAL_EXIT",
        "reason": reason,
        "exception": type(exc).__name__ if exc else None,
        "message": str(exc) if exc else None,
    }, level="ERROR")
    flush()
    os.kill(os.getpid(), signal.SIGTERM)


def _log_uncaught(
    exc_type: type[BaseException],
    exc: BaseException,
    tb: TracebackType | None,
    *,
    where: str,
) -> None:
    log_event({
        "event_type": "UNCAUGHT_EXCEPTION",
        "where": where,
        "exception": exc_type.__name__,
        "message": str(exc),
        "stack": "".join(traceback.format_exception(exc_type, exc, tb)),
    }, level="ERROR")
    flush()


def _excepthook(
    exc_type: type[BaseException],
    exc: BaseException,
    tb: TracebackType | None,
) -> None:
    _log_uncaught(exc_type, exc, tb, where="main")
    sys.__excepthook__(exc_type, exc, tb)


def _thread_excepthook(args: threading.ExceptHookArgs) -> None:
    if args.exc_value is None:
        return
    _log_uncaught(
        args.exc_type,
        args.exc_value,
        args.exc_traceback,
        where=f"thread:{args.thread.name if args.thread else '?'}",
    )
    fatal_exit("uncaught_thread_exception", args.exc_value)


def _loop_exception_handler(
    loop: asyncio.AbstractEventLoop,
    context: dict[str, Any],
) -> None:
    exc = context.get("exception")
    log_event({
        "event_type": "UNHANDLED_TASK_EXCEPTION",
        "message": context.get("message"),
        "exception": type(exc).__name__ if exc else None,
        "detail": str(exc) if exc else None,
    }, level="ERROR")


def install_process_handlers(loop: asyncio.AbstractEventLoop | None = None) -> None:
    """
    Install the hooks for uncaught exceptions.

    Call once at startup; the loop handler is installed on `loop`
    (or the running loop) when one is available.
    """
    sys.excepthook = _excepthook
    threading.excepthook = _thread_excepthook

    if loop is None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
    loop.set_exception_handler(_loop_exception_handler)
