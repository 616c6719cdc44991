"""
Manual probe against a running server.

Sends one batch or conversation request over SSE (httpx) or WebSocket
(websockets), prints every event with its arrival time and optionally
writes the received audio, silences included, to one WAV file.

    python tools/stream_probe.py --text "Hello there. How are you?"
    python tools/stream_probe.py --message "Hi" --conversation-id t1 --ws
    python tools/stream_probe.py --text "Testing." --out probe.wav
"""

import argparse
import asyncio
import base64
import json
import sys
import time
from pathlib import Path
from typing import Any, AsyncIterator

import httpx
import numpy as np
import websockets

from audio.pcm import pcm16le_to_float32
from audio.wav import encode_wav, parse_wav_header
from constants import WAV_HEADER_BYTES


async def sse_events(base_url: str, path: str, body: dict[str, Any]) -> AsyncIterator[dict[str, Any]]:
    timeout = httpx.Timeout(120.0, connect=5.0)
    async with httpx.AsyncClient(base_url=base_url, timeout=timeout) as client:
        async with client.stream("POST", path, json=body) as response:
            if response.status_code >= 400:
                await response.aread()
                raise SystemExit(f"HTTP {response.status_code}: {response.text}")
            async for line in response.aiter_lines():
                if line.startswith("data:"):
                    yield json.loads(line[len("data:"):].strip())


async def ws_events(base_url: str, body: dict[str, Any]) -> AsyncIterator[dict[str, Any]]:
    url = base_url.replace("http://", "ws://").replace("https://", "wss://") + "/ws"
    async with websockets.connect(url, max_size=None) as ws:
        await ws.send(json.dumps(body))
        while True:
            event = json.loads(await ws.recv())
            yield event
            if event.get("type") == "end":
                return
            # an unavailable backend ends a turn with a lone error
            if event.get("type") == "error" and "chunkIndex" not in event:
                return


def _summary(event: dict[str, Any]) -> str:
    shown = {k: v for k, v in event.items() if k not in ("type", "data")}
    if "data" in event:
        shown["bytes"] = len(base64.b64decode(event["data"]))
    return f"{event.get('type', '?'):<20} {json.dumps(shown, ensure_ascii=False)}"


async def run(args: argparse.Namespace) -> int:
    if args.text is not None:
        body: dict[str, Any] = {"text": args.text}
        path, ws_type = "/stream", "synthesize"
    else:
        body = {"message": args.message}
        if args.conversation_id:
            body["conversationId"] = args.conversation_id
        path, ws_type = "/conversation", "conversation"

    if args.voice:
        body["voice"] = args.voice

    events = ws_events(args.url, {"type": ws_type, **body}) if args.ws else sse_events(args.url, path, body)

    pieces: list[np.ndarray] = []
    sample_rate = 0
    t0 = time.monotonic()

    async for event in events:
        print(f"{time.monotonic() - t0:7.3f}s  {_summary(event)}")
        if args.out and event.get("type") in ("audio", "silence"):
            wav = base64.b64decode(event["data"])
            sample_rate = parse_wav_header(wav).sample_rate
            pieces.append(pcm16le_to_float32(wav[WAV_HEADER_BYTES:]))

    if args.out and pieces:
        Path(args.out).write_bytes(encode_wav(np.concatenate(pieces), sample_rate))
        print(f"wrote {args.out}")
    return 0


def main() -> int:
    parser = argparse.ArgumentParser()
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--text", help="batch request (POST /stream)")
    source.add_argument("--message", help="conversation turn (POST /conversation)")
    parser.add_argument("--conversation-id", default=None)
    parser.add_argument("--voice", default=None)
    parser.add_argument("--url", default="http://localhost:3001")
    parser.add_argument("--ws", action="store_true", help="use the WebSocket channel")
    parser.add_argument("--out", default=None, help="write received audio to this WAV file")
    return asyncio.run(run(parser.parse_args()))


if __name__ == "__main__":
    sys.exit(main())
