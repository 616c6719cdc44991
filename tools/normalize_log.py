"""
Rebase JSONL log timestamps onto the first event, optionally keeping only
one stream, to read a request's timeline at a glance.

    python tools/normalize_log.py server.log --stream strm_1a2b3c4d5e6f
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Iterator


def read_events(path: Path) -> Iterator[dict[str, Any]]:
    with path.open(encoding="utf-8") as fh:
        for line in fh:
            line = line.strip()
            if not line.startswith("{"):
                continue
            try:
                yield json.loads(line)
            except ValueError:
                continue


def normalize(events: Iterator[dict[str, Any]], stream_id: str | None) -> Iterator[str]:
    t0: int | None = None
    for event in events:
        if stream_id and event.get("stream_id") != stream_id:
            continue
        ts = event.get("ts_ms")
        if not isinstance(ts, int):
            continue
        if t0 is None:
            t0 = ts

        extra = {
            k: v for k, v in event.items()
            if k not in ("ts_ms", "level", "event_type", "stream_id")
        }
        yield f"{(ts - t0) / 1000:9.3f}s  {event.get('event_type', '?'):<28} {json.dumps(extra)}"


def main() -> int:
    parser = argparse.ArgumentParser()
    parser.add_argument("log", type=Path)
    parser.add_argument("--stream", default=None, help="only events of this stream_id")
    args = parser.parse_args()

    for line in normalize(read_events(args.log), args.stream):
        print(line)
    return 0


if __name__ == "__main__":
    sys.exit(main())
