"""
Print the header of a WAV file, or of a base64 `data` payload copied
from an `audio` / `silence` event.

    python tools/wav_info.py hello.wav
    python tools/wav_info.py --b64 "UklGRi..."
"""

import argparse
import base64
import sys
from pathlib import Path

from audio.wav import WavFormatError, parse_wav_header


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("source", help="WAV file path, or base64 text with --b64")
    parser.add_argument("--b64", action="store_true", help="treat source as base64")
    args = parser.parse_args()

    buf = base64.b64decode(args.source) if args.b64 else Path(args.source).read_bytes()

    try:
        header = parse_wav_header(buf)
    except WavFormatError as exc:
        print(f"not a PCM16 WAV: {exc}", file=sys.stderr)
        return 1

    print("sample_rate:", header.sample_rate)
    print("channels:", header.channels)
    print("bits_per_sample:", header.bits_per_sample)
    print("data_size:", header.data_size)
    print("samples:", header.num_samples)
    print(f"duration_s: {header.duration_s:.3f}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
